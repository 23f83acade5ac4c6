"""
ServiceDescriptor

Data class representing one registered shared service
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Type

from .configuration import BaseServiceParameters
from .lifecycle import ServiceState


@dataclass(eq=False)
class ServiceDescriptor:
    """Registered shared service.

    The descriptor owns the service instance. ``state`` only moves forward
    (UNCREATED -> CREATED -> CLOSED) and every transition happens while
    holding ``lock``.

    Attributes:
        name: Unique service name within the registry
        declared_type: The type the service is exposed as
        factory: Zero-argument callable creating the instance
        parameters: Optional service parameters the factory was built from
        max_parallel_usages: Maximum number of concurrent leases via
            ``LifecycleController.use()``, None for unlimited
        close: Optional callable used instead of the default close procedure
        state: Current lifecycle state
        instance: The created instance (None while UNCREATED)
    """
    name: str
    declared_type: Type
    factory: Callable[[], Any]
    parameters: Optional[BaseServiceParameters] = None
    max_parallel_usages: Optional[int] = None
    close: Optional[Callable[[Any], None]] = None
    state: ServiceState = ServiceState.UNCREATED
    instance: Optional[Any] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    creating: bool = field(default=False, init=False, repr=False)
    _leases: Optional[threading.BoundedSemaphore] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("Service name must be a non-empty string")
        if not callable(self.factory):
            raise TypeError(f"Factory for service '{self.name}' is not callable")
        if self.max_parallel_usages is not None:
            if self.max_parallel_usages <= 0:
                raise ValueError(
                    f"max_parallel_usages for service '{self.name}' must be positive, "
                    f"got {self.max_parallel_usages}"
                )
            self._leases = threading.BoundedSemaphore(self.max_parallel_usages)

    @property
    def type_name(self) -> str:
        """Readable name of the declared type."""
        return getattr(self.declared_type, '__name__', str(self.declared_type))

    @property
    def leases(self) -> Optional[threading.BoundedSemaphore]:
        """Semaphore bounding concurrent usages, or None when unlimited."""
        return self._leases

    def release_instance(self) -> None:
        """Run the close procedure on the created instance.

        Uses the registered ``close`` callable when given, otherwise calls
        ``instance.close()``, or ``instance.__exit__(None, None, None)``
        for context managers. Instances with neither are left alone.
        """
        instance = self.instance
        if self.close is not None:
            self.close(instance)
        elif callable(getattr(instance, 'close', None)):
            instance.close()
        elif callable(getattr(instance, '__exit__', None)):
            instance.__exit__(None, None, None)
