"""
ServiceRegistry

This module provides the mapping from service names to their descriptors.
The registry is the single owner of every ServiceDescriptor in a run and is
responsible for:

- Rejecting duplicate service names
- Looking up services by name
- Looking up services by assignable type

Registering a service never creates it; instantiation is deferred to the
LifecycleController.
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

from .configuration import BaseServiceParameters
from .descriptor import ServiceDescriptor
from .exceptions import DuplicateNameError, RegistryClosedError

logger = logging.getLogger(__name__)


def is_assignable(candidate: Type, target: Type) -> bool:
    """Check whether ``candidate`` can be used where ``target`` is expected.

    Non-class types (e.g. subscripted generics) only match themselves.
    """
    if candidate is target or target is object:
        return True
    try:
        return issubclass(candidate, target)
    except TypeError:
        return candidate == target


class ServiceRegistry:
    """Name-keyed registry of shared service descriptors.

    Registration is expected to finish before consumers start resolving
    references. Registration takes a lock so that a racing registration
    cannot corrupt the mapping, but lookups made concurrently with it see
    either the old or the new set of services.

    Attributes:
        _descriptors: Dictionary mapping names to descriptors, in
            registration order

    Example::

        registry = ServiceRegistry()
        registry.register_service("counter", CountingService, CountingService)

        registry.lookup_by_name("counter")       # ServiceDescriptor
        registry.lookup_by_type(CountingService)  # [ServiceDescriptor]
    """

    def __init__(self, default_max_parallel_usages: Optional[int] = None):
        """Initialize an empty registry.

        Args:
            default_max_parallel_usages: Lease limit used by
                ``register_service()`` when none is given
        """
        self._descriptors: Dict[str, ServiceDescriptor] = {}
        self._lock = threading.Lock()
        self._closed = False
        self._default_max_parallel_usages = default_max_parallel_usages

    def register(self, descriptor: ServiceDescriptor) -> ServiceDescriptor:
        """Register a descriptor under its name.

        Args:
            descriptor: The descriptor to register

        Returns:
            The registered descriptor

        Raises:
            DuplicateNameError: When the name is already registered
            RegistryClosedError: When the registry has been closed
        """
        with self._lock:
            self._ensure_open()
            existing = self._descriptors.get(descriptor.name)
            if existing is not None:
                raise DuplicateNameError(
                    f"A service named '{descriptor.name}' is already registered "
                    f"with type {existing.type_name}.\n"
                    f"Hint: use register_if_absent() to share one registration."
                )
            self._descriptors[descriptor.name] = descriptor
        logger.debug(
            "Registered service '%s' of type %s", descriptor.name, descriptor.type_name
        )
        return descriptor

    def register_service(
        self,
        name: str,
        declared_type: Type,
        factory: Callable[[], Any],
        *,
        parameters: Optional[BaseServiceParameters] = None,
        max_parallel_usages: Optional[int] = None,
        close: Optional[Callable[[Any], None]] = None,
    ) -> ServiceDescriptor:
        """Build a descriptor and register it.

        Args:
            name: Unique service name
            declared_type: The type the service is exposed as
            factory: Zero-argument callable creating the instance
            parameters: Optional service parameters
            max_parallel_usages: Optional lease limit, defaults to the
                registry's default
            close: Optional callable replacing the default close procedure

        Returns:
            The registered descriptor

        Raises:
            DuplicateNameError: When the name is already registered
        """
        if max_parallel_usages is None:
            max_parallel_usages = self._default_max_parallel_usages
        descriptor = ServiceDescriptor(
            name=name,
            declared_type=declared_type,
            factory=factory,
            parameters=parameters,
            max_parallel_usages=max_parallel_usages,
            close=close,
        )
        return self.register(descriptor)

    def register_if_absent(
        self,
        name: str,
        declared_type: Type,
        factory: Callable[[], Any],
        **options: Any,
    ) -> ServiceDescriptor:
        """Return the service registered under ``name``, registering it if needed.

        Args:
            name: Unique service name
            declared_type: The type the service is exposed as
            factory: Zero-argument callable, only used when registering
            **options: Passed to ``register_service()``

        Returns:
            The existing or newly registered descriptor

        Raises:
            DuplicateNameError: When ``name`` is registered with a type that
                is not assignable to ``declared_type``
        """
        existing = self.lookup_by_name(name)
        if existing is None:
            try:
                return self.register_service(name, declared_type, factory, **options)
            except DuplicateNameError:
                # Lost a registration race; fall through to the type check
                existing = self.lookup_by_name(name)
                if existing is None:
                    raise
        if not is_assignable(existing.declared_type, declared_type):
            type_name = getattr(declared_type, '__name__', str(declared_type))
            raise DuplicateNameError(
                f"A service named '{name}' is already registered with type "
                f"{existing.type_name}, which is not compatible with {type_name}."
            )
        return existing

    def lookup_by_name(self, name: str) -> Optional[ServiceDescriptor]:
        """Look up a descriptor by name.

        Returns:
            The descriptor, or None when no service has that name
        """
        return self._descriptors.get(name)

    def lookup_by_type(self, requested_type: Type) -> List[ServiceDescriptor]:
        """Find every descriptor whose declared type is assignable to ``requested_type``.

        Returns:
            Matching descriptors in registration order
        """
        return [
            descriptor
            for descriptor in self.descriptors()
            if is_assignable(descriptor.declared_type, requested_type)
        ]

    def descriptors(self) -> List[ServiceDescriptor]:
        """All registered descriptors in registration order."""
        with self._lock:
            return list(self._descriptors.values())

    def names(self) -> List[str]:
        """All registered service names in registration order."""
        with self._lock:
            return list(self._descriptors.keys())

    def close(self) -> None:
        """Reject any further registration. Idempotent."""
        with self._lock:
            self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise RegistryClosedError(
                "Cannot register services after the run has been finalized"
            )

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self.descriptors())
