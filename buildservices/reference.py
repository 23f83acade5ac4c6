"""
ServiceReference

This module provides the consumer-side declaration of a dependency on a
shared service, and the cached outcome of resolving it.

A reference is declared before resolution is possible (services may be
registered before or after the declaration). It is resolved once, on first
access or on an explicit validation pass, and the outcome is kept for the
reference's lifetime.
"""

import threading
import weakref
from enum import Enum
from typing import Any, Optional, Type

from .descriptor import ServiceDescriptor
from .exceptions import BuildServiceError, ReferenceOverrideError


class ResolutionStatus(Enum):
    """Outcome of resolving a reference"""
    RESOLVED = "RESOLVED"
    ABSENT = "ABSENT"
    FAILED = "FAILED"
    OVERRIDDEN = "OVERRIDDEN"


class Resolution:
    """Immutable outcome of resolving one reference.

    A descriptor found by resolution is held weakly: the registry owns it,
    references only point at it. A descriptor bound by an explicit override
    is held strongly, since it may not be registered anywhere.

    Attributes:
        status: The ResolutionStatus
        error: The resolution error when status is FAILED
        value: The explicit override value when status is OVERRIDDEN and
            the override is a plain instance
    """

    __slots__ = ('status', 'error', 'value', '_descriptor_ref', '_pinned')

    def __init__(
        self,
        status: ResolutionStatus,
        descriptor: Optional[ServiceDescriptor] = None,
        error: Optional[BuildServiceError] = None,
        value: Any = None,
        pinned: bool = False,
    ):
        self.status = status
        self.error = error
        self.value = value
        self._descriptor_ref = weakref.ref(descriptor) if descriptor is not None else None
        self._pinned = descriptor if pinned else None

    @classmethod
    def resolved(cls, descriptor: ServiceDescriptor) -> 'Resolution':
        return cls(ResolutionStatus.RESOLVED, descriptor=descriptor)

    @classmethod
    def absent(cls) -> 'Resolution':
        return cls(ResolutionStatus.ABSENT)

    @classmethod
    def failed(cls, error: BuildServiceError) -> 'Resolution':
        return cls(ResolutionStatus.FAILED, error=error)

    @classmethod
    def overridden(cls, value: Any) -> 'Resolution':
        if isinstance(value, ServiceDescriptor):
            return cls(ResolutionStatus.OVERRIDDEN, descriptor=value, pinned=True)
        return cls(ResolutionStatus.OVERRIDDEN, value=value)

    @property
    def descriptor(self) -> Optional[ServiceDescriptor]:
        """The bound descriptor, or None if unbound or no longer alive."""
        if self._descriptor_ref is None:
            return None
        return self._descriptor_ref()

    @property
    def is_bound(self) -> bool:
        """True when the outcome points at a service or an override value."""
        return self.status in (ResolutionStatus.RESOLVED, ResolutionStatus.OVERRIDDEN)

    def __repr__(self) -> str:
        target = self.descriptor.name if self.descriptor is not None else self.value
        return f"Resolution({self.status.value}, {target!r})"


class ServiceReference:
    """Declared dependency of a consumer on a shared service.

    Attributes:
        requested_name: The service name, or None to resolve by type
        requested_type: The type the consumer expects
        optional: If True, an unresolvable reference is absent rather
            than an error

    Example::

        by_name = ServiceReference(CountingService, name="counter")
        by_type = ServiceReference(CountingService)
        maybe = ServiceReference(CountingService, optional=True)
    """

    def __init__(
        self,
        requested_type: Type,
        name: Optional[str] = None,
        optional: bool = False,
    ):
        if requested_type is None:
            raise TypeError("A service reference needs a requested type")
        self.requested_type = requested_type
        self.requested_name = name
        self.optional = optional
        self._resolution: Optional[Resolution] = None
        self._lock = threading.RLock()

    @property
    def resolution(self) -> Optional[Resolution]:
        """The cached outcome, or None if not resolved yet."""
        return self._resolution

    @property
    def is_resolved(self) -> bool:
        return self._resolution is not None

    @property
    def is_overridden(self) -> bool:
        return (
            self._resolution is not None
            and self._resolution.status == ResolutionStatus.OVERRIDDEN
        )

    @property
    def lock(self) -> threading.RLock:
        """Lock serializing the first resolution of this reference."""
        return self._lock

    def bind(self, resolution: Resolution) -> Resolution:
        """Cache ``resolution`` unless an outcome is already cached.

        Returns:
            The cached outcome (the existing one if already bound)
        """
        with self._lock:
            if self._resolution is None:
                self._resolution = resolution
            return self._resolution

    def override(self, value: Any) -> Resolution:
        """Record a permanent explicit binding.

        Args:
            value: A ServiceDescriptor, or a ready instance

        Returns:
            The override outcome

        Raises:
            ReferenceOverrideError: When an outcome is already cached
            ValueError: When ``value`` is None
        """
        if value is None:
            raise ValueError(
                f"Cannot bind reference {self.describe()} to None"
            )
        with self._lock:
            if self._resolution is not None:
                raise ReferenceOverrideError(
                    f"Reference {self.describe()} is already bound "
                    f"({self._resolution.status.value}); explicit bindings must "
                    f"be set before the reference is first resolved."
                )
            self._resolution = Resolution.overridden(value)
            return self._resolution

    def describe(self) -> str:
        """Readable description used in error messages."""
        type_name = getattr(self.requested_type, '__name__', str(self.requested_type))
        if self.requested_name is not None:
            return f"'{self.requested_name}' ({type_name})"
        return f"of type {type_name}"

    def __repr__(self) -> str:
        return (
            f"ServiceReference(type={getattr(self.requested_type, '__name__', self.requested_type)}, "
            f"name={self.requested_name!r}, optional={self.optional})"
        )
