"""
Consumer declarations

This module lets consumers (typically build tasks) declare their shared
service dependencies as class attributes:

    class CountTask:
        counter = service_reference(CountingService, name="counter")
        audit = service_reference(AuditService, optional=True)

        def run(self):
            self.counter.get().increment()
            if self.audit.is_present():
                self.audit.get().record("counted")

Each consumer instance gets its own ServiceReference, wrapped in a
ServiceHandle. Nothing is resolved or created until the handle is used.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar

from .global_session import GlobalSession
from .reference import ServiceReference
from .session import BuildSession

T = TypeVar('T')


class ServiceConsumer(ABC):
    """
    Base class for consumers resolving against a specific BuildSession.

    Consumers that do not derive from this class resolve against the
    global session started with ``SharedServices.start()``.

    Example:
        ```python
        class RunTask(ServiceConsumer):
            counter = service_reference(CountingService)

            def __init__(self, session: BuildSession):
                self._session = session

            def get_session(self) -> BuildSession:
                return self._session
        ```
    """

    @abstractmethod
    def get_session(self) -> BuildSession:
        """
        Return the BuildSession this consumer's references resolve against
        """
        return NotImplemented


class ServiceHandle(Generic[T]):
    """Per-consumer access to one declared service reference."""

    def __init__(self, reference: ServiceReference, get_session: Callable[[], BuildSession]):
        self._reference = reference
        self._get_session = get_session

    @property
    def reference(self) -> ServiceReference:
        return self._reference

    def get(self) -> Optional[T]:
        """Return the service instance, creating it on first use.

        Returns None for an absent optional reference.
        """
        return self._get_session().get(self._reference)

    def is_present(self) -> bool:
        """Check whether get() would return an instance, without creating it."""
        return self._get_session().is_present(self._reference)

    def set(self, value: Any) -> None:
        """Bind the reference explicitly to a ServiceDescriptor or an instance."""
        self._get_session().override(self._reference, value)

    def __repr__(self) -> str:
        return f"ServiceHandle({self._reference!r})"


class ServiceReferenceDescriptor(Generic[T]):
    """
    Descriptor declaring a shared service dependency on a consumer class.

    Accessed on a class it returns itself; accessed on an instance it
    returns that instance's ServiceHandle. Assigning to the attribute binds
    the reference explicitly::

        task.counter = session.registry.lookup_by_name("counter")
    """

    def __init__(
        self,
        requested_type: Type[T],
        name: Optional[str] = None,
        optional: bool = False,
    ):
        self.requested_type = requested_type
        self.name = name
        self.optional = optional
        self._attr_name: Optional[str] = None

    def __set_name__(self, owner: Type, name: str) -> None:
        self._attr_name = name

    def __get__(self, obj: Optional[object], objtype: Optional[Type] = None) -> Any:
        if obj is None:
            return self
        return self.handle_for(obj)

    def __set__(self, obj: object, value: Any) -> None:
        self.handle_for(obj).set(value)

    def handle_for(self, obj: object) -> ServiceHandle[T]:
        """Return the instance's handle, creating and tracking it on first access."""
        key = self._storage_key()
        handle = obj.__dict__.get(key)
        if handle is None:
            def get_session() -> BuildSession:
                return session_for(obj)

            reference = ServiceReference(
                self.requested_type, name=self.name, optional=self.optional
            )
            created = ServiceHandle(reference, get_session)
            handle = obj.__dict__.setdefault(key, created)
            if handle is created:
                get_session().track(reference)
        return handle

    def _storage_key(self) -> str:
        type_name = getattr(self.requested_type, '__name__', 'service')
        return f"_service_reference_{self._attr_name or type_name}"

    def __repr__(self) -> str:
        return (
            f"service_reference[{getattr(self.requested_type, '__name__', self.requested_type)}]"
            f"(name={self.name!r}, optional={self.optional})"
        )


def service_reference(
    requested_type: Type[T],
    name: Optional[str] = None,
    optional: bool = False,
) -> ServiceReferenceDescriptor[T]:
    """
    Declare a shared service dependency as a class attribute.

    Args:
        requested_type: The type the consumer expects
        name: Optional service name; None resolves by type
        optional: If True, a missing service is absent rather than an error

    Returns:
        A ServiceReferenceDescriptor
    """
    return ServiceReferenceDescriptor(requested_type, name=name, optional=optional)


def session_for(consumer: object) -> BuildSession:
    """Session a consumer's references resolve against."""
    if isinstance(consumer, ServiceConsumer):
        return consumer.get_session()
    return GlobalSession().get()


def references_of(consumer: object) -> List[ServiceReference]:
    """All service references declared on a consumer's class, in definition order."""
    references = []
    seen = set()
    for klass in type(consumer).__mro__:
        for attr_name, attr in vars(klass).items():
            if isinstance(attr, ServiceReferenceDescriptor) and attr_name not in seen:
                seen.add(attr_name)
                references.append(attr.handle_for(consumer).reference)
    return references
