"""
buildservices Exceptions

Custom exception hierarchy for shared build service registration,
resolution and lifecycle management
"""

from typing import List, Tuple, Type


class BuildServiceError(Exception):
    """
    Base exception for all buildservices errors.

    All buildservices-specific exceptions inherit from this class.
    You can catch this to handle any shared service error generically.

    Example:
        >>> try:
        ...     counter = session.get(reference)
        ... except BuildServiceError as e:
        ...     print(f"Service error: {e}")
    """

    pass


class DuplicateNameError(BuildServiceError):
    """
    Raised when two services are registered under the same name.

    Service names are unique within a run. The first registration wins
    and every later registration with that name fails immediately.

    Common causes:
        - Two plugins registering a service with the same name
        - Calling ``register_service()`` twice for the same service
        - ``register_if_absent()`` with a type incompatible with the
          already registered service

    Solution:
        Use ``register_if_absent()`` when several places may register the
        same shared service::

            session.register_if_absent("counter", CountingService, CountingService)
    """

    pass


class ServiceNotFoundError(BuildServiceError):
    """
    Raised when no registered service matches a mandatory reference.

    For references declared with ``optional=True`` this is not an error:
    the reference simply resolves to an absent value.

    Common causes:
        - Typo in the requested service name
        - The service is registered by another plugin that was not applied
        - The requested type is not implemented by any registered service

    Note:
        The error message includes the names of all registered services
        to help identify the intended one.
    """

    pass


class AmbiguousServiceError(BuildServiceError):
    """
    Raised when a by-type reference matches two or more services.

    The error enumerates every candidate's name and concrete type so the
    consumer can disambiguate.

    Attributes:
        candidates: List of ``(name, declared_type)`` pairs that matched

    Solution:
        Name the service explicitly, or bind the reference directly::

            counter = service_reference(CountingService, name="counter")

            task.counter.set(session.registry.lookup_by_name("counter"))
    """

    def __init__(self, message: str, candidates: List[Tuple[str, Type]]):
        super().__init__(message)
        self.candidates = candidates


class FactoryError(BuildServiceError):
    """
    Raised when a service factory fails to produce an instance.

    The original exception is chained as ``__cause__``. The service stays
    uncreated, so a later access retries the factory.
    """

    pass


class ServiceClosedError(BuildServiceError):
    """
    Raised when accessing a service after the run has been finalized.

    Once ``finalize_all()`` has run, no service may be created or handed
    out again.
    """

    pass


class ServiceCloseError(BuildServiceError):
    """
    Raised by ``finalize_all()`` when one or more services failed to close.

    Every other service is still closed before this error is raised.

    Attributes:
        errors: List of ``(service_name, exception)`` pairs
    """

    def __init__(self, message: str, errors: List[Tuple[str, BaseException]]):
        super().__init__(message)
        self.errors = errors


class ReferenceOverrideError(BuildServiceError):
    """
    Raised when a reference is explicitly bound after its outcome is fixed.

    An explicit binding is permanent and must be recorded before the
    reference is first resolved. Binding twice is also rejected.
    """

    pass


class ReferenceValidationError(BuildServiceError):
    """
    Raised by ``BuildSession.validate_all()`` when references cannot be resolved.

    Attributes:
        errors: The individual ``ServiceNotFoundError`` and
            ``AmbiguousServiceError`` instances, one per failing reference
    """

    def __init__(self, message: str, errors: List[BuildServiceError]):
        super().__init__(message)
        self.errors = errors


class RegistryClosedError(BuildServiceError):
    """
    Raised when registering a service after the registry has been closed.
    """

    pass


class SessionClosedError(BuildServiceError):
    """
    Raised when attempting to use a closed build session.

    Common causes:
        - Using a session after calling ``session.close()``
        - Using a session after exiting its ``with`` block

    Solution:
        Create a new ``BuildSession`` for every run::

            with BuildSession() as session:
                ...
    """

    pass


class NotStartedError(BuildServiceError):
    """
    Raised when the global session is used before ``SharedServices.start()``.

    Solution:
        Start the global session before declaring or resolving services::

            SharedServices.start()
            SharedServices.session().register_service(
                "counter", CountingService, CountingService
            )
    """

    pass


class AlreadyStartedError(BuildServiceError):
    """
    Raised when ``SharedServices.start()`` is called while already started.

    Solution:
        Call ``SharedServices.stop()`` before starting a new run.
    """

    pass
