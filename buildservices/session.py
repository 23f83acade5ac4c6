"""
BuildSession

This module provides the per-run owner of shared services. A BuildSession
holds the registry, resolver and lifecycle controller of one build run,
from the start of configuration to the end of execution. Sessions are
never shared between runs.

Example::

    with BuildSession() as session:
        session.register_service("counter", CountingService, CountingService)

        counter = session.reference(CountingService, name="counter")
        session.validate_all()          # upfront resolution errors
        session.get(counter).increment()
    # every created service is closed here
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Type

from .configuration import SessionConfiguration
from .controller import LifecycleController
from .descriptor import ServiceDescriptor
from .exceptions import BuildServiceError, ReferenceValidationError, SessionClosedError
from .reference import Resolution, ServiceReference
from .registry import ServiceRegistry
from .resolver import ReferenceResolver

logger = logging.getLogger(__name__)


class BuildSession:
    """One build run's shared services.

    Attributes:
        configuration: The SessionConfiguration in effect
        registry: The ServiceRegistry owning every descriptor of the run
        resolver: The ReferenceResolver bound to the registry
        controller: The LifecycleController creating and closing services
    """

    def __init__(self, configuration: Optional[SessionConfiguration] = None):
        """Initialize a session with an empty registry.

        Args:
            configuration: Session configuration, defaults to
                ``SessionConfiguration()``
        """
        self.configuration = configuration or SessionConfiguration()
        self.registry = ServiceRegistry(
            default_max_parallel_usages=self.configuration.default_max_parallel_usages
        )
        self.resolver = ReferenceResolver(self.registry)
        self.controller = LifecycleController(
            self.resolver,
            check_factory_type=self.configuration.check_factory_type,
            raise_on_close_errors=self.configuration.raise_on_close_errors,
        )
        self._references: List[ServiceReference] = []
        self._references_lock = threading.Lock()
        self._closed = False

    def _ensure_not_closed(self) -> None:
        """Ensure the session is not closed.

        Raises:
            SessionClosedError: When the session has been closed
        """
        if self._closed:
            raise SessionClosedError("This build session is already closed")

    def register_service(
        self,
        name: str,
        declared_type: Type,
        factory: Callable[[], Any],
        **options: Any,
    ) -> ServiceDescriptor:
        """Register a shared service. See ``ServiceRegistry.register_service()``.

        Raises:
            SessionClosedError: When the session has been closed
            DuplicateNameError: When the name is already registered
        """
        self._ensure_not_closed()
        return self.registry.register_service(name, declared_type, factory, **options)

    def register_if_absent(
        self,
        name: str,
        declared_type: Type,
        factory: Callable[[], Any],
        **options: Any,
    ) -> ServiceDescriptor:
        """Register a shared service unless one with that name exists.

        See ``ServiceRegistry.register_if_absent()``.
        """
        self._ensure_not_closed()
        return self.registry.register_if_absent(name, declared_type, factory, **options)

    def reference(
        self,
        requested_type: Type,
        name: Optional[str] = None,
        optional: bool = False,
    ) -> ServiceReference:
        """Declare a reference tracked by this session.

        Tracked references are checked by ``validate_all()``.
        """
        self._ensure_not_closed()
        reference = ServiceReference(requested_type, name=name, optional=optional)
        self.track(reference)
        return reference

    def track(self, reference: ServiceReference) -> ServiceReference:
        """Track a reference declared elsewhere (e.g. by a consumer)."""
        with self._references_lock:
            if not any(r is reference for r in self._references):
                self._references.append(reference)
        return reference

    @property
    def references(self) -> List[ServiceReference]:
        with self._references_lock:
            return list(self._references)

    def get(self, reference: ServiceReference) -> Optional[Any]:
        """Get the instance for a reference. See ``LifecycleController.get()``."""
        self._ensure_not_closed()
        return self.controller.get(reference)

    def is_present(self, reference: ServiceReference) -> bool:
        """Check whether an instance can be obtained for a reference."""
        if self._closed:
            return False
        return self.controller.is_present(reference)

    def validate(self, reference: ServiceReference) -> None:
        """Raise the resolution error of a mandatory reference, if any."""
        self._ensure_not_closed()
        self.resolver.validate(reference)

    def validate_all(self, *consumers: object) -> None:
        """Resolve every tracked reference without creating any service.

        Args:
            *consumers: Consumers whose declared ``service_reference``
                attributes are tracked before validating

        Raises:
            ReferenceValidationError: Aggregating the errors of every
                failing mandatory reference
        """
        from .consumer import references_of

        self._ensure_not_closed()
        for consumer in consumers:
            for reference in references_of(consumer):
                self.track(reference)

        errors: List[BuildServiceError] = []
        for reference in self.references:
            try:
                self.resolver.validate(reference)
            except BuildServiceError as e:
                errors.append(e)
        if errors:
            details = "\n".join(f"  - {e}" for e in errors)
            raise ReferenceValidationError(
                f"{len(errors)} service reference(s) cannot be resolved:\n{details}",
                errors,
            )

    def override(self, reference: ServiceReference, value: Any) -> Resolution:
        """Bind a reference explicitly. See ``LifecycleController.override()``."""
        self._ensure_not_closed()
        return self.controller.override(reference, value)

    @contextmanager
    def use(self, reference: ServiceReference) -> Iterator[Optional[Any]]:
        """Hold a usage lease on a service. See ``LifecycleController.use()``."""
        self._ensure_not_closed()
        with self.controller.use(reference) as instance:
            yield instance

    def close(self) -> None:
        """Finalize all created services and close the session.

        This method is idempotent - calling it multiple times has no effect.

        Raises:
            ServiceCloseError: When services failed to close (the session
                is closed regardless)
        """
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing build session with %d service(s)", len(self.registry))
        self.controller.finalize_all()

    @property
    def is_closed(self) -> bool:
        """Check whether the session has been closed."""
        return self._closed

    def __enter__(self) -> 'BuildSession':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Exit context manager and close the session.

        Returns:
            False (exceptions are not suppressed)
        """
        self.close()
        return False
