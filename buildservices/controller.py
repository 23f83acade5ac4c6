"""
LifecycleController

This module provides lazy instantiation and finalization of shared services.
It is responsible for:

- Creating a service on first real use, at most once even when many
  threads access it at the same time
- Handing out instances for resolved references
- Bounding concurrent usages of services with a parallel-usage limit
- Closing every created service exactly once at the end of a run
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Tuple, Type

from .descriptor import ServiceDescriptor
from .exceptions import (
    BuildServiceError,
    FactoryError,
    ServiceCloseError,
    ServiceClosedError,
)
from .lifecycle import ServiceState
from .reference import Resolution, ResolutionStatus, ServiceReference
from .resolver import ReferenceResolver

logger = logging.getLogger(__name__)


def _conforms(instance: Any, declared_type: Type) -> bool:
    """isinstance() that accepts types it cannot check (generics, protocols)."""
    try:
        return isinstance(instance, declared_type)
    except TypeError:
        return True


class LifecycleController:
    """Creates, hands out and finalizes shared service instances.

    The UNCREATED -> CREATED transition of each descriptor runs under that
    descriptor's lock, held only for the duration of the factory call. A
    failing factory leaves the descriptor UNCREATED, so the next access
    retries it.

    ``finalize_all()`` must not race with ``get()``: the caller ends the
    use phase before finalizing.

    Example::

        controller = LifecycleController(resolver)
        counter = controller.get(ServiceReference(CountingService, name="counter"))
        ...
        controller.finalize_all()  # counter.close() is called here
    """

    def __init__(
        self,
        resolver: ReferenceResolver,
        check_factory_type: bool = True,
        raise_on_close_errors: bool = True,
    ):
        """Initialize the controller.

        Args:
            resolver: Resolver used for references not yet resolved
            check_factory_type: Reject factory results that are not instances
                of the declared type
            raise_on_close_errors: Raise ServiceCloseError from
                finalize_all() instead of logging close failures
        """
        self._resolver = resolver
        self._check_factory_type = check_factory_type
        self._raise_on_close_errors = raise_on_close_errors
        # Creation order, for closing in reverse
        self._created: List[ServiceDescriptor] = []
        self._created_lock = threading.Lock()
        self._finalized = False

    @property
    def resolver(self) -> ReferenceResolver:
        return self._resolver

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def get(self, reference: ServiceReference) -> Optional[Any]:
        """Get the service instance for a reference.

        Args:
            reference: The reference to access

        Returns:
            The service instance, or None for an absent optional reference

        Raises:
            ServiceNotFoundError: When a mandatory reference matches nothing
            AmbiguousServiceError: When a mandatory by-type reference
                matches several services
            FactoryError: When the service factory fails
            ServiceClosedError: When the run has been finalized
        """
        self._ensure_not_finalized(reference)
        outcome = self._resolver.resolve(reference)

        if outcome.status == ResolutionStatus.FAILED:
            raise outcome.error
        if outcome.status == ResolutionStatus.ABSENT:
            return None

        descriptor = outcome.descriptor
        if descriptor is None:
            if outcome.status == ResolutionStatus.OVERRIDDEN and outcome.value is not None:
                return outcome.value
            raise ServiceClosedError(
                f"The service bound to reference {reference.describe()} no longer exists"
            )
        return self._materialize(descriptor)

    def is_present(self, reference: ServiceReference) -> bool:
        """Check whether ``get()`` would return an instance.

        Never raises resolution errors and never creates the service.
        """
        if self._finalized:
            return False
        outcome = self._resolver.resolve(reference)
        return self._is_live(outcome)

    def override(self, reference: ServiceReference, value: Any) -> Resolution:
        """Bind a reference to a known service, bypassing resolution.

        Args:
            reference: The reference to bind
            value: A ServiceDescriptor (created and finalized by this
                controller) or a ready instance (returned as is, never closed)

        Raises:
            ReferenceOverrideError: When the reference already has an outcome
        """
        outcome = reference.override(value)
        logger.debug("Reference %s bound explicitly: %r", reference.describe(), outcome)
        return outcome

    @contextmanager
    def use(self, reference: ServiceReference) -> Iterator[Optional[Any]]:
        """Hold a usage lease on the referenced service.

        Blocks while the service's ``max_parallel_usages`` leases are all
        taken. Services without a limit are yielded immediately.

        Example::

            with controller.use(reference) as counter:
                counter.increment()
        """
        outcome = self._resolver.resolve(reference)
        descriptor = outcome.descriptor if outcome.is_bound else None
        leases = descriptor.leases if descriptor is not None else None

        if leases is None:
            yield self.get(reference)
            return

        leases.acquire()
        try:
            yield self.get(reference)
        finally:
            leases.release()

    def finalize_all(self) -> None:
        """Close every created service exactly once.

        Services are closed in reverse creation order. Services that were
        never created are skipped, never created just to be closed. A second
        call does nothing.

        Raises:
            ServiceCloseError: When one or more close procedures failed and
                raising is enabled. All other services are still closed.
        """
        if self._finalized:
            return
        self._finalized = True
        self._resolver.registry.close()

        with self._created_lock:
            created = list(reversed(self._created))

        errors: List[Tuple[str, BaseException]] = []
        for descriptor in created:
            with descriptor.lock:
                if descriptor.state != ServiceState.CREATED:
                    continue
                try:
                    descriptor.release_instance()
                    logger.debug("Closed service '%s'", descriptor.name)
                except Exception as e:
                    errors.append((descriptor.name, e))
                finally:
                    descriptor.state = ServiceState.CLOSED

        if not errors:
            return
        if self._raise_on_close_errors:
            names = ", ".join(name for name, _ in errors)
            raise ServiceCloseError(f"Failed to close services: {names}", errors)
        for name, error in errors:
            logger.error("Failed to close service '%s'", name, exc_info=error)

    def _materialize(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.state == ServiceState.CREATED:
            return descriptor.instance

        with descriptor.lock:
            if descriptor.state == ServiceState.CREATED:
                return descriptor.instance
            if descriptor.state == ServiceState.CLOSED:
                raise ServiceClosedError(f"Service '{descriptor.name}' is already closed")
            if descriptor.creating:
                raise FactoryError(
                    f"Circular dependency detected: service '{descriptor.name}' "
                    f"was requested by its own factory"
                )

            logger.debug("Creating service '%s'", descriptor.name)
            descriptor.creating = True
            try:
                instance = descriptor.factory()
            except FactoryError:
                raise
            except BuildServiceError as e:
                raise FactoryError(
                    f"Factory for service '{descriptor.name}' failed to get a service: {e}"
                ) from e
            except Exception as e:
                raise FactoryError(
                    f"Factory for service '{descriptor.name}' raised an exception: {e}"
                ) from e
            finally:
                descriptor.creating = False

            if instance is None:
                raise FactoryError(
                    f"Factory for service '{descriptor.name}' returned None"
                )
            if self._check_factory_type and not _conforms(instance, descriptor.declared_type):
                raise FactoryError(
                    f"Factory for service '{descriptor.name}' returned "
                    f"{type(instance).__name__}, expected {descriptor.type_name}"
                )

            descriptor.instance = instance
            descriptor.state = ServiceState.CREATED
            with self._created_lock:
                self._created.append(descriptor)
            return instance

    def _ensure_not_finalized(self, reference: ServiceReference) -> None:
        if self._finalized:
            raise ServiceClosedError(
                f"Cannot access service reference {reference.describe()}: "
                f"the run has been finalized"
            )

    @staticmethod
    def _is_live(outcome: Resolution) -> bool:
        if not outcome.is_bound:
            return False
        descriptor = outcome.descriptor
        if descriptor is not None:
            return descriptor.state != ServiceState.CLOSED
        return outcome.value is not None
