"""
ReferenceResolver

This module binds service references to registered descriptors.

Resolution is a pure function of the registry's current mapping. Its outcome
(success, absence or failure) is cached on the reference, so later
registrations never change how an already resolved reference behaves within
a run. Resolving never instantiates a service.
"""

import logging
from typing import List

from .descriptor import ServiceDescriptor
from .exceptions import AmbiguousServiceError, BuildServiceError, ServiceNotFoundError
from .reference import Resolution, ResolutionStatus, ServiceReference
from .registry import ServiceRegistry, is_assignable

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """Resolves references against a ServiceRegistry.

    Resolution order:

    1. A reference with an explicit binding is never resolved again.
    2. A named reference is looked up by name. A missing name, or a service
       whose type is not assignable to the requested type, is not found.
    3. An unnamed reference is looked up by type. Zero matches is not found,
       one match is bound, more than one is ambiguous.

    Not found and ambiguous outcomes degrade to ABSENT for optional
    references and are FAILED otherwise.

    Example::

        resolver = ReferenceResolver(registry)
        outcome = resolver.resolve(ServiceReference(CountingService))
        outcome.descriptor.name  # "counter"
    """

    def __init__(self, registry: ServiceRegistry):
        self._registry = registry

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    def resolve(self, reference: ServiceReference) -> Resolution:
        """Resolve a reference, or return its cached outcome.

        Args:
            reference: The reference to resolve

        Returns:
            The cached Resolution of the reference
        """
        cached = reference.resolution
        if cached is not None:
            return cached

        with reference.lock:
            if reference.resolution is not None:
                return reference.resolution
            outcome = self._compute(reference)
            logger.debug("Resolved reference %s: %r", reference.describe(), outcome)
            return reference.bind(outcome)

    def validate(self, reference: ServiceReference) -> None:
        """Surface the resolution error of a mandatory reference upfront.

        Args:
            reference: The reference to check

        Raises:
            ServiceNotFoundError: When nothing matches a mandatory reference
            AmbiguousServiceError: When several services match a mandatory
                by-type reference
        """
        outcome = self.resolve(reference)
        if outcome.status == ResolutionStatus.FAILED:
            raise outcome.error

    def _compute(self, reference: ServiceReference) -> Resolution:
        if reference.requested_name is not None:
            descriptor = self._registry.lookup_by_name(reference.requested_name)
            if descriptor is None:
                return self._not_found(
                    reference,
                    f"No service named '{reference.requested_name}' is registered.",
                )
            if not is_assignable(descriptor.declared_type, reference.requested_type):
                return self._not_found(
                    reference,
                    f"Service '{descriptor.name}' has type {descriptor.type_name}, "
                    f"which is not compatible with {_type_name(reference.requested_type)}.",
                )
            return Resolution.resolved(descriptor)

        candidates = self._registry.lookup_by_type(reference.requested_type)
        if not candidates:
            return self._not_found(
                reference,
                f"No service of type {_type_name(reference.requested_type)} is registered.",
            )
        if len(candidates) == 1:
            return Resolution.resolved(candidates[0])
        return self._degrade(reference, self._ambiguous(reference, candidates))

    def _not_found(self, reference: ServiceReference, reason: str) -> Resolution:
        registered = ", ".join(self._registry.names()) or "None"
        error = ServiceNotFoundError(
            f"Cannot resolve service reference {reference.describe()}. {reason}\n"
            f"Registered services: {registered}"
        )
        return self._degrade(reference, error)

    def _ambiguous(
        self,
        reference: ServiceReference,
        candidates: List[ServiceDescriptor],
    ) -> AmbiguousServiceError:
        found = ", ".join(f"{d.name}: {d.type_name}" for d in candidates)
        return AmbiguousServiceError(
            f"Cannot resolve service by type {_type_name(reference.requested_type)} "
            f"when there are {len(candidates)} matching services. "
            f"Services found: {found}.\n"
            f"Hint: provide a service name, or bind the reference explicitly.",
            candidates=[(d.name, d.declared_type) for d in candidates],
        )

    @staticmethod
    def _degrade(reference: ServiceReference, error: BuildServiceError) -> Resolution:
        if reference.optional:
            return Resolution.absent()
        return Resolution.failed(error)


def _type_name(t) -> str:
    return getattr(t, '__name__', str(t))
