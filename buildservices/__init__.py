# Public API
from .api import SharedServices
from .configuration import BaseServiceParameters, SessionConfiguration
from .consumer import (
    ServiceConsumer,
    ServiceHandle,
    ServiceReferenceDescriptor,
    references_of,
    service_reference,
)
from .controller import LifecycleController
from .descriptor import ServiceDescriptor
from .exceptions import (
    AlreadyStartedError,
    AmbiguousServiceError,
    BuildServiceError,
    DuplicateNameError,
    FactoryError,
    NotStartedError,
    ReferenceOverrideError,
    ReferenceValidationError,
    RegistryClosedError,
    ServiceCloseError,
    ServiceClosedError,
    ServiceNotFoundError,
    SessionClosedError,
)
from .global_session import GlobalSession
from .lifecycle import ServiceState
from .reference import Resolution, ResolutionStatus, ServiceReference
from .registry import ServiceRegistry
from .resolver import ReferenceResolver
from .session import BuildSession

__all__ = [
    "SharedServices",
    "BuildSession",
    "GlobalSession",
    "ServiceRegistry",
    "ReferenceResolver",
    "LifecycleController",
    "ServiceDescriptor",
    "ServiceState",
    "ServiceReference",
    "Resolution",
    "ResolutionStatus",
    # Configuration
    "BaseServiceParameters",
    "SessionConfiguration",
    # Consumers
    "ServiceConsumer",
    "ServiceHandle",
    "ServiceReferenceDescriptor",
    "service_reference",
    "references_of",
    # Exceptions
    "BuildServiceError",
    "DuplicateNameError",
    "ServiceNotFoundError",
    "AmbiguousServiceError",
    "FactoryError",
    "ServiceClosedError",
    "ServiceCloseError",
    "ReferenceOverrideError",
    "ReferenceValidationError",
    "RegistryClosedError",
    "SessionClosedError",
    "NotStartedError",
    "AlreadyStartedError",
]

__version__ = "0.1.0"
