"""
Configuration

Configuration models for build sessions and shared service parameters.
Both are immutable pydantic models that reject unknown fields.
"""

import os
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

P = TypeVar('P', bound='BaseServiceParameters')

_TRUTHY = ("true", "1", "yes")


class BaseServiceParameters(BaseModel):
    """Base class for the parameters of a shared service.

    Subclass it to describe what a service needs to be constructed, and
    let the factory close over the parameters instance::

        class CounterParameters(BaseServiceParameters):
            start: int = 0

        params = CounterParameters(start=10)
        session.register_service(
            "counter",
            CountingService,
            lambda: CountingService(params.start),
            parameters=params,
        )
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
    )

    @classmethod
    def from_properties(cls: Type[P], properties: Dict[str, Any]) -> P:
        """Create parameters from a properties dictionary with validation.

        Args:
            properties: Dictionary containing the parameter values

        Returns:
            Validated parameters instance

        Raises:
            ValidationError: If properties are invalid or missing required fields
        """
        return cls.model_validate(properties)


class SessionConfiguration(BaseModel):
    """Configuration of a build session.

    Attributes:
        default_max_parallel_usages: Lease limit applied to services
            registered without their own ``max_parallel_usages``.
            None means unlimited.
        check_factory_type: Reject factory results that are not instances
            of the service's declared type.
        raise_on_close_errors: Raise ``ServiceCloseError`` from
            ``finalize_all()`` when a service fails to close. When False the
            failures are logged instead.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
    )

    default_max_parallel_usages: Optional[int] = Field(
        default=None, gt=0, description="Default lease limit per service"
    )
    check_factory_type: bool = Field(
        default=True, description="Validate factory results against the declared type"
    )
    raise_on_close_errors: bool = Field(
        default=True, description="Raise aggregated close failures at finalization"
    )

    @classmethod
    def from_properties(cls, properties: Dict[str, Any]) -> 'SessionConfiguration':
        """Create configuration from properties with environment fallback.

        Explicit properties take priority over environment variables, which
        take priority over the defaults.

        Environment variables used:
        - BUILDSERVICES_DEFAULT_MAX_PARALLEL_USAGES: positive integer
        - BUILDSERVICES_CHECK_FACTORY_TYPE: "true"/"1"/"yes" enables
        - BUILDSERVICES_RAISE_ON_CLOSE_ERRORS: "true"/"1"/"yes" enables

        Args:
            properties: Configuration properties dictionary

        Returns:
            Validated configuration instance

        Raises:
            ValidationError: If configuration is invalid

        Example::

            os.environ["BUILDSERVICES_DEFAULT_MAX_PARALLEL_USAGES"] = "2"
            config = SessionConfiguration.from_properties({})
            config.default_max_parallel_usages  # 2
        """
        config_data = dict(properties)

        if "default_max_parallel_usages" not in config_data:
            limit = os.getenv("BUILDSERVICES_DEFAULT_MAX_PARALLEL_USAGES")
            if limit:
                config_data["default_max_parallel_usages"] = limit

        for key in ("check_factory_type", "raise_on_close_errors"):
            if key not in config_data:
                value = os.getenv(f"BUILDSERVICES_{key.upper()}")
                if value is not None:
                    config_data[key] = value.lower() in _TRUTHY

        return cls.model_validate(config_data)
