"""
Public API

This module provides the global API for shared build services. It wraps
a GlobalSession and exposes class methods for managing the run's session.

Example::

    from buildservices import SharedServices

    session = SharedServices.start()
    session.register_service("counter", CountingService, CountingService)

    class CountTask:
        counter = service_reference(CountingService)

    CountTask().counter.get().increment()

    SharedServices.stop()  # closes the counter
"""

from typing import Optional

from .configuration import SessionConfiguration
from .global_session import GlobalSession
from .session import BuildSession


class SharedServices:
    """Global entry point to the current run's BuildSession."""

    _holder: GlobalSession = GlobalSession()

    @classmethod
    def start(cls, configuration: Optional[SessionConfiguration] = None) -> BuildSession:
        """Start the global session.

        Args:
            configuration: Optional session configuration

        Returns:
            The new global BuildSession

        Raises:
            AlreadyStartedError: When already started. Call stop() first.
        """
        return cls._holder.start(configuration)

    @classmethod
    def stop(cls) -> None:
        """Finalize the global session's services and reset.

        Idempotent and safe to call even if never started.
        """
        cls._holder.stop()

    @classmethod
    def is_started(cls) -> bool:
        return cls._holder.get_or_null() is not None

    @classmethod
    def session(cls) -> BuildSession:
        """Get the global session.

        Raises:
            NotStartedError: When start() has not been called
        """
        return cls._holder.get()
