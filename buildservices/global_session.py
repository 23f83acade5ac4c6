"""
GlobalSession

Default process-wide build session holder used by the SharedServices API
and by consumers that do not name a session of their own.

Example::

    from buildservices.global_session import GlobalSession

    holder = GlobalSession()  # Returns singleton instance
    holder.start()
    session = holder.get()
    holder.stop()
"""

from typing import Optional

from .configuration import SessionConfiguration
from .exceptions import AlreadyStartedError, NotStartedError
from .session import BuildSession


class GlobalSession:
    """Singleton holding the global BuildSession.

    Attributes:
        _session: The global BuildSession (None if not started)
    """

    _instance: Optional['GlobalSession'] = None
    _session: Optional[BuildSession]

    def __new__(cls) -> 'GlobalSession':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._session = None
        return cls._instance

    def get(self) -> BuildSession:
        """Get the current global session.

        Raises:
            NotStartedError: If SharedServices is not started
        """
        if self._session is None:
            raise NotStartedError(
                "SharedServices is not started. Call SharedServices.start() first."
            )
        return self._session

    def get_or_null(self) -> Optional[BuildSession]:
        return self._session

    def start(self, configuration: Optional[SessionConfiguration] = None) -> BuildSession:
        """Start a new global session.

        Raises:
            AlreadyStartedError: If a global session is already running
        """
        if self._session is not None:
            raise AlreadyStartedError(
                "SharedServices is already started. "
                "Call SharedServices.stop() before starting again."
            )
        self._session = BuildSession(configuration)
        return self._session

    def stop(self) -> None:
        """Close the global session and reset to the unstarted state.

        This method is idempotent. The session is detached even when closing
        it raises ServiceCloseError.
        """
        session = self._session
        if session is not None:
            self._session = None
            session.close()
