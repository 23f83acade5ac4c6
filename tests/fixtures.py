"""
Test Fixtures

Common test services used across test modules
"""

import threading


class CountingService:
    """Shared counter, closed at the end of the run"""

    def __init__(self):
        self.count = 0
        self.close_calls = 0
        self._lock = threading.Lock()

    def increment(self):
        with self._lock:
            self.count += 1
            return self.count

    def close(self):
        self.close_calls += 1


class SubCountingService(CountingService):
    """Counter subtype, used to make by-type references ambiguous"""
    pass


class AuditService:
    """Service without a close procedure"""

    def __init__(self):
        self.entries = []

    def record(self, entry):
        self.entries.append(entry)


class ManagedResource:
    """Context-manager service"""

    def __init__(self):
        self.exited = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.exited = True
        return False


class FailingCloseService:
    """Service whose close procedure fails"""

    def close(self):
        raise RuntimeError("disk full")


class InstanceCounter:
    """Callable factory counting how often it has been invoked"""

    def __init__(self, service_class=CountingService, delay=None):
        self.service_class = service_class
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
        if self.delay is not None:
            self.delay()
        return self.service_class()
