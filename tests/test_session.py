"""
Build Session Tests

Tests for the per-run BuildSession: registration, reference tracking,
upfront validation and closing.
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from buildservices import (
    AmbiguousServiceError,
    BuildSession,
    RegistryClosedError,
    ReferenceValidationError,
    ServiceCloseError,
    ServiceNotFoundError,
    ServiceState,
    SessionClosedError,
    SessionConfiguration,
)
from conftest import BuildServicesTestCase, register_simple
from fixtures import CountingService, FailingCloseService, InstanceCounter, SubCountingService


class TestSessionBasics(BuildServicesTestCase):
    """Tests for registration and access through a session"""

    def test_register_and_get(self):
        """A registered service is reachable through a declared reference"""
        register_simple(self.session, "counter", CountingService)
        reference = self.session.reference(CountingService, name="counter")

        counter = self.session.get(reference)

        self.assertIsInstance(counter, CountingService)
        self.assertTrue(self.session.is_present(reference))

    def test_reference_is_tracked(self):
        """reference() tracks the reference for validate_all()"""
        reference = self.session.reference(CountingService)

        self.assertEqual(self.session.references, [reference])

    def test_track_is_idempotent(self):
        """Tracking the same reference twice keeps one entry"""
        reference = self.session.reference(CountingService)
        self.session.track(reference)

        self.assertEqual(len(self.session.references), 1)

    def test_use_through_session(self):
        """use() is available on the session"""
        register_simple(self.session, "counter", CountingService)

        with self.session.use(self.session.reference(CountingService)) as counter:
            self.assertEqual(counter.increment(), 1)

    def test_configuration_defaults_reach_registry(self):
        """default_max_parallel_usages applies to registered services"""
        with BuildSession(SessionConfiguration(default_max_parallel_usages=4)) as session:
            descriptor = register_simple(session, "counter", CountingService)

            self.assertEqual(descriptor.max_parallel_usages, 4)


class TestValidateAll(BuildServicesTestCase):
    """Tests for validate_all()"""

    def test_validate_all_passes(self):
        """Resolvable references validate without creating services"""
        factory = InstanceCounter()
        descriptor = self.session.register_service("counter", CountingService, factory)
        self.session.reference(CountingService)
        self.session.reference(CountingService, name="counter")

        self.session.validate_all()

        self.assertEqual(factory.calls, 0)
        self.assertEqual(descriptor.state, ServiceState.UNCREATED)

    def test_validate_all_aggregates_errors(self):
        """Every failing mandatory reference is reported"""
        register_simple(self.session, "counter", CountingService)
        register_simple(self.session, "altCounter", SubCountingService)
        self.session.reference(CountingService)
        self.session.reference(CountingService, name="missing")
        self.session.reference(CountingService, name="missing", optional=True)

        with self.assertRaises(ReferenceValidationError) as ctx:
            self.session.validate_all()

        errors = ctx.exception.errors
        self.assertEqual(len(errors), 2)
        self.assertIsInstance(errors[0], AmbiguousServiceError)
        self.assertIsInstance(errors[1], ServiceNotFoundError)
        self.assertIn("2 service reference(s)", str(ctx.exception))

    def test_validate_single_reference(self):
        """validate() raises for one mandatory reference"""
        reference = self.session.reference(CountingService)

        with self.assertRaises(ServiceNotFoundError):
            self.session.validate(reference)


class TestSessionClose(unittest.TestCase):
    """Tests for closing a session"""

    def test_context_manager_closes_services(self):
        """Exiting the with block closes created services"""
        with BuildSession() as session:
            register_simple(session, "counter", CountingService)
            counter = session.get(session.reference(CountingService))

        self.assertTrue(session.is_closed)
        self.assertEqual(counter.close_calls, 1)

    def test_close_is_idempotent(self):
        """close() can be called several times"""
        session = BuildSession()
        register_simple(session, "counter", CountingService)
        counter = session.get(session.reference(CountingService))

        session.close()
        session.close()

        self.assertEqual(counter.close_calls, 1)

    def test_closed_session_rejects_use(self):
        """A closed session cannot register or hand out services"""
        session = BuildSession()
        reference = session.reference(CountingService)
        session.close()

        with self.assertRaises(SessionClosedError):
            register_simple(session, "counter", CountingService)
        with self.assertRaises(SessionClosedError):
            session.get(reference)
        with self.assertRaises(RegistryClosedError):
            session.registry.register_service("counter", CountingService, CountingService)
        self.assertFalse(session.is_present(reference))

    def test_close_errors_still_close_session(self):
        """A failing service close is raised, the session is closed anyway"""
        session = BuildSession()
        register_simple(session, "failing", FailingCloseService)
        session.get(session.reference(FailingCloseService))

        with self.assertRaises(ServiceCloseError):
            session.close()

        self.assertTrue(session.is_closed)

    def test_exceptions_in_with_block_propagate(self):
        """The context manager does not suppress exceptions"""
        with self.assertRaises(KeyError):
            with BuildSession() as session:
                raise KeyError("boom")

        self.assertTrue(session.is_closed)


if __name__ == '__main__':
    unittest.main()
