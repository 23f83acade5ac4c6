"""
Consumer Declaration Tests

Tests for declaring shared service dependencies as class attributes
via service_reference(), on ServiceConsumer subclasses and plain classes.
"""

import concurrent.futures
import os
import sys
import threading
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from buildservices import (
    NotStartedError,
    ReferenceOverrideError,
    ReferenceValidationError,
    ServiceConsumer,
    ServiceHandle,
    ServiceNotFoundError,
    ServiceReferenceDescriptor,
    SharedServices,
    references_of,
    service_reference,
)
from conftest import BuildServicesTestCase, register_simple
from fixtures import AuditService, CountingService, InstanceCounter, SubCountingService


class CountTask(ServiceConsumer):
    counter = service_reference(CountingService)
    audit = service_reference(AuditService, optional=True)

    def __init__(self, session):
        self._session = session

    def get_session(self):
        return self._session

    def run(self):
        count = self.counter.get().increment()
        if self.audit.is_present():
            self.audit.get().record(count)
        return count


class NamedCountTask(CountTask):
    counter = service_reference(CountingService, name="counter")


class TestServiceReferenceDescriptor(BuildServicesTestCase):
    """Tests for service_reference() attributes"""

    def test_class_access_returns_descriptor(self):
        """Accessing the attribute on the class returns the declaration"""
        self.assertIsInstance(CountTask.counter, ServiceReferenceDescriptor)
        self.assertIs(CountTask.counter.requested_type, CountingService)
        self.assertIn("CountingService", repr(CountTask.counter))

    def test_instance_access_returns_handle(self):
        """Accessing the attribute on an instance returns a stable handle"""
        task = CountTask(self.session)

        handle = task.counter

        self.assertIsInstance(handle, ServiceHandle)
        self.assertIs(task.counter, handle)
        self.assertIs(handle.reference.requested_type, CountingService)
        self.assertFalse(handle.reference.optional)

    def test_each_instance_has_its_own_reference(self):
        """References are per consumer instance"""
        first = CountTask(self.session)
        second = CountTask(self.session)

        self.assertIsNot(first.counter.reference, second.counter.reference)

    def test_handle_access_is_lazy(self):
        """Declaring and accessing a handle creates nothing"""
        factory = InstanceCounter()
        self.session.register_service("counter", CountingService, factory)
        task = CountTask(self.session)

        self.assertTrue(task.counter.is_present())
        self.assertEqual(factory.calls, 0)

    def test_tasks_share_the_service(self):
        """Every task increments the same shared counter"""
        register_simple(self.session, "counter", CountingService)
        tasks = [CountTask(self.session) for _ in range(3)]

        results = [task.run() for task in tasks]

        self.assertEqual(results, [1, 2, 3])

    def test_optional_reference_absent(self):
        """An optional reference without a service is absent"""
        register_simple(self.session, "counter", CountingService)
        task = CountTask(self.session)

        self.assertFalse(task.audit.is_present())
        self.assertIsNone(task.audit.get())

    def test_optional_reference_present(self):
        """An optional reference resolves when the service exists"""
        register_simple(self.session, "counter", CountingService)
        register_simple(self.session, "audit", AuditService)
        task = CountTask(self.session)

        task.run()

        self.assertEqual(task.audit.get().entries, [1])

    def test_mandatory_reference_missing(self):
        """A missing mandatory service fails on access"""
        task = CountTask(self.session)

        with self.assertRaises(ServiceNotFoundError):
            task.run()

    def test_named_reference_in_subclass(self):
        """A subclass can narrow the reference to a name"""
        register_simple(self.session, "counter", CountingService)
        register_simple(self.session, "altCounter", SubCountingService)
        task = NamedCountTask(self.session)

        task.run()

        self.assertEqual(task.counter.reference.requested_name, "counter")
        self.assertNotIsInstance(task.counter.get(), SubCountingService)

    def test_concurrent_first_access_shares_one_handle(self):
        """Threads touching a new attribute at once all get the same handle"""
        task = CountTask(self.session)
        barrier = threading.Barrier(16)

        def access():
            barrier.wait()
            return task.counter

        with concurrent.futures.ThreadPoolExecutor(max_workers=16) as executor:
            handles = list(executor.map(lambda _: access(), range(16)))

        self.assertTrue(all(h is handles[0] for h in handles))
        self.assertEqual(
            [r for r in self.session.references if r.requested_type is CountingService],
            [handles[0].reference],
        )


class TestExplicitBindingOnConsumer(BuildServicesTestCase):
    """Tests for binding handles explicitly"""

    def test_set_resolves_ambiguity(self):
        """set() binds the reference and skips by-type resolution"""
        register_simple(self.session, "counter", CountingService)
        alt = register_simple(self.session, "altCounter", SubCountingService)
        task = CountTask(self.session)

        task.counter.set(alt)

        self.assertIsInstance(task.counter.get(), SubCountingService)

    def test_assignment_binds(self):
        """Assigning to the attribute is the same as set()"""
        instance = CountingService()
        task = CountTask(self.session)

        task.counter = instance

        self.assertIs(task.counter.get(), instance)

    def test_set_after_use_raises(self):
        """A reference used already cannot be bound"""
        register_simple(self.session, "counter", CountingService)
        task = CountTask(self.session)
        task.counter.get()

        with self.assertRaises(ReferenceOverrideError):
            task.counter.set(CountingService())


class TestConsumerValidation(BuildServicesTestCase):
    """Tests for references_of() and validate_all(*consumers)"""

    def test_references_of_lists_declarations(self):
        """All declared references are listed, including inherited ones"""
        task = NamedCountTask(self.session)

        references = references_of(task)

        self.assertEqual(len(references), 2)
        self.assertIn(task.counter.reference, references)
        self.assertIn(task.audit.reference, references)

    def test_handles_are_tracked_by_session(self):
        """Accessing a handle tracks its reference in the consumer's session"""
        task = CountTask(self.session)

        reference = task.counter.reference

        self.assertIn(reference, self.session.references)

    def test_validate_consumers_upfront(self):
        """validate_all() reports a consumer's unresolvable references"""
        register_simple(self.session, "counter", CountingService)
        register_simple(self.session, "altCounter", SubCountingService)
        task = CountTask(self.session)

        with self.assertRaises(ReferenceValidationError) as ctx:
            self.session.validate_all(task)

        self.assertEqual(len(ctx.exception.errors), 1)
        self.assertIn("altCounter", str(ctx.exception))


class PlainTask:
    """Consumer without its own session: resolves against the global one"""
    counter = service_reference(CountingService)


class TestGlobalConsumers(BuildServicesTestCase):
    """Tests for consumers using the global session"""

    def test_plain_class_uses_global_session(self):
        """Plain classes resolve against SharedServices"""
        session = SharedServices.start()
        register_simple(session, "counter", CountingService)

        task = PlainTask()

        self.assertEqual(task.counter.get().increment(), 1)
        self.assertIn(task.counter.reference, session.references)

    def test_plain_class_without_global_session(self):
        """Accessing a handle before start() raises NotStartedError"""
        task = PlainTask()

        with self.assertRaises(NotStartedError):
            task.counter.get()


if __name__ == '__main__':
    unittest.main()
