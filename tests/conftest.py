"""
Test Configuration and Utilities

Common base classes and helper functions for buildservices tests
"""

import unittest
from typing import Type

from buildservices import BuildSession, ServiceDescriptor, SharedServices


class BuildServicesTestCase(unittest.TestCase):
    """
    Base test case class for buildservices tests.

    Stops the global session before and after each test and provides a
    fresh isolated session as ``self.session``.
    """

    def setUp(self):
        """Reset global session and create an isolated one"""
        SharedServices.stop()
        self.session = BuildSession()

    def tearDown(self):
        """Close the isolated session and reset the global one"""
        try:
            self.session.close()
        finally:
            SharedServices.stop()


def register_simple(session: BuildSession, name: str, service_class: Type) -> ServiceDescriptor:
    """
    Register ``service_class`` under ``name`` with a factory that simply instantiates it.

    Example:
        >>> register_simple(session, "counter", CountingService)
    """
    return session.register_service(name, service_class, service_class)
