"""
ServiceState Enum

Defines the lifecycle states of a shared service
"""

from enum import Enum


class ServiceState(Enum):
    """Lifecycle of a shared service: UNCREATED -> CREATED -> CLOSED"""
    UNCREATED = "UNCREATED"
    CREATED = "CREATED"
    CLOSED = "CLOSED"
