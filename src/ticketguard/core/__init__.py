"""
Core Module
============

Shared core utilities and abstractions used across the engine.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from ticketguard.core.exceptions import (
    ApplicationException,
    DomainException,
    ConfigurationException,
    ResourceNotFoundException,
    PolicyNotFoundException,
    ViolationNotFoundException,
    TicketNotFoundException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "ConfigurationException",
    "ResourceNotFoundException",
    "PolicyNotFoundException",
    "ViolationNotFoundException",
    "TicketNotFoundException",
]
