"""
Error types and fault policy shared across verification boundaries.
"""
from enum import Enum


class InvalidAddressError(ValueError):
    """Address is not a well-formed 20-byte hex address."""


class FaultPolicy(str, Enum):
    """What a boundary does when a collaborator raises."""
    FALLBACK = "fallback"    # degrade to a local/secondary source
    PROPAGATE = "propagate"  # re-raise to the caller
    DENY = "deny"            # convert into a rejected verdict (fail closed)
