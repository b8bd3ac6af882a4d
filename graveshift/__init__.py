"""
GraveShift core package.

Discovers low-value ("dead") EVM holdings, verifies ownership of a single
asset, and prepares the Solana transaction that records its migration.
"""

__version__ = "0.3.0"

from graveshift.errors import (
    Conflict,
    ConfigurationError,
    GraveshiftError,
    SignatureMismatch,
    SourceUnavailable,
    ValidationError,
    VerificationFailed,
)

__all__ = [
    "__version__",
    "Conflict",
    "ConfigurationError",
    "GraveshiftError",
    "SignatureMismatch",
    "SourceUnavailable",
    "ValidationError",
    "VerificationFailed",
]
