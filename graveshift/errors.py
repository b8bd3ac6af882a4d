"""Error taxonomy for the resurrection pipeline."""
from typing import Any, Dict, Optional


class GraveshiftError(Exception):
    """Base exception for all GraveShift errors.

    Anything that reaches the HTTP boundary without a more specific type is
    reported as an unknown failure with a generic message.
    """
    code: str = "SYS_001"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(GraveshiftError):
    """Malformed or missing input. The message names the offending field."""
    code = "VAL_001"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class SourceUnavailable(GraveshiftError):
    """An upstream indexer or RPC endpoint returned a non-success status."""
    code = "SRC_001"
    status_code = 400

    def __init__(self, message: str, source: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, {"source": source, "status": status})
        self.source = source
        self.status = status


class VerificationFailed(GraveshiftError):
    """On-chain checks did not confirm ownership or balance."""
    code = "VER_001"
    status_code = 400


class SignatureMismatch(GraveshiftError):
    """Recovered signer differs from the claimed owner."""
    code = "SIG_001"
    status_code = 400


class Conflict(GraveshiftError):
    """Migration record already exists for this account and asset."""
    code = "MIG_409"
    status_code = 409


class ConfigurationError(GraveshiftError):
    """Configuration error."""
    code = "CFG_001"
    status_code = 500
