"""
Standardized error responses for the GraveShift API.

Every error body is {"error": <message>, "code": <code>}; this module is the
single mapping from a GraveshiftError to its HTTP status and body.
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from graveshift.errors import GraveshiftError


# Error codes by category
ERROR_CODES = {
    "VAL_001": "Invalid request body",
    "VAL_002": "Request body too large",
    "SRC_001": "Upstream source unavailable",
    "VER_001": "Ownership verification failed",
    "SIG_001": "Signature mismatch",
    "MIG_409": "Asset already migrated",
    "CFG_001": "Configuration error",
    "SYS_001": "Internal server error",
}


def make_error_response(error_code: str, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Create a standardized error body.

    Args:
        error_code: Error code from ERROR_CODES
        message: Custom error message (uses default if not provided)
        extra: Additional top-level fields, e.g. verified=False

    Returns:
        Error body dict
    """
    response = dict(extra)
    response["error"] = message or ERROR_CODES.get(error_code, "Unknown error")
    response["code"] = error_code
    return response


def error_response(
    exc: GraveshiftError,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    """JSONResponse for a domain error, using the error's own status code.

    Example:
        except SourceUnavailable as e:
            return error_response(e)
    """
    if type(exc) is GraveshiftError or exc.status_code >= 500:
        # Unknown failures never leak their message
        content = make_error_response(exc.code, None, **extra)
    else:
        content = make_error_response(exc.code, exc.message, **extra)
    return JSONResponse(content=content, status_code=exc.status_code, headers=headers)
