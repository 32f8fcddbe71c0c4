"""
Result utilities for consistent success/error shapes across commands,
transfer reports and JSON output.

Note: Never pass private keys or seed phrases into error messages; results
are printed by the CLI and may be written to JSON reports.
"""

import traceback
from typing import Any, Optional

from besubox.commands.errors import BesuboxError


def ok(data: Optional[Any] = None, **extras: Any) -> dict[str, Any]:
    """Standard success result shape."""
    result: dict[str, Any] = {"success": True}
    if data is not None:
        result["data"] = data
    if extras:
        result.update(extras)
    return result


def fail(
    message: str,
    *,
    error: Optional[Exception] = None,
    include_traceback: bool = False,
    **extras: Any,
) -> dict[str, Any]:
    """Standard failure result shape with optional exception details.

    Args:
        message: Human-readable error message
        error: Optional exception that caused the failure
        include_traceback: Attach the formatted traceback of ``error``
        **extras: Additional fields to include in the result

    Returns:
        Dictionary with success=False. For BesuboxError subclasses the
        error code and details are lifted to the top level.
    """
    result: dict[str, Any] = {"success": False, "error": message}
    if error is not None:
        formatted = format_error(error, include_traceback=include_traceback)
        result["exception"] = formatted
        result["error_type"] = formatted["type"]
        if "code" in formatted:
            result["error_code"] = formatted["code"]
        if "details" in formatted:
            result["error_details"] = formatted["details"]
    if extras:
        result.update(extras)
    return result


def format_error(error: Exception, include_traceback: bool = False) -> dict[str, Any]:
    """Format an exception as a serializable dict.

    Args:
        error: The exception to format
        include_traceback: Whether to add the traceback string

    Returns:
        Dictionary with type and message, plus code/details for BesuboxError.
    """
    result: dict[str, Any] = {
        "type": type(error).__name__,
        "message": error.message if isinstance(error, BesuboxError) else str(error),
    }
    if include_traceback:
        result["traceback"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
    if isinstance(error, BesuboxError):
        if error.code:
            result["code"] = error.code
        if error.details:
            result["details"] = error.details
    return result


def summarize(results: list[dict[str, Any]]) -> dict[str, int]:
    """Count successes and failures in a list of result dicts."""
    succeeded = sum(1 for r in results if r.get("success"))
    return {"total": len(results), "succeeded": succeeded, "failed": len(results) - succeeded}
