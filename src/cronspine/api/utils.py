"""
Shared API router utilities.

- ``_handle_error()``: convert a failed OperationResult to a ``problem_response``

Tags:
    cronspine, api, utils
"""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse

from cronspine.api.middleware.errors import problem_response, status_for_error_code
from cronspine.ops.result import OperationResult


def _handle_error(result: OperationResult[Any]) -> JSONResponse:
    """Convert a failed ``OperationResult`` into a Problem Details response.

    The error code picks the HTTP status; field-level validation errors are
    listed under ``errors`` and remaining details (``run_id``, ``stderr``)
    are carried as extension members.
    """
    if result.error is None:
        return problem_response(status=500, title="Operation failed", code="INTERNAL")

    error = result.error
    details = dict(error.details)
    errors = None
    if "field" in details:
        errors = [{"code": error.code, "message": error.message, "field": details.pop("field")}]
    return problem_response(
        status=status_for_error_code(error.code),
        title=error.message,
        code=error.code,
        errors=errors,
        extensions=details,
    )
