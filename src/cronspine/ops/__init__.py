"""
Operations layer: the business entry points of cronspine.

- All functions accept ``OperationContext`` as first argument
- All functions return ``OperationResult[T]`` (never raise)
- All functions are transport-agnostic (no HTTP, no CLI knowledge)
- Mutating functions honour ``dry_run``

Usage::

    from cronspine.ops import OperationContext, SqliteConnection
    from cronspine.ops.jobs import create_job
    from cronspine.ops.requests import CreateJobRequest
    from cronspine.runtime import InMemoryRuntime

    ctx = OperationContext(conn=SqliteConnection(), runtime=InMemoryRuntime())
    result = create_job(ctx, CreateJobRequest(name="Nightly", schedule="0 3 * * *"))
    assert result.success
"""

from cronspine.ops.context import OperationContext
from cronspine.ops.result import OperationError, OperationResult, PagedResult
from cronspine.ops.sqlite_conn import SqliteConnection

__all__ = [
    "OperationContext",
    "OperationError",
    "OperationResult",
    "PagedResult",
    "SqliteConnection",
]
