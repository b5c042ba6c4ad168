"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument. It carries the run-history connection, the runtime port, the clock
used for every "now" inside the operation, and caller identity.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from cronspine.core.protocols import Connection
from cronspine.core.timestamps import ensure_utc, utc_now
from cronspine.runtime.protocol import CronRuntime


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        conn: Run-history connection satisfying :class:`cronspine.core.protocols.Connection`.
        runtime: External runtime port; ``None`` when no runtime is configured.
        request_id: Unique ID for this invocation (auto-generated).
        caller: Origin of the request: ``"api"``, ``"cli"`` or ``"sdk"``.
        dry_run: When ``True``, mutating operations return a preview only.
        clock: Source of the current instant; tests pin it.
    """

    conn: Connection
    runtime: CronRuntime | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    dry_run: bool = False
    clock: Callable[[], datetime] = utc_now

    def now(self) -> datetime:
        """Current instant as aware UTC."""
        return ensure_utc(self.clock())
