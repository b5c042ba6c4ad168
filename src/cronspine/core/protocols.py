"""
Protocol definitions for cronspine.

Only the synchronous ``Connection`` protocol is needed: run history lives in
SQLite and every repository talks to it through this interface, so tests can
substitute an in-memory connection or a mock.

Tags:
    protocols, typing, connection, duck-typing
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """Minimal SYNCHRONOUS DB-API style connection.

    ``execute`` returns a cursor-like object (``fetchone``/``fetchall``/
    ``rowcount``); ``fetchone``/``fetchall`` on the connection itself read the
    most recent result set.
    """

    def execute(self, sql: str, params: tuple = ()) -> Any: ...

    def executemany(self, sql: str, params: list[tuple]) -> Any: ...

    def fetchone(self) -> Any: ...

    def fetchall(self) -> list: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
