"""Source adapter protocol and shared concurrency helper."""

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Protocol

from project_wrapped.records import ActivitySnapshot


@dataclass
class ConnectionResult:
    """Outcome of a connectivity check."""

    success: bool
    message: str
    details: dict[str, Any] = field(default_factory=dict)


class ActivitySource(Protocol):
    """Fetches one period of activity from an upstream platform."""

    async def fetch(self, date_from: date, date_to: date) -> ActivitySnapshot: ...

    async def test_connection(self) -> ConnectionResult: ...

    async def close(self) -> None: ...


def _first_error(group: BaseExceptionGroup) -> BaseException:
    error: BaseException = group
    while isinstance(error, BaseExceptionGroup):
        error = error.exceptions[0]
    return error


async def gather_all(*coros: Coroutine[Any, Any, Any]) -> list[Any]:
    """Run coroutines concurrently and return their results in order.

    The first failure cancels the coroutines still running, waits for them
    to finish, and is raised on its own rather than inside an
    ExceptionGroup.

    Raises:
        Exception: The first exception raised by any of the coroutines.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except BaseExceptionGroup as e:
        error = _first_error(e)
        raise error from error.__cause__
    return [task.result() for task in tasks]
