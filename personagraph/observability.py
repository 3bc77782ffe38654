"""Observability port and read-path result type.

Components never import a logging backend directly; they receive an
``Observer`` at construction. ``LoguruObserver`` is the default, backed by
the loguru configuration in ``personagraph.log_config``.

Read paths (traversal, search, statistics, context) report failures
through ``ReadResult``: ``Ok`` carries the value, ``Degraded`` carries a
default value plus the cause. Callers always get a usable value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Protocol, TypeVar, Union, runtime_checkable

from personagraph.log_config import get_logger

T = TypeVar("T")


@runtime_checkable
class Observer(Protocol):
    """Telemetry sink injected into every component."""

    def info(self, message: str, **fields: Any) -> None:
        ...

    def error(self, message: str, exc: BaseException | None = None, **fields: Any) -> None:
        ...


def _format_fields(fields: dict[str, Any]) -> str:
    if not fields:
        return ""
    return " | " + " ".join(f"{key}={value}" for key, value in fields.items())


class LoguruObserver:
    """Observer writing to the loguru logger under a component name."""

    def __init__(self, name: str = "personagraph"):
        self._log = get_logger(name)

    def info(self, message: str, **fields: Any) -> None:
        self._log.info(f"{message}{_format_fields(fields)}")

    def error(self, message: str, exc: BaseException | None = None, **fields: Any) -> None:
        detail = f": {exc}" if exc is not None else ""
        self._log.opt(exception=exc).error(
            f"{message}{detail}{_format_fields(fields)}"
        )


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def degraded(self) -> bool:
        return False


@dataclass(frozen=True)
class Degraded(Generic[T]):
    """A read that failed and fell back to a default value."""

    value: T
    cause: BaseException

    @property
    def degraded(self) -> bool:
        return True


ReadResult = Union[Ok[T], Degraded[T]]


async def guard_read(
    observer: Observer,
    operation: str,
    default: T,
    awaitable: Awaitable[T],
    **fields: Any,
) -> ReadResult[T]:
    """Await a read and convert any failure into ``Degraded(default, cause)``.

    The failure is reported to the observer; it is never raised.
    """
    try:
        return Ok(await awaitable)
    except Exception as e:
        observer.error(f"{operation} degraded", exc=e, operation=operation, **fields)
        return Degraded(default, e)
