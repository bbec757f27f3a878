"""Drive a coroutine that never suspends to completion without an event loop."""

from __future__ import annotations

import typing

_T = typing.TypeVar("_T")


def iter_coroutine(coro: typing.Coroutine[None, None, _T]) -> _T:
    """Run ``coro`` synchronously and return its result.

    The sync clients share their ``async def`` business logic with the async
    clients. Over a ``BlockingTransport`` those coroutines finish on the first
    ``send(None)``; anything that yields to an event loop is a programming
    error and raises ``RuntimeError``.
    """
    try:
        coro.send(None)
    except StopIteration as stop:
        return stop.value  # type: ignore [no-any-return]
    else:
        raise RuntimeError(f"coroutine {coro!r} suspended; it cannot run on a blocking transport")
    finally:
        coro.close()


__all__ = ["iter_coroutine"]
