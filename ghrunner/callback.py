"""Context-scoped event dispatch.

The controller calls emit() and whoever installed a callback with
use_callback() receives the event. With no callback installed, emit()
is a no-op, which is what library callers and most tests want.

Example:
    from ghrunner.callback import emit, use_callback

    def on_event(event):
        match event:
            case InstanceLaunched(instance_id=iid):
                print(f"launched {iid}")

    with use_callback(on_event):
        await controller.launch(request, token)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ghrunner.events import RunnerEvent

type Callback = Callable[[RunnerEvent], None]

_callback: ContextVar[Callback | None] = ContextVar("ghrunner_cb", default=None)


def emit(event: RunnerEvent) -> None:
    """Emit event to the current context's callback."""
    cb = _callback.get()
    if cb is not None:
        cb(event)


def compose(*callbacks: Callback) -> Callback:
    """Combine multiple callbacks into one; each receives every event."""
    match callbacks:
        case []:
            return lambda _: None
        case [single]:
            return single
        case _:

            def combined(event: RunnerEvent) -> None:
                for cb in callbacks:
                    cb(event)

            return combined


@contextmanager
def use_callback(cb: Callback) -> Iterator[None]:
    """Context manager that sets the active callback."""
    token = _callback.set(cb)
    try:
        yield
    finally:
        _callback.reset(token)


__all__ = [
    "Callback",
    "emit",
    "compose",
    "use_callback",
]
