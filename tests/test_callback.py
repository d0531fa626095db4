from __future__ import annotations

import pytest

from ghrunner.callback import compose, emit, use_callback
from ghrunner.events import InstanceRunning, RunnerEvent

pytestmark = [pytest.mark.unit]

EVENT = InstanceRunning(instance_id="i-0abc")


def test_emit_without_callback_is_noop():
    emit(EVENT)


def test_use_callback_scopes_delivery():
    seen: list[RunnerEvent] = []

    with use_callback(seen.append):
        emit(EVENT)
    emit(EVENT)

    assert seen == [EVENT]


def test_nested_callbacks_restore_outer():
    outer: list[RunnerEvent] = []
    inner: list[RunnerEvent] = []

    with use_callback(outer.append):
        with use_callback(inner.append):
            emit(EVENT)
        emit(EVENT)

    assert inner == [EVENT]
    assert outer == [EVENT]


class TestCompose:
    def test_fan_out_in_order(self):
        order: list[str] = []
        cb = compose(lambda e: order.append("a"), lambda e: order.append("b"))

        cb(EVENT)

        assert order == ["a", "b"]

    def test_single_is_returned_as_is(self):
        def cb(event: RunnerEvent) -> None: ...

        assert compose(cb) is cb

    def test_empty_is_noop(self):
        compose()(EVENT)
