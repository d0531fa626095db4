from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime

import pytest

from ghrunner.types import Instance, LaunchSpec, RegistrationToken

type Outcome = str | Exception

INSTANCE_ID = "i-0123456789abcdef0"
REGISTRATION_TOKEN = "AABBCCREGISTRATIONTOKEN"


class FakeClock:
    """Clock whose sleep advances time instantly and records the delay."""

    def __init__(self, epoch: float = 1_700_000_000.0) -> None:
        self.now = 0.0
        self.epoch = epoch
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def time(self) -> float:
        return self.epoch + self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeProvider:
    """In-memory compute provider driven by scripted outcomes.

    Each script is a list of state names or exceptions consumed one per
    call; the last entry repeats once the others are used up.
    """

    def __init__(
        self,
        *,
        describe: Iterable[Outcome] = ("running",),
        terminate: Iterable[Outcome] = ("shutting-down",),
        wait: Outcome = "running",
        stop_error: Exception | None = None,
        launch_error: Exception | None = None,
        instance_id: str = INSTANCE_ID,
    ) -> None:
        self.instance_id = instance_id
        self._describe = list(describe)
        self._terminate = list(terminate)
        self._wait = wait
        self._stop_error = stop_error
        self._launch_error = launch_error
        self.calls: list[tuple[str, ...]] = []
        self.launched: list[LaunchSpec] = []

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def _next(self, script: list[Outcome], instance_id: str) -> Instance:
        outcome = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(outcome, Exception):
            raise outcome
        return Instance(id=instance_id, state=outcome)

    async def launch(self, spec: LaunchSpec) -> Instance:
        self.calls.append(("launch",))
        if self._launch_error is not None:
            raise self._launch_error
        self.launched.append(spec)
        return Instance(id=self.instance_id, state="pending", instance_type=spec.instance_type)

    async def describe(self, instance_id: str) -> Instance:
        self.calls.append(("describe", instance_id))
        return self._next(self._describe, instance_id)

    async def stop(self, instance_id: str, force: bool = False) -> None:
        self.calls.append(("stop", instance_id, str(force)))
        if self._stop_error is not None:
            raise self._stop_error

    async def terminate(self, instance_id: str) -> Instance:
        self.calls.append(("terminate", instance_id))
        return self._next(self._terminate, instance_id)

    async def wait_for_state(self, instance_id: str, target: str, timeout: float) -> Instance:
        self.calls.append(("wait_for_state", instance_id, target, str(timeout)))
        if isinstance(self._wait, Exception):
            raise self._wait
        return Instance(id=instance_id, state=self._wait)


class FakeTokens:
    def __init__(self, error: Exception | None = None) -> None:
        self._error = error
        self.calls: list[tuple[str, str, str]] = []

    async def acquire(self, access_token: str, owner: str, repo: str) -> RegistrationToken:
        self.calls.append((access_token, owner, repo))
        if self._error is not None:
            raise self._error
        return RegistrationToken(
            value=REGISTRATION_TOKEN,
            expires_at=datetime(2030, 1, 1, 12, 0, tzinfo=UTC),
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_provider() -> Callable[..., FakeProvider]:
    return FakeProvider


@pytest.fixture
def make_tokens() -> Callable[..., FakeTokens]:
    return FakeTokens


@pytest.fixture
def events() -> list[object]:
    return []
