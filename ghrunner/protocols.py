"""Structural contracts between the controller and its collaborators.

Anything implementing these can be handed to the controller, which is how
the tests swap in in-memory fakes for EC2 and GitHub.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ghrunner.types import Instance, LaunchSpec, RegistrationToken


@runtime_checkable
class ComputeProvider(Protocol):
    async def launch(self, spec: LaunchSpec) -> Instance: ...
    async def describe(self, instance_id: str) -> Instance: ...
    async def stop(self, instance_id: str, force: bool = False) -> None: ...
    async def terminate(self, instance_id: str) -> Instance: ...
    async def wait_for_state(self, instance_id: str, target: str, timeout: float) -> Instance: ...


@runtime_checkable
class TokenSource(Protocol):
    async def acquire(self, access_token: str, owner: str, repo: str) -> RegistrationToken: ...
