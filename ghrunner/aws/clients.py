"""aioboto3 session and EC2 client factory.

Both are injector singletons built when the object graph is created at
process start. The provider opens one short-lived client per EC2 call
through the factory.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

import aioboto3
from injector import Module, provider, singleton

from .config import AWS

type ClientContext = AbstractAsyncContextManager[Any]


class EC2ClientFactory:
    """Opens EC2 clients; `async with factory() as ec2: ...`."""

    __slots__ = ("_open",)

    def __init__(self, open_client: Callable[[], ClientContext]) -> None:
        self._open = open_client

    def __call__(self) -> ClientContext:
        return self._open()

    @classmethod
    def from_session(cls, session: aioboto3.Session, config: AWS) -> EC2ClientFactory:
        return cls(lambda: session.client("ec2", region_name=config.region))


class AWSModule(Module):
    """Provides the aioboto3 session and the EC2 client factory.

    Requires an AWS binding, supplied by SettingsModule.
    """

    @singleton
    @provider
    def provide_session(self) -> aioboto3.Session:
        return aioboto3.Session()

    @singleton
    @provider
    def provide_ec2(self, session: aioboto3.Session, config: AWS) -> EC2ClientFactory:
        return EC2ClientFactory.from_session(session, config)


__all__ = [
    "AWSModule",
    "EC2ClientFactory",
]
