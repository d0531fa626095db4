"""EC2 adapter.

Thin layer over the EC2 API: launch, describe, stop, terminate and a
bounded wait. Every botocore failure is re-raised as ProviderError with
the original code and message; nothing is swallowed here.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from ghrunner.constants import InstanceState, MarketType
from ghrunner.core.exceptions import (
    InstanceNotFoundError,
    LaunchError,
    ProviderError,
    UnexpectedStateError,
)
from ghrunner.types import Instance, LaunchSpec
from ghrunner.wait import Clock, SystemClock, wait_for_ready

from .clients import EC2ClientFactory
from .config import AWS

log = logger.bind(component="aws")

NOT_FOUND_CODES = frozenset({"InvalidInstanceID.NotFound", "InvalidInstanceID.Malformed"})


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _error_message(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Message", "") or str(exc)


@asynccontextmanager
async def _translate_errors(operation: str, instance_id: str | None = None) -> AsyncIterator[None]:
    try:
        yield
    except ClientError as e:
        code = _error_code(e)
        error_cls = InstanceNotFoundError if code in NOT_FOUND_CODES else ProviderError
        raise error_cls(
            _error_message(e), code=code, operation=operation, instance_id=instance_id
        ) from e
    except BotoCoreError as e:
        raise ProviderError(
            str(e), code=type(e).__name__, operation=operation, instance_id=instance_id
        ) from e


def _parse_instance(raw: dict[str, Any]) -> Instance:
    return Instance(
        id=raw["InstanceId"],
        state=raw.get("State", {}).get("Name", ""),
        instance_type=raw.get("InstanceType", ""),
        spot=raw.get("InstanceLifecycle") == "spot",
        private_ip=raw.get("PrivateIpAddress", ""),
    )


def build_run_args(spec: LaunchSpec) -> dict[str, Any]:
    """Build RunInstances arguments for a single runner instance."""
    run_args: dict[str, Any] = {
        "ImageId": spec.image_id,
        "InstanceType": spec.instance_type,
        "MinCount": 1,
        "MaxCount": 1,
        "SubnetId": spec.subnet_id,
        "SecurityGroupIds": [spec.security_group_id],
        "UserData": spec.user_data,
        "TagSpecifications": [
            {
                "ResourceType": "instance",
                "Tags": [{"Key": k, "Value": v} for k, v in spec.tags.items()],
            }
        ],
    }

    if spec.market_type is MarketType.SPOT:
        spot_options: dict[str, Any] = {"SpotInstanceType": "one-time"}
        if spec.spot_max_price:
            spot_options["MaxPrice"] = spec.spot_max_price
        run_args["InstanceMarketOptions"] = {
            "MarketType": "spot",
            "SpotOptions": spot_options,
        }

    return run_args


class EC2Provider:
    """EC2 implementation of the compute provider contract."""

    def __init__(
        self,
        ec2: EC2ClientFactory,
        config: AWS | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._ec2 = ec2
        self._config = config or AWS()
        self._clock = clock or SystemClock()

    async def launch(self, spec: LaunchSpec) -> Instance:
        run_args = build_run_args(spec)
        async with _translate_errors("RunInstances"), self._ec2() as ec2:
            response = await ec2.run_instances(**run_args)

        instances = [_parse_instance(raw) for raw in response.get("Instances", [])]
        if not instances:
            raise LaunchError("RunInstances returned no instances")

        instance = instances[0]
        log.info(
            "Launched {id} ({type}, {market})",
            id=instance.id, type=spec.instance_type, market=spec.market_type.value,
        )
        return instance

    async def describe(self, instance_id: str) -> Instance:
        async with _translate_errors("DescribeInstances", instance_id), self._ec2() as ec2:
            response = await ec2.describe_instances(InstanceIds=[instance_id])

        for reservation in response.get("Reservations", []):
            for raw in reservation.get("Instances", []):
                if raw.get("InstanceId") == instance_id:
                    return _parse_instance(raw)

        raise InstanceNotFoundError(
            "instance not returned by DescribeInstances",
            code="InvalidInstanceID.NotFound",
            operation="DescribeInstances",
            instance_id=instance_id,
        )

    async def stop(self, instance_id: str, force: bool = False) -> None:
        async with _translate_errors("StopInstances", instance_id), self._ec2() as ec2:
            await ec2.stop_instances(InstanceIds=[instance_id], Force=force)
        log.info("Stop requested for {id} (force={force})", id=instance_id, force=force)

    async def terminate(self, instance_id: str) -> Instance:
        async with _translate_errors("TerminateInstances", instance_id), self._ec2() as ec2:
            response = await ec2.terminate_instances(InstanceIds=[instance_id])

        for change in response.get("TerminatingInstances", []):
            if change.get("InstanceId") == instance_id:
                state = change.get("CurrentState", {}).get("Name", "")
                log.info("Terminate requested for {id}, now {state}", id=instance_id, state=state)
                return Instance(id=instance_id, state=state)

        raise ProviderError(
            "no terminating instance returned",
            operation="TerminateInstances",
            instance_id=instance_id,
        )

    async def wait_for_state(self, instance_id: str, target: str, timeout: float) -> Instance:
        """Poll until the instance reaches `target`.

        A not-found answer is treated as eventual consistency right after
        launch and keeps polling. Reaching shutting-down or terminated while
        waiting for anything else fails fast.
        """

        async def poll() -> Instance | None:
            try:
                return await self.describe(instance_id)
            except InstanceNotFoundError:
                log.debug("Instance not found yet (eventual consistency): {id}", id=instance_id)
                return None

        def failed(instance: Instance) -> BaseException | None:
            dead = {InstanceState.SHUTTING_DOWN, InstanceState.TERMINATED}
            if instance.state in dead and target not in dead:
                return UnexpectedStateError(instance_id, instance.state, target)
            return None

        return await wait_for_ready(
            poll_fn=poll,
            ready_check=lambda i: i.state == target,
            failure_check=failed,
            timeout=timeout,
            interval=self._config.poll_interval,
            description=f"EC2 instance {instance_id} to be {target}",
            clock=self._clock,
        )
