"""Tests for the EC2 adapter against a stub EC2 client."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from ghrunner.aws import AWS, EC2ClientFactory, EC2Provider, build_run_args
from ghrunner.constants import MarketType
from ghrunner.core.exceptions import (
    InstanceNotFoundError,
    LaunchError,
    ProviderError,
    TimeoutError,
    UnexpectedStateError,
)
from ghrunner.types import LaunchSpec

pytestmark = [pytest.mark.unit]

IID = "i-0123456789abcdef0"


def client_error(code: str, operation: str, message: str = "boom") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def describe_response(*states: str) -> dict[str, Any]:
    return {
        "Reservations": [
            {
                "Instances": [
                    {
                        "InstanceId": IID,
                        "InstanceType": "t3.micro",
                        "State": {"Name": state},
                        "InstanceLifecycle": "spot",
                        "PrivateIpAddress": "10.0.0.5",
                    }
                    for state in states
                ]
            }
        ]
    }


class StubEC2:
    """Minimal async EC2 client: scripted responses, recorded calls."""

    def __init__(self, **responses: Any) -> None:
        self.responses = {k: list(v) if isinstance(v, list) else [v] for k, v in responses.items()}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def _call(self, name: str, **kwargs: Any) -> Any:
        self.calls.append((name, kwargs))
        script = self.responses[name]
        outcome = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def run_instances(self, **kwargs: Any) -> Any:
        return await self._call("run_instances", **kwargs)

    async def describe_instances(self, **kwargs: Any) -> Any:
        return await self._call("describe_instances", **kwargs)

    async def stop_instances(self, **kwargs: Any) -> Any:
        return await self._call("stop_instances", **kwargs)

    async def terminate_instances(self, **kwargs: Any) -> Any:
        return await self._call("terminate_instances", **kwargs)


def factory_for(stub: StubEC2) -> EC2ClientFactory:
    @asynccontextmanager
    async def factory() -> AsyncIterator[StubEC2]:
        yield stub

    return EC2ClientFactory(factory)


@pytest.fixture
def make_ec2(clock):
    def build(**responses: Any) -> tuple[EC2Provider, StubEC2]:
        stub = StubEC2(**responses)
        return EC2Provider(factory_for(stub), AWS(region="eu-west-1", poll_interval=5), clock), stub

    return build


def make_spec(**overrides: Any) -> LaunchSpec:
    defaults = dict(
        image_id="ami-0abc",
        instance_type="t3.micro",
        subnet_id="subnet-0abc",
        security_group_id="sg-0abc",
        user_data="#!/bin/bash\necho hi\n",
        tags={"Name": "GitHub Actions Runner - octo/hello", "Purpose": "GitHub Actions"},
    )
    return LaunchSpec(**(defaults | overrides))


class TestBuildRunArgs:
    def test_on_demand(self):
        args = build_run_args(make_spec())
        assert args["MinCount"] == args["MaxCount"] == 1
        assert args["SecurityGroupIds"] == ["sg-0abc"]
        assert args["SubnetId"] == "subnet-0abc"
        assert args["UserData"] == "#!/bin/bash\necho hi\n"
        assert "InstanceMarketOptions" not in args
        tags = args["TagSpecifications"][0]
        assert tags["ResourceType"] == "instance"
        assert {"Key": "Purpose", "Value": "GitHub Actions"} in tags["Tags"]

    def test_spot_with_max_price(self):
        args = build_run_args(make_spec(market_type=MarketType.SPOT, spot_max_price="0.01"))
        assert args["InstanceMarketOptions"] == {
            "MarketType": "spot",
            "SpotOptions": {"SpotInstanceType": "one-time", "MaxPrice": "0.01"},
        }

    def test_spot_without_max_price(self):
        args = build_run_args(make_spec(market_type=MarketType.SPOT))
        assert args["InstanceMarketOptions"]["SpotOptions"] == {"SpotInstanceType": "one-time"}


class TestLaunch:
    @pytest.mark.asyncio
    async def test_returns_first_instance(self, make_ec2):
        provider, stub = make_ec2(
            run_instances={"Instances": [{"InstanceId": IID, "State": {"Name": "pending"}}]}
        )

        instance = await provider.launch(make_spec())

        assert instance.id == IID
        assert instance.state == "pending"
        assert stub.calls[0][0] == "run_instances"

    @pytest.mark.asyncio
    async def test_no_instances_is_launch_error(self, make_ec2):
        provider, _ = make_ec2(run_instances={"Instances": []})

        with pytest.raises(LaunchError):
            await provider.launch(make_spec())

    @pytest.mark.asyncio
    async def test_client_error_is_translated(self, make_ec2):
        provider, _ = make_ec2(
            run_instances=client_error("InsufficientInstanceCapacity", "RunInstances", "no capacity")
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.launch(make_spec())

        err = exc_info.value
        assert err.code == "InsufficientInstanceCapacity"
        assert err.message == "no capacity"
        assert err.operation == "RunInstances"
        assert isinstance(err.__cause__, ClientError)

    @pytest.mark.asyncio
    async def test_botocore_error_is_translated(self, make_ec2):
        provider, _ = make_ec2(
            run_instances=EndpointConnectionError(endpoint_url="https://ec2.eu-west-1.amazonaws.com")
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.launch(make_spec())

        assert exc_info.value.code == "EndpointConnectionError"


class TestDescribe:
    @pytest.mark.asyncio
    async def test_parses_instance(self, make_ec2):
        provider, stub = make_ec2(describe_instances=describe_response("running"))

        instance = await provider.describe(IID)

        assert instance.state == "running"
        assert instance.spot
        assert instance.private_ip == "10.0.0.5"
        assert stub.calls == [("describe_instances", {"InstanceIds": [IID]})]

    @pytest.mark.asyncio
    async def test_not_found_code(self, make_ec2):
        provider, _ = make_ec2(
            describe_instances=client_error("InvalidInstanceID.NotFound", "DescribeInstances")
        )

        with pytest.raises(InstanceNotFoundError) as exc_info:
            await provider.describe(IID)

        assert exc_info.value.instance_id == IID

    @pytest.mark.asyncio
    async def test_empty_reservations(self, make_ec2):
        provider, _ = make_ec2(describe_instances={"Reservations": []})

        with pytest.raises(InstanceNotFoundError):
            await provider.describe(IID)


class TestStopAndTerminate:
    @pytest.mark.asyncio
    async def test_stop_force(self, make_ec2):
        provider, stub = make_ec2(stop_instances={})

        await provider.stop(IID, force=True)

        assert stub.calls == [("stop_instances", {"InstanceIds": [IID], "Force": True})]

    @pytest.mark.asyncio
    async def test_terminate_returns_transitional_state(self, make_ec2):
        provider, _ = make_ec2(
            terminate_instances={
                "TerminatingInstances": [
                    {"InstanceId": IID, "CurrentState": {"Name": "shutting-down"}}
                ]
            }
        )

        instance = await provider.terminate(IID)

        assert instance.state == "shutting-down"

    @pytest.mark.asyncio
    async def test_state_conflict_is_flagged(self, make_ec2):
        provider, _ = make_ec2(
            terminate_instances=client_error("IncorrectInstanceState", "TerminateInstances")
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.terminate(IID)

        assert exc_info.value.is_state_conflict
        assert "TerminateInstances i-0123456789abcdef0 failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_generic_error_is_not_state_conflict(self, make_ec2):
        provider, _ = make_ec2(terminate_instances=client_error("InternalError", "TerminateInstances"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.terminate(IID)

        assert not exc_info.value.is_state_conflict


class TestWaitForState:
    @pytest.mark.asyncio
    async def test_reaches_target(self, make_ec2, clock):
        provider, _ = make_ec2(
            describe_instances=[
                describe_response("pending"),
                describe_response("pending"),
                describe_response("running"),
            ]
        )

        instance = await provider.wait_for_state(IID, "running", timeout=300)

        assert instance.state == "running"
        assert clock.sleeps == [5, 5]

    @pytest.mark.asyncio
    async def test_not_found_keeps_polling(self, make_ec2, clock):
        provider, _ = make_ec2(
            describe_instances=[
                client_error("InvalidInstanceID.NotFound", "DescribeInstances"),
                describe_response("running"),
            ]
        )

        instance = await provider.wait_for_state(IID, "running", timeout=300)

        assert instance.state == "running"
        assert clock.sleeps == [5]

    @pytest.mark.asyncio
    async def test_terminated_while_waiting_for_running(self, make_ec2):
        provider, _ = make_ec2(describe_instances=describe_response("terminated"))

        with pytest.raises(UnexpectedStateError) as exc_info:
            await provider.wait_for_state(IID, "running", timeout=300)

        assert exc_info.value.state == "terminated"

    @pytest.mark.asyncio
    async def test_deadline(self, make_ec2, clock):
        provider, _ = make_ec2(describe_instances=describe_response("pending"))

        with pytest.raises(TimeoutError) as exc_info:
            await provider.wait_for_state(IID, "running", timeout=12)

        assert exc_info.value.timeout == 12
        assert clock.sleeps == [5, 5, 2]

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, make_ec2):
        provider, _ = make_ec2(
            describe_instances=client_error("UnauthorizedOperation", "DescribeInstances")
        )

        with pytest.raises(ProviderError, match="UnauthorizedOperation"):
            await provider.wait_for_state(IID, "running", timeout=300)
