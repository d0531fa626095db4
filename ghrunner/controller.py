"""Instance lifecycle controller.

Orchestrates one launch or one termination per invocation:

    launch:    token -> labels/name -> user data -> RunInstances -> wait running
    terminate: describe -> (graceful | forced) terminate -> wait terminated

Every call is awaited in sequence. Sleeps and deadlines go through the
injected Clock. Progress is reported with emit(); the controller never
writes to stdout.
"""

from __future__ import annotations

from loguru import logger
from tenacity import (
    RetryCallState,
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from ghrunner import bootstrap
from ghrunner.callback import emit
from ghrunner.constants import (
    FORCE_STOP_GRACE,
    GRACEFUL_TERMINATE_ATTEMPTS,
    KNOWN_STATES,
    LAUNCH_WAIT_TIMEOUT,
    TERMINABLE_STATES,
    TERMINAL_POLL_INTERVAL,
    TERMINATING_STATES,
    InstanceState,
)
from ghrunner.core.exceptions import (
    ForceTerminationError,
    InstanceNotFoundError,
    InvalidStateError,
    ProviderError,
    StateConflictError,
    TerminationError,
    TimeoutError,
    UnexpectedStateError,
)
from ghrunner.events import (
    AlreadyTerminated,
    ForceStopping,
    InstanceLaunched,
    InstanceLaunching,
    InstanceRunning,
    InstanceStateObserved,
    LaunchCompleted,
    RunningWaitFailed,
    TerminateRequested,
    TerminateRetrying,
    TerminationCompleted,
    TerminationStarted,
    TokenAcquired,
    TokenRequested,
    WaitingForRunning,
    WaitingForTermination,
)
from ghrunner.protocols import ComputeProvider, TokenSource
from ghrunner.types import (
    Instance,
    LaunchRequest,
    LaunchResult,
    LaunchSpec,
    RunContext,
    TerminationRequest,
    TerminationResult,
)
from ghrunner.wait import Clock, SystemClock, wait_for_ready

log = logger.bind(component="controller")


class RunnerController:
    """Launches and terminates ephemeral runner instances.

    Args:
        tokens: Source of runner registration tokens.
        provider: Compute provider adapter.
        clock: Clock for sleeps and deadlines.
        launch_wait_timeout: Seconds to wait for a new instance to be running.
    """

    def __init__(
        self,
        tokens: TokenSource,
        provider: ComputeProvider,
        clock: Clock | None = None,
        *,
        launch_wait_timeout: float = LAUNCH_WAIT_TIMEOUT,
    ) -> None:
        self._tokens = tokens
        self._provider = provider
        self._clock = clock or SystemClock()
        self._launch_wait_timeout = launch_wait_timeout

    # =========================================================================
    # Launch
    # =========================================================================

    async def launch(self, request: LaunchRequest, access_token: str) -> LaunchResult:
        """Register and launch one runner instance.

        A token failure aborts before anything is launched. A failed wait
        for `running` is reported but does not fail the launch.
        """
        emit(TokenRequested(repository=request.repository))
        token = await self._tokens.acquire(access_token, request.repo_owner, request.repo_name)
        emit(TokenAcquired(expires_at=token.expires_at))

        run = request.run or RunContext.from_env()
        labels = request.effective_labels(run)
        runner_name = request.runner_name or run.runner_name(int(self._clock.time()))

        user_data = bootstrap.render(
            token.value,
            request.repo_owner,
            request.repo_name,
            labels=labels,
            pre_script=request.pre_runner_script,
            runner_name=runner_name,
        )

        spec = LaunchSpec(
            image_id=request.image_id,
            instance_type=request.instance_type,
            subnet_id=request.subnet_id,
            security_group_id=request.security_group_id,
            user_data=user_data,
            tags=request.tags(labels, runner_name),
            market_type=request.market_type,
            spot_max_price=request.spot_max_price,
        )

        emit(InstanceLaunching(
            image_id=spec.image_id,
            instance_type=spec.instance_type,
            subnet_id=spec.subnet_id,
            security_group_id=spec.security_group_id,
            market_type=spec.market_type,
            spot_max_price=spec.spot_max_price,
            runner_name=runner_name,
            labels=labels,
        ))
        instance = await self._provider.launch(spec)
        emit(InstanceLaunched(instance_id=instance.id, state=instance.state))

        running = await self._wait_running(instance.id)

        result = LaunchResult(
            instance_id=instance.id,
            runner_name=runner_name,
            labels=labels,
            unique_label=run.unique_label,
            market_type=request.market_type,
            running=running,
        )
        emit(LaunchCompleted(result=result))
        return result

    async def _wait_running(self, instance_id: str) -> bool:
        emit(WaitingForRunning(instance_id=instance_id, timeout=self._launch_wait_timeout))
        try:
            await self._provider.wait_for_state(
                instance_id, InstanceState.RUNNING, self._launch_wait_timeout
            )
        except (TimeoutError, UnexpectedStateError, ProviderError) as e:
            log.warning("Instance {id} not confirmed running: {err}", id=instance_id, err=e)
            emit(RunningWaitFailed(instance_id=instance_id, reason=str(e)))
            return False

        emit(InstanceRunning(instance_id=instance_id))
        return True

    # =========================================================================
    # Terminate
    # =========================================================================

    async def terminate(self, request: TerminationRequest) -> TerminationResult:
        """Terminate one instance and wait until it is gone.

        The current state picks the path: terminated is a no-op,
        shutting-down goes straight to the wait, running/stopping/stopped
        are terminated (gracefully or forced) and anything else is refused.
        """
        instance_id = request.instance_id
        emit(TerminationStarted(instance_id=instance_id, timeout=request.timeout, force=request.force))

        instance = await self._provider.describe(instance_id)
        emit(InstanceStateObserved(instance_id=instance_id, state=instance.state))
        log.info("Instance {id} is {state}", id=instance_id, state=instance.state)

        forced = False
        match instance.state:
            case InstanceState.TERMINATED:
                emit(AlreadyTerminated(instance_id=instance_id))
                result = TerminationResult(
                    instance_id=instance_id,
                    state=InstanceState.TERMINATED,
                    already_terminated=True,
                )
                emit(TerminationCompleted(result=result))
                return result
            case InstanceState.SHUTTING_DOWN:
                pass
            case state if state in TERMINABLE_STATES and request.force:
                await self._force_terminate(instance_id)
                forced = True
            case state if state in TERMINABLE_STATES:
                await self._graceful_terminate(instance_id)
            case state:
                raise InvalidStateError(instance_id, state)

        final = await self._wait_terminated(instance_id, request.wait_budget)

        result = TerminationResult(instance_id=instance_id, state=final.state, forced=forced)
        emit(TerminationCompleted(result=result))
        return result

    async def _graceful_terminate(self, instance_id: str) -> None:
        def before_sleep(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            delay = state.next_action.sleep if state.next_action else 0.0
            log.warning(
                "Terminate attempt {n} for {id} failed, retrying in {delay}s: {err}",
                n=state.attempt_number, id=instance_id, delay=delay, err=error,
            )
            emit(TerminateRetrying(
                instance_id=instance_id,
                attempt=state.attempt_number,
                delay=delay,
                error=str(error),
            ))

        @retry(
            stop=stop_after_attempt(GRACEFUL_TERMINATE_ATTEMPTS),
            wait=wait_incrementing(start=1, increment=1),
            retry=retry_if_exception_type(ProviderError),
            before_sleep=before_sleep,
            sleep=self._clock.sleep,
        )
        async def _terminate() -> Instance:
            try:
                return await self._provider.terminate(instance_id)
            except ProviderError as e:
                if e.is_state_conflict:
                    raise StateConflictError(instance_id, e) from e
                raise

        try:
            instance = await _terminate()
        except RetryError as e:
            cause = e.last_attempt.exception()
            raise TerminationError(instance_id, GRACEFUL_TERMINATE_ATTEMPTS, cause) from cause

        emit(TerminateRequested(instance_id=instance_id, state=instance.state))

    async def _force_terminate(self, instance_id: str) -> None:
        try:
            instance = await self._provider.terminate(instance_id)
        except ProviderError as e:
            reason = str(e)
        else:
            if instance.state in TERMINATING_STATES:
                emit(TerminateRequested(instance_id=instance_id, state=instance.state))
                return
            reason = f"instance is '{instance.state}' after terminate"

        log.warning("Terminate of {id} did not take ({reason}), force-stopping", id=instance_id, reason=reason)
        emit(ForceStopping(instance_id=instance_id, reason=reason))

        try:
            await self._provider.stop(instance_id, force=True)
        except ProviderError as e:
            log.warning("Force stop of {id} failed, terminating anyway: {err}", id=instance_id, err=e)

        await self._clock.sleep(FORCE_STOP_GRACE)

        try:
            instance = await self._provider.terminate(instance_id)
        except ProviderError as e:
            raise ForceTerminationError(instance_id, str(e)) from e

        if instance.state not in TERMINATING_STATES:
            raise ForceTerminationError(
                instance_id, f"instance is '{instance.state}' after stop and terminate"
            )
        emit(TerminateRequested(instance_id=instance_id, state=instance.state))

    async def _wait_terminated(self, instance_id: str, budget: float) -> Instance:
        emit(WaitingForTermination(instance_id=instance_id, budget=budget))

        async def poll() -> Instance:
            try:
                return await self._provider.describe(instance_id)
            except InstanceNotFoundError:
                log.info("Instance {id} no longer exists, treating as terminated", id=instance_id)
                return Instance(id=instance_id, state=InstanceState.TERMINATED)

        def failed(instance: Instance) -> BaseException | None:
            if instance.state not in KNOWN_STATES:
                return UnexpectedStateError(instance_id, instance.state, InstanceState.TERMINATED)
            return None

        return await wait_for_ready(
            poll_fn=poll,
            ready_check=lambda i: i.is_terminated,
            failure_check=failed,
            timeout=budget,
            interval=TERMINAL_POLL_INTERVAL,
            description=f"instance {instance_id} to terminate",
            clock=self._clock,
        )


__all__ = ["RunnerController"]
