"""
FallbackOrchestrator - walks an ordered provider chain until one succeeds.

Key guarantees:
- First success wins; providers are tried strictly in order, never in parallel
- Unconfigured providers are skipped without touching the executor or the timeout
- A model that hits a rate limit is skipped for the rest of the run; when the
  credential itself is out of credit every model behind it is skipped
- Every call is bounded by a timeout; expiry counts as a transient failure
- Only exhaustion of the whole chain is reported as a stage failure
"""

import asyncio
import functools
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from models.outcome import ADVANCE_KINDS, ErrorKind, ProviderOutcome
from providers.base_adapter import BaseProviderAdapter
from utils.logger import get_logger

logger = get_logger(__name__)


class RunCanceled(Exception):
    """Raised internally when the caller's cancel event fires mid-call."""


class ParseFailure(Exception):
    """Raised by a stage parse hook when a provider's text is unusable."""

    def __init__(self, kind: ErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


class RunState(str, Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    STRUCTURING = "structuring"
    RETRIEVING_EVIDENCE = "retrieving_evidence"
    GENERATING = "generating"
    VALIDATED = "validated"
    FAILED = "failed"


@dataclass(frozen=True)
class AttemptRecord:
    stage: str
    provider: str
    outcome: str
    latency_ms: int = 0
    detail: str = ""


@dataclass
class RunContext:
    """Per-run mutable state. Never shared between pipeline runs."""

    operation: str
    cancel_event: asyncio.Event | None = None
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: RunState = RunState.IDLE
    rate_limited: set[str] = field(default_factory=set)
    exhausted_credentials: set[str] = field(default_factory=set)
    attempts: list[AttemptRecord] = field(default_factory=list)

    @property
    def canceled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def is_rate_limited(self, adapter: BaseProviderAdapter) -> bool:
        return adapter.label in self.rate_limited or adapter.provider_name in self.exhausted_credentials

    def mark_rate_limited(self, adapter: BaseProviderAdapter, outcome: ProviderOutcome) -> None:
        if outcome.credential_exhausted:
            self.exhausted_credentials.add(adapter.provider_name)
        else:
            self.rate_limited.add(adapter.label)

    def transition(self, state: RunState) -> None:
        logger.info(
            f"{self.operation}: {self.state.value} -> {state.value}",
            extra={"extra_fields": {"run_id": self.run_id, "operation": self.operation}},
        )
        self.state = state

    def summary(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "attempts": [
                {
                    "stage": a.stage,
                    "provider": a.provider,
                    "outcome": a.outcome,
                    "latency_ms": a.latency_ms,
                }
                for a in self.attempts
            ],
        }


@dataclass(frozen=True)
class StageRequest:
    stage: str
    prompt: str
    system_context: str = ""


async def await_with_cancel(awaitable: Awaitable[Any], cancel_event: asyncio.Event | None, timeout: float) -> Any:
    """
    Await ``awaitable`` for at most ``timeout`` seconds, aborting early if
    ``cancel_event`` is set.

    Raises:
        asyncio.TimeoutError: the deadline passed first
        RunCanceled: the cancel event fired first
    """
    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None
    pending = {task} if waiter is None else {task, waiter}
    try:
        done, _ = await asyncio.wait(pending, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for fut in pending:
            if not fut.done():
                fut.cancel()

    if task in done:
        return task.result()
    if waiter is not None and waiter in done:
        raise RunCanceled()
    raise asyncio.TimeoutError()


class FallbackOrchestrator:
    def __init__(self, timeout_s: float = 45.0):
        self.timeout_s = timeout_s

    async def _call(self, adapter: BaseProviderAdapter, request: StageRequest, run: RunContext) -> ProviderOutcome:
        loop = asyncio.get_running_loop()
        call_fn = functools.partial(adapter.invoke, request.prompt, request.system_context, self.timeout_s)
        start_time = loop.time()
        try:
            return await await_with_cancel(loop.run_in_executor(None, call_fn), run.cancel_event, self.timeout_s)
        except asyncio.TimeoutError:
            latency_ms = int((loop.time() - start_time) * 1000)
            return ProviderOutcome.failure(
                adapter.label, ErrorKind.TRANSIENT, f"timed out after {self.timeout_s}s", latency_ms
            )

    def _apply_parse(self, outcome: ProviderOutcome, parse: Callable[[str], Any] | None) -> ProviderOutcome:
        if parse is None or outcome.is_error:
            return outcome
        try:
            payload = parse(outcome.text)
        except ParseFailure as pf:
            return ProviderOutcome.failure(outcome.provider, pf.kind, pf.detail, outcome.latency_ms)
        return replace(outcome, payload=payload)

    def _log_failure(self, outcome: ProviderOutcome, request: StageRequest, run: RunContext) -> None:
        fields = {
            "run_id": run.run_id,
            "stage": request.stage,
            "provider": outcome.provider,
            "error_kind": outcome.error.value,
            "detail": outcome.detail,
        }
        if outcome.error == ErrorKind.UNCONFIGURED:
            logger.debug(f"Skipping {outcome.provider}: unconfigured", extra={"extra_fields": fields})
        elif outcome.credential_exhausted:
            logger.warning(
                f"OUT OF CREDIT: every model sharing the credential of {outcome.provider} skipped for this run",
                extra={"extra_fields": fields},
            )
        elif outcome.error == ErrorKind.RATE_LIMITED:
            logger.warning(
                f"RATE LIMITED: {outcome.provider} skipped for the rest of this run",
                extra={"extra_fields": fields},
            )
        else:
            logger.warning(
                f"{outcome.provider} failed ({outcome.error.value}), trying next provider",
                extra={"extra_fields": fields},
            )

    async def run_stage(
        self,
        providers: Sequence[BaseProviderAdapter],
        request: StageRequest,
        *,
        run: RunContext,
        parse: Callable[[str], Any] | None = None,
    ) -> ProviderOutcome:
        """
        Try ``providers`` in order and return the first success.

        Args:
            providers: Ordered fallback chain for the stage
            request: Prompt and system context sent to every provider
            run: Context of the current pipeline run
            parse: Optional hook applied to successful text; raising ParseFailure
                moves on to the next provider

        Returns:
            The first successful ProviderOutcome (with ``payload`` set when a parse
            hook was given), CANCELED, or ALL_PROVIDERS_EXHAUSTED carrying the last
            concrete error in ``detail``
        """
        last_failure: ProviderOutcome | None = None

        for adapter in providers:
            if run.canceled:
                return ProviderOutcome.failure(f"stage:{request.stage}", ErrorKind.CANCELED, "run canceled")

            if run.is_rate_limited(adapter):
                run.attempts.append(AttemptRecord(request.stage, adapter.label, "skipped_rate_limited"))
                continue

            if not adapter.is_configured:
                # adapter answers synchronously without I/O
                outcome = adapter.invoke(request.prompt, request.system_context, self.timeout_s)
            else:
                try:
                    outcome = await self._call(adapter, request, run)
                except RunCanceled:
                    run.attempts.append(AttemptRecord(request.stage, adapter.label, ErrorKind.CANCELED.value))
                    logger.warning(
                        f"Run canceled during {adapter.label}",
                        extra={"extra_fields": {"run_id": run.run_id, "stage": request.stage}},
                    )
                    return ProviderOutcome.failure(f"stage:{request.stage}", ErrorKind.CANCELED, "run canceled")

            outcome = self._apply_parse(outcome, parse)
            run.attempts.append(
                AttemptRecord(
                    stage=request.stage,
                    provider=adapter.label,
                    outcome="success" if outcome.is_success else outcome.error.value,
                    latency_ms=outcome.latency_ms,
                    detail=outcome.detail,
                )
            )

            if outcome.is_success:
                logger.info(
                    f"Stage {request.stage} succeeded with {adapter.label}",
                    extra={"extra_fields": {"run_id": run.run_id, "latency_ms": outcome.latency_ms}},
                )
                return outcome
            if outcome.error not in ADVANCE_KINDS:
                return outcome

            self._log_failure(outcome, request, run)
            if outcome.error == ErrorKind.RATE_LIMITED:
                run.mark_rate_limited(adapter, outcome)
            if last_failure is None or outcome.error != ErrorKind.UNCONFIGURED:
                last_failure = outcome

        if last_failure is not None:
            detail = f"{last_failure.error.value} from {last_failure.provider}: {last_failure.detail}"
        elif providers:
            detail = "every provider was skipped after rate limiting earlier in the run"
        else:
            detail = "no providers in chain"

        logger.error(
            f"All providers exhausted for stage {request.stage}",
            extra={
                "extra_fields": {
                    "run_id": run.run_id,
                    "stage": request.stage,
                    "tried": [a.provider for a in run.attempts if a.stage == request.stage],
                    "last_error": detail,
                }
            },
        )
        return ProviderOutcome.failure(f"stage:{request.stage}", ErrorKind.ALL_PROVIDERS_EXHAUSTED, detail)
