"""
Failover orchestration across provider adapters.

A request for a capability (text or vision) walks the registry's
priority-ordered adapters one at a time. The walk is an explicit state
machine:

    IDLE -> ATTEMPTING(n) -> SUCCEEDED
                          -> ATTEMPTING(n + 1) -> ... -> EXHAUSTED

Every failure kind (rate limit, quota, transport, malformed response) simply
advances to the next adapter; no adapter is tried twice in one run and no
adapter is tried after a success. There is deliberately no health tracking
or circuit breaking: ordering is fixed by priority.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Generic, Iterable, Optional, TypeVar

from product_creator.models.schemas import (
    Capability,
    CompletionRequest,
    CompletionResult,
    VisionCompletionRequest,
)
from product_creator.providers.base import ProviderAdapter
from product_creator.providers.registry import ProviderRegistry
from product_creator.utils.errors import (
    AllProvidersFailedError,
    ErrorHandler,
    ErrorKind,
    NoProviderConfiguredError,
    ProviderError,
    ProviderUnavailableError,
)
from product_creator.utils.logger import get_logger

logger = get_logger(__name__)

ResultT = TypeVar("ResultT")


class FailoverState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass
class ProviderAttempt:
    """One adapter call inside a failover run."""
    provider_id: str
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    latency_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class FailoverOutcome(Generic[ResultT]):
    """Successful result plus the attempt log that led to it."""
    result: ResultT
    provider_id: str
    attempts: list[ProviderAttempt] = field(default_factory=list)

    @property
    def failed_attempts(self) -> list[ProviderAttempt]:
        return [attempt for attempt in self.attempts if not attempt.succeeded]


class FailoverRun:
    """
    Single pass over an ordered adapter list.

    ``next_adapter`` moves to the next candidate (or to EXHAUSTED);
    ``record_success`` and ``record_failure`` close the current attempt.
    Transitions out of a terminal state raise RuntimeError, so a run can
    neither resume after success nor revisit an adapter.
    """

    def __init__(self, capability: Capability | str, adapters: Iterable[ProviderAdapter]):
        self.capability = Capability(capability)
        self._adapters = list(adapters)
        self._index = -1
        self.state = FailoverState.IDLE
        self.attempts: list[ProviderAttempt] = []

    @property
    def current(self) -> Optional[ProviderAdapter]:
        if self.state != FailoverState.ATTEMPTING and self.state != FailoverState.SUCCEEDED:
            return None
        return self._adapters[self._index]

    @property
    def finished(self) -> bool:
        return self.state in (FailoverState.SUCCEEDED, FailoverState.EXHAUSTED)

    def next_adapter(self) -> Optional[ProviderAdapter]:
        """Advance to the next adapter; None once the list is exhausted."""
        if self.finished:
            raise RuntimeError(f"Failover run already {self.state.value}")
        if self.state == FailoverState.ATTEMPTING and len(self.attempts) <= self._index:
            raise RuntimeError("Current attempt has not been recorded")

        self._index += 1
        if self._index >= len(self._adapters):
            self.state = FailoverState.EXHAUSTED
            return None

        self.state = FailoverState.ATTEMPTING
        return self._adapters[self._index]

    def record_success(self, latency_ms: int = 0) -> None:
        adapter = self._require_attempting()
        self.attempts.append(ProviderAttempt(provider_id=adapter.provider_id, latency_ms=latency_ms))
        self.state = FailoverState.SUCCEEDED

    def record_failure(self, error: ProviderError, latency_ms: int = 0) -> None:
        adapter = self._require_attempting()
        self.attempts.append(ProviderAttempt(
            provider_id=adapter.provider_id,
            error=error.message,
            kind=error.kind,
            latency_ms=latency_ms,
        ))

    def failure(self) -> ProviderUnavailableError:
        """The error describing why this run produced no result."""
        if not self._adapters:
            return NoProviderConfiguredError(self.capability.value)
        return AllProvidersFailedError(
            self.capability.value,
            [(attempt.provider_id, attempt.error or "") for attempt in self.attempts],
        )

    def _require_attempting(self) -> ProviderAdapter:
        if self.state != FailoverState.ATTEMPTING or len(self.attempts) > self._index:
            raise RuntimeError("No attempt in progress")
        return self._adapters[self._index]


class FailoverOrchestrator:
    """
    Runs a call against the registry's adapters until one succeeds.

    Example:
        >>> orchestrator = FailoverOrchestrator(registry)
        >>> outcome = await orchestrator.complete(CompletionRequest(prompt="Hi"))
        >>> outcome.provider_id
        'groq'
    """

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    async def execute(
        self,
        capability: Capability | str,
        call: Callable[[ProviderAdapter], Awaitable[ResultT]],
    ) -> FailoverOutcome[ResultT]:
        """
        Try ``call`` on each adapter for ``capability`` in priority order.

        Raises:
            NoProviderConfiguredError: No adapter serves the capability; no
                call is made.
            AllProvidersFailedError: Every adapter failed; lists each error
                in attempt order.
        """
        capability = Capability(capability)
        adapters = self.registry.available_for_capability(capability)
        if not adapters:
            logger.error("No providers configured", capability=capability.value)
            raise NoProviderConfiguredError(capability.value)

        run = FailoverRun(capability, adapters)
        while True:
            adapter = run.next_adapter()
            if adapter is None:
                break

            start = time.perf_counter()
            try:
                result = await call(adapter)
            except ProviderError as e:
                run.record_failure(e, self._elapsed_ms(start))
                logger.warning(
                    "Provider failed, trying next",
                    provider=adapter.provider_id,
                    capability=capability.value,
                    kind=e.kind.value,
                    error=e.message,
                )
                continue
            except Exception as e:
                error = ErrorHandler.to_provider_error(adapter.provider_id, e)
                run.record_failure(error, self._elapsed_ms(start))
                logger.error(
                    "Unexpected provider error, trying next",
                    provider=adapter.provider_id,
                    capability=capability.value,
                    error=str(e),
                )
                continue

            run.record_success(self._elapsed_ms(start))
            logger.info(
                "Provider succeeded",
                provider=adapter.provider_id,
                capability=capability.value,
                attempt=len(run.attempts),
            )
            return FailoverOutcome(result=result, provider_id=adapter.provider_id, attempts=run.attempts)

        error = run.failure()
        logger.error(
            "All providers failed",
            capability=capability.value,
            providers=[attempt.provider_id for attempt in run.attempts],
        )
        raise error

    async def complete(self, request: CompletionRequest) -> FailoverOutcome[CompletionResult]:
        """Text completion on the first text adapter that succeeds."""
        return await self.execute(Capability.TEXT, lambda adapter: adapter.complete(request))

    async def complete_with_vision(
        self,
        request: VisionCompletionRequest,
    ) -> FailoverOutcome[CompletionResult]:
        """Vision completion on the first vision-capable adapter that succeeds."""
        return await self.execute(
            Capability.VISION,
            lambda adapter: adapter.complete_with_vision(request),
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)


__all__ = [
    "FailoverState",
    "ProviderAttempt",
    "FailoverOutcome",
    "FailoverRun",
    "FailoverOrchestrator",
]
