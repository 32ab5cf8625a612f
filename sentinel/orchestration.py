"""
Analysis Orchestration for SentinelAI

One state machine per analysis kind for the currently selected threat:

    idle -> generating -> ready | errored

Changing the selection resets every kind to idle. Each request is tagged
with the selection token that was current when it was triggered, and a
reply carrying an old token is dropped instead of being applied.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .aggregator import ThreatAggregator
from .llm_client import LLMClient
from .models import Audience, AudienceSegment, Threat, Tone

logger = logging.getLogger(__name__)

ANALYSIS_TIMEOUT_SECONDS = 60


class AnalysisKind(str, Enum):
    ESCALATION = "escalation"
    COMPOUND_RISK = "compound_risk"
    SEGMENTATION = "segmentation"
    DRAFT = "draft"
    SUMMARY = "summary"


class AnalysisStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    READY = "ready"
    ERRORED = "errored"


# Run on selection change; everything else waits for an explicit trigger
AUTOMATIC_KINDS = (AnalysisKind.ESCALATION, AnalysisKind.COMPOUND_RISK)

ERROR_MESSAGES = {
    AnalysisKind.ESCALATION: "Failed to generate prediction. Please try again.",
    AnalysisKind.COMPOUND_RISK: "Failed to analyze compound risks. Please try again.",
    AnalysisKind.SEGMENTATION: "Failed to analyze audience segments.",
    AnalysisKind.DRAFT: "Failed to generate alerts. Please try again.",
    AnalysisKind.SUMMARY: "Unable to generate summary. Please try again.",
}


@dataclass(frozen=True)
class AnalysisState:
    status: AnalysisStatus = AnalysisStatus.IDLE
    result: Any = None
    error: str | None = None
    token: int = 0


class AnalysisOrchestrator:
    """Gates AI analyses behind triggers and keeps results bound to a selection"""

    def __init__(
        self,
        client: LLMClient,
        timeout_seconds: float = ANALYSIS_TIMEOUT_SECONDS,
        auto_analyze: bool = True,
    ):
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.auto_analyze = auto_analyze
        self._threat_source: Callable[[], list[Threat]] = list
        self._selected: Threat | None = None
        self._token = 0
        self._states = {kind: AnalysisState() for kind in AnalysisKind}
        self._pending: set[asyncio.Task] = set()

    @property
    def selected_threat(self) -> Threat | None:
        return self._selected

    @property
    def token(self) -> int:
        return self._token

    @property
    def threats(self) -> list[Threat]:
        return self._threat_source()

    def set_threat_source(self, source: Callable[[], list[Threat]]) -> None:
        self._threat_source = source

    def state(self, kind: AnalysisKind) -> AnalysisState:
        return self._states[kind]

    def bind(self, aggregator: ThreatAggregator) -> None:
        """Follow an aggregator's selection and published threat list"""
        self._threat_source = lambda: aggregator.threats
        aggregator.add_selection_listener(self.on_selection_changed)

    def on_selection_changed(self, threat: Threat | None) -> None:
        """Reset every analysis for a new selection, then schedule the automatic ones"""
        self._selected = threat
        self._token += 1
        self._states = {kind: AnalysisState(token=self._token) for kind in AnalysisKind}

        if threat is None or not self.auto_analyze:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; automatic analyses not scheduled")
            return

        for kind in AUTOMATIC_KINDS:
            task = loop.create_task(self._auto_trigger(kind, self._token))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _auto_trigger(self, kind: AnalysisKind, token: int) -> None:
        # Selection may have moved on before the task got scheduled
        if token == self._token:
            await self.trigger(kind)

    async def wait_pending(self) -> None:
        """Wait for automatically scheduled analyses to settle"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _run(
        self,
        kind: AnalysisKind,
        call: Callable[[Threat], Awaitable[Any]],
    ) -> AnalysisState:
        threat = self._selected
        if threat is None:
            return self._states[kind]

        token = self._token
        self._states[kind] = AnalysisState(status=AnalysisStatus.GENERATING, token=token)

        try:
            result = await asyncio.wait_for(call(threat), timeout=self.timeout_seconds)
            outcome = AnalysisState(status=AnalysisStatus.READY, result=result, token=token)
        except TimeoutError:
            logger.warning(f"{kind.value} analysis for {threat.id} timed out")
            outcome = AnalysisState(
                status=AnalysisStatus.ERRORED,
                error=f"{ERROR_MESSAGES[kind]} (timed out)",
                token=token,
            )
        except Exception:
            logger.exception(f"{kind.value} analysis for {threat.id} failed")
            outcome = AnalysisState(
                status=AnalysisStatus.ERRORED, error=ERROR_MESSAGES[kind], token=token
            )

        if token != self._token:
            logger.debug(f"Dropping stale {kind.value} result for {threat.id}")
            return self._states[kind]

        self._states[kind] = outcome
        return outcome

    # =========================================================================
    # Triggers
    # =========================================================================

    async def predict_escalation(self) -> AnalysisState:
        return await self._run(AnalysisKind.ESCALATION, self.client.predict_escalation)

    async def analyze_compound_risk(self) -> AnalysisState:
        threats = list(self.threats)
        return await self._run(
            AnalysisKind.COMPOUND_RISK, lambda _: self.client.analyze_compound_risk(threats)
        )

    async def analyze_segmentation(self) -> AnalysisState:
        return await self._run(
            AnalysisKind.SEGMENTATION, self.client.analyze_audience_segmentation
        )

    async def draft_alerts(
        self,
        audience: Audience = Audience.GENERAL_PUBLIC,
        tone: Tone = Tone.URGENT,
        segment: AudienceSegment | None = None,
    ) -> AnalysisState:
        return await self._run(
            AnalysisKind.DRAFT,
            lambda threat: self.client.draft_alerts(threat, audience, tone, segment),
        )

    async def summarize(self) -> AnalysisState:
        return await self._run(AnalysisKind.SUMMARY, self.client.summarize_threat)

    async def trigger(self, kind: AnalysisKind) -> AnalysisState:
        """Run an analysis by kind; drafting uses its default audience and tone"""
        triggers = {
            AnalysisKind.ESCALATION: self.predict_escalation,
            AnalysisKind.COMPOUND_RISK: self.analyze_compound_risk,
            AnalysisKind.SEGMENTATION: self.analyze_segmentation,
            AnalysisKind.DRAFT: self.draft_alerts,
            AnalysisKind.SUMMARY: self.summarize,
        }
        return await triggers[kind]()
