"""
SentinelAI LLM Client
Handles calls to an OpenAI-compatible chat completion API (Groq)
"""

import logging
import os
from typing import Any

import aiohttp

from .coercion import (
    coerce_compound_risk,
    coerce_escalation,
    coerce_segmentation,
    parse_alert_sections,
    parse_json_reply,
)
from .models import (
    Audience,
    AudienceSegment,
    CommunicationChannel,
    CompoundRiskAnalysis,
    Confidence,
    EscalationPrediction,
    GeneratedAlerts,
    MessageCustomization,
    OverallReach,
    RiskLevel,
    SegmentationAnalysis,
    SegmentPriority,
    Threat,
    ThreatSummary,
    Tone,
)
from .prompts import (
    build_compound_risk_prompt,
    build_draft_prompt,
    build_escalation_prompt,
    build_segmentation_prompt,
    build_summary_prompt,
)

logger = logging.getLogger(__name__)

INFERENCE_CONFIG = {
    "api_url": "https://api.groq.com/openai/v1/chat/completions",
    "model": "llama-3.3-70b-versatile",
    "temperature": 0.7,
    "summary_temperature": 0.2,
    "summary_max_tokens": 300,
    "timeout_seconds": 45,
}

MISSING_KEY_MESSAGE = "Groq API key not found. Please set GROQ_API_KEY."


class InferenceError(Exception):
    """Raised for failed or unusable inference backend calls"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        prefix = f"Inference API error {status_code}" if status_code else "Inference API error"
        super().__init__(f"{prefix}: {message}")


class MissingCredentialsError(InferenceError):
    """Raised when no API key could be resolved"""

    def __init__(self):
        super().__init__(MISSING_KEY_MESSAGE)


def _get_api_key_from_ssm() -> str | None:
    """Fetch API key from SSM Parameter Store"""
    ssm_param = os.environ.get("GROQ_API_KEY_SSM_PARAM")
    if not ssm_param:
        return None
    try:
        import boto3

        ssm = boto3.client("ssm")
        response = ssm.get_parameter(Name=ssm_param, WithDecryption=True)
        return response["Parameter"]["Value"]
    except Exception as e:
        logger.warning(f"Failed to fetch API key from SSM: {e}")
        return None


# =============================================================================
# Fallback records
# =============================================================================


def _failure_note(error: Exception, default: str) -> str:
    if isinstance(error, MissingCredentialsError):
        return MISSING_KEY_MESSAGE
    return default


def fallback_escalation(threat: Threat, error: Exception) -> EscalationPrediction:
    return EscalationPrediction(
        threat_id=threat.id,
        current_severity=threat.severity,
        predicted_severity=threat.severity,
        escalation_probability=0,
        timeframe="24 hours",
        confidence=Confidence.LOW,
        reasoning=_failure_note(
            error, "Unable to generate prediction. Please check API configuration."
        ),
        early_warning_indicators=[],
        recommended_actions=["Monitor threat status closely", "Follow official guidance"],
        degraded=True,
    )


def fallback_compound_risk(error: Exception) -> CompoundRiskAnalysis:
    return CompoundRiskAnalysis(
        has_compound_risk=False,
        risk_level=RiskLevel.LOW,
        overall_summary=_failure_note(
            error, "Unable to analyze compound risks. Monitoring individual threats."
        ),
        degraded=True,
    )


def fallback_segmentation(threat: Threat, error: Exception) -> SegmentationAnalysis:
    segments = [
        AudienceSegment(
            id="general-public",
            name="General Public",
            description=f"Residents and visitors in {threat.area_desc}.",
            priority=SegmentPriority.HIGH,
            estimated_size="Unknown",
            vulnerability_factors=["Limited situational awareness", "Varied access to alerts"],
            recommended_channels=[
                CommunicationChannel(
                    channel="SMS", effectiveness=90, reasoning="Reaches most phones immediately"
                ),
                CommunicationChannel(
                    channel="Mobile App", effectiveness=80, reasoning="Push alerts with location context"
                ),
                CommunicationChannel(
                    channel="TV", effectiveness=70, reasoning="Broad reach for ongoing coverage"
                ),
            ],
            message_customization=MessageCustomization(
                tone="Clear and calm",
                key_points=[f"{threat.type} affecting {threat.area_desc}"],
                action_items=["Follow official guidance", "Stay tuned for updates"],
            ),
        ),
        AudienceSegment(
            id="first-responders",
            name="First Responders",
            description="Fire, EMS and law enforcement personnel coordinating the response.",
            priority=SegmentPriority.CRITICAL,
            estimated_size="Unknown",
            vulnerability_factors=["Direct exposure to hazard conditions"],
            recommended_channels=[
                CommunicationChannel(
                    channel="Radio", effectiveness=95, reasoning="Primary operational channel"
                ),
                CommunicationChannel(
                    channel="Phone Call", effectiveness=85, reasoning="Direct confirmation of receipt"
                ),
                CommunicationChannel(
                    channel="SMS", effectiveness=75, reasoning="Backup when radio traffic is heavy"
                ),
            ],
            message_customization=MessageCustomization(
                tone="Operational and precise",
                key_points=[f"{threat.severity.value} {threat.type}"],
                action_items=["Review deployment plans", "Confirm staging locations"],
            ),
        ),
    ]

    return SegmentationAnalysis(
        threat_id=threat.id,
        segments=segments,
        overall_reach=OverallReach(total_affected_population="Unknown", critical_segments=1),
        summary=_failure_note(
            error, "Unable to analyze audience segments. Showing default segments."
        ),
        degraded=True,
    )


def fallback_alerts(error: Exception) -> GeneratedAlerts:
    note = _failure_note(error, "Unable to draft alerts. Please try again.")
    return GeneratedAlerts(sms=note, email=note, voice=note, degraded=True)


class LLMClient:
    """Client for the AI analysis backend.

    Every public operation returns a fully populated record. Failures are
    logged and replaced with a fallback record marked ``degraded``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key or os.environ.get("GROQ_API_KEY") or _get_api_key_from_ssm()
        if not self.api_key:
            logger.warning("GROQ_API_KEY not set and not found in SSM; AI analyses will use fallbacks")

        self.model = model or INFERENCE_CONFIG["model"]
        self.api_url = api_url or os.environ.get("GROQ_API_URL") or INFERENCE_CONFIG["api_url"]
        self.timeout = timeout or INFERENCE_CONFIG["timeout_seconds"]

    async def _chat(
        self,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Send one user message and return the reply text"""
        if not self.api_key:
            raise MissingCredentialsError()

        body: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": INFERENCE_CONFIG["temperature"] if temperature is None else temperature,
        }
        if max_tokens:
            body["max_tokens"] = max_tokens

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        async with aiohttp.ClientSession() as session:
            async with session.post(
                self.api_url,
                json=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status < 200 or response.status >= 300:
                    raise InferenceError(response.reason or "request failed", response.status)
                data = await response.json(content_type=None)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content.strip():
            raise InferenceError("No response content")
        return content

    async def predict_escalation(self, threat: Threat) -> EscalationPrediction:
        """Forecast whether a threat will escalate in the next 6-48 hours"""
        try:
            content = await self._chat(build_escalation_prompt(threat))
            return coerce_escalation(parse_json_reply(content), threat)
        except Exception as e:
            logger.error(f"Escalation prediction failed for {threat.id}: {e}")
            return fallback_escalation(threat, e)

    async def analyze_compound_risk(self, threats: list[Threat]) -> CompoundRiskAnalysis:
        """Look for interactions between concurrent threats.

        Fewer than two threats can't compound, so no backend call is made.
        """
        if len(threats) < 2:
            return CompoundRiskAnalysis(
                has_compound_risk=False,
                risk_level=RiskLevel.LOW,
                interactions=[],
                cascading_effects=[],
                overall_summary="Single threat detected. No compound risk analysis available.",
            )

        try:
            content = await self._chat(build_compound_risk_prompt(threats))
            return coerce_compound_risk(parse_json_reply(content))
        except Exception as e:
            logger.error(f"Compound risk analysis failed for {len(threats)} threats: {e}")
            return fallback_compound_risk(e)

    async def analyze_audience_segmentation(self, threat: Threat) -> SegmentationAnalysis:
        try:
            content = await self._chat(build_segmentation_prompt(threat))
            analysis = coerce_segmentation(parse_json_reply(content), threat)
        except Exception as e:
            logger.error(f"Audience segmentation failed for {threat.id}: {e}")
            return fallback_segmentation(threat, e)

        if not analysis.segments:
            logger.warning(f"Segmentation reply for {threat.id} had no usable segments")
            return fallback_segmentation(threat, InferenceError("No segments in reply"))
        return analysis

    async def draft_alerts(
        self,
        threat: Threat,
        audience: Audience = Audience.GENERAL_PUBLIC,
        tone: Tone = Tone.URGENT,
        segment: AudienceSegment | None = None,
    ) -> GeneratedAlerts:
        """Draft SMS, email and voice messages for a threat.

        The reply is a labelled text block rather than JSON; any section that
        can't be found gets a placeholder.
        """
        try:
            content = await self._chat(build_draft_prompt(threat, audience, tone, segment))
        except Exception as e:
            logger.error(f"Alert drafting failed for {threat.id}: {e}")
            return fallback_alerts(e)
        return parse_alert_sections(content)

    async def summarize_threat(self, threat: Threat) -> ThreatSummary:
        """Plain-language summary of the official alert text"""
        try:
            content = await self._chat(
                build_summary_prompt(threat),
                temperature=INFERENCE_CONFIG["summary_temperature"],
                max_tokens=INFERENCE_CONFIG["summary_max_tokens"],
            )
            return ThreatSummary(threat_id=threat.id, summary=content.strip())
        except Exception as e:
            logger.error(f"Threat summary failed for {threat.id}: {e}")
            return ThreatSummary(threat_id=threat.id, summary=threat.description, degraded=True)
