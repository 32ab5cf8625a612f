"""
Reply coercion for SentinelAI

Turns loosely-typed model replies into fully-defaulted analysis records.
Each record type has exactly one coercion routine; none of them raise on
missing or mistyped fields.
"""

import json
import re
from typing import Any

from .models import (
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
    Severity,
    Threat,
    ThreatInteraction,
)

SMS_PLACEHOLDER = "Could not parse SMS message."
EMAIL_PLACEHOLDER = "Could not parse email message."
VOICE_PLACEHOLDER = "Could not parse voice script."

_SMS_RE = re.compile(r"SMS:\s*([\s\S]*?)(?=EMAIL:|$)", re.IGNORECASE)
_EMAIL_RE = re.compile(r"EMAIL:\s*([\s\S]*?)(?=VOICE:|$)", re.IGNORECASE)
_VOICE_RE = re.compile(r"VOICE:\s*([\s\S]*?)$", re.IGNORECASE)


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` (or bare ```) fence"""
    cleaned = content.strip()
    if cleaned.startswith("```json"):
        cleaned = re.sub(r"^```json\n?", "", cleaned)
        cleaned = re.sub(r"\n?```$", "", cleaned)
    elif cleaned.startswith("```"):
        cleaned = re.sub(r"^```\n?", "", cleaned)
        cleaned = re.sub(r"\n?```$", "", cleaned)
    return cleaned.strip()


def parse_json_reply(content: str) -> dict[str, Any]:
    """Decode a model reply into a JSON object; raises ValueError otherwise"""
    data = json.loads(strip_code_fences(content))
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


# =============================================================================
# Field helpers
# =============================================================================


def _str(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _percent(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return int(round(min(max(number, 0), 100)))


def _count(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float) or value != value:
        return default
    return max(int(value), 0)


def _enum(enum_cls, value: Any, default):
    if isinstance(value, str):
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
    return default


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


# =============================================================================
# Record coercion
# =============================================================================


def coerce_escalation(payload: dict[str, Any], threat: Threat) -> EscalationPrediction:
    predicted = payload.get("predictedSeverity")
    predicted_severity = Severity.parse(predicted)
    if not isinstance(predicted, str) or (
        predicted_severity is Severity.UNKNOWN and predicted.strip().lower() != "unknown"
    ):
        predicted_severity = threat.severity

    return EscalationPrediction(
        threat_id=threat.id,
        current_severity=threat.severity,
        predicted_severity=predicted_severity,
        escalation_probability=_percent(payload.get("escalationProbability"), 0),
        timeframe=_str(payload.get("timeframe"), "24 hours"),
        confidence=_enum(Confidence, payload.get("confidence"), Confidence.MEDIUM),
        reasoning=_str(payload.get("reasoning"), "No reasoning provided."),
        early_warning_indicators=_str_list(payload.get("earlyWarningIndicators")),
        recommended_actions=_str_list(payload.get("recommendedActions")),
        historical_comparison=_str(payload.get("historicalComparison"), ""),
    )


def coerce_compound_risk(payload: dict[str, Any]) -> CompoundRiskAnalysis:
    interactions = []
    for raw in _list(payload.get("interactions")):
        raw = _dict(raw)
        if not raw:
            continue
        interactions.append(
            ThreatInteraction(
                threat1=_str(raw.get("threat1"), "Unknown threat"),
                threat2=_str(raw.get("threat2"), "Unknown threat"),
                interaction_type=_str(raw.get("interactionType"), "Unspecified interaction"),
                combined_impact=_str(raw.get("combinedImpact"), "Impact not described."),
            )
        )

    return CompoundRiskAnalysis(
        has_compound_risk=payload.get("hasCompoundRisk") is True,
        risk_level=_enum(RiskLevel, payload.get("riskLevel"), RiskLevel.LOW),
        interactions=interactions,
        cascading_effects=_str_list(payload.get("cascadingEffects")),
        overall_summary=_str(payload.get("overallSummary"), "No compound risks detected."),
    )


def _coerce_channel(raw: Any) -> CommunicationChannel | None:
    if isinstance(raw, str):
        raw = {"channel": raw}
    raw = _dict(raw)
    channel = _str(raw.get("channel"), "")
    if not channel:
        return None
    return CommunicationChannel(
        channel=channel,
        effectiveness=_percent(raw.get("effectiveness"), 50),
        reasoning=_str(raw.get("reasoning") or raw.get("rationale"), ""),
    )


def _coerce_segment(raw: dict[str, Any], index: int) -> AudienceSegment:
    name = _str(raw.get("name"), f"Segment {index + 1}")
    custom = _dict(raw.get("messageCustomization"))
    channels = [c for c in map(_coerce_channel, _list(raw.get("recommendedChannels"))) if c]
    channels.sort(key=lambda c: c.effectiveness, reverse=True)

    return AudienceSegment(
        id=_str(raw.get("id"), _slug(name) or f"segment-{index + 1}"),
        name=name,
        description=_str(raw.get("description"), ""),
        priority=_enum(SegmentPriority, raw.get("priority"), SegmentPriority.MEDIUM),
        estimated_size=_str(raw.get("estimatedSize"), "Unknown"),
        vulnerability_factors=_str_list(raw.get("vulnerabilityFactors")),
        recommended_channels=channels,
        message_customization=MessageCustomization(
            tone=_str(custom.get("tone"), "Clear and direct"),
            key_points=_str_list(custom.get("keyPoints")),
            action_items=_str_list(custom.get("actionItems")),
        ),
    )


def coerce_segmentation(payload: dict[str, Any], threat: Threat) -> SegmentationAnalysis:
    raw_segments = [s for s in _list(payload.get("segments")) if isinstance(s, dict)]
    segments = [_coerce_segment(raw, i) for i, raw in enumerate(raw_segments)]
    reach = _dict(payload.get("overallReach"))
    critical_count = sum(1 for s in segments if s.priority is SegmentPriority.CRITICAL)

    return SegmentationAnalysis(
        threat_id=threat.id,
        segments=segments,
        overall_reach=OverallReach(
            total_affected_population=_str(reach.get("totalAffectedPopulation"), "Unknown"),
            critical_segments=_count(reach.get("criticalSegments"), critical_count),
        ),
        summary=_str(payload.get("summary"), f"{len(segments)} audience segments identified."),
    )


def parse_alert_sections(raw: str) -> GeneratedAlerts:
    """Split an 'SMS: / EMAIL: / VOICE:' reply into its three messages"""
    sms_match = _SMS_RE.search(raw)
    email_match = _EMAIL_RE.search(raw)
    voice_match = _VOICE_RE.search(raw)

    return GeneratedAlerts(
        sms=sms_match.group(1).strip() if sms_match else SMS_PLACEHOLDER,
        email=email_match.group(1).strip() if email_match else EMAIL_PLACEHOLDER,
        voice=voice_match.group(1).strip() if voice_match else VOICE_PLACEHOLDER,
    )
