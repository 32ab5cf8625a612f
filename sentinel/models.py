"""
SentinelAI Data Models
Pydantic models for threats and AI analysis records
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .formatters import to_epoch_seconds

# Absolute instant (datetime or epoch milliseconds) or ISO-8601 text
TimeValue = datetime | int | float | str


class Severity(str, Enum):
    EXTREME = "Extreme"
    SEVERE = "Severe"
    MODERATE = "Moderate"
    MINOR = "Minor"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Any) -> "Severity":
        """Map raw feed vocabulary onto the canonical scale; never raises"""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return cls.UNKNOWN
        try:
            return cls(raw.strip().capitalize())
        except ValueError:
            return cls.UNKNOWN


# Lower rank sorts first
SEVERITY_RANK = {
    Severity.EXTREME: 0,
    Severity.SEVERE: 1,
    Severity.MODERATE: 2,
    Severity.MINOR: 3,
    Severity.UNKNOWN: 4,
}

# (minimum magnitude, severity), checked top-down
MAGNITUDE_BREAKPOINTS = [
    (7.0, Severity.EXTREME),
    (5.5, Severity.SEVERE),
    (4.0, Severity.MODERATE),
    (2.5, Severity.MINOR),
]


def magnitude_to_severity(magnitude: Any) -> Severity:
    """Convert an earthquake magnitude into a severity band"""
    try:
        value = float(magnitude)
    except (TypeError, ValueError):
        return Severity.UNKNOWN
    if math.isnan(value):
        return Severity.UNKNOWN

    for threshold, severity in MAGNITUDE_BREAKPOINTS:
        if value >= threshold:
            return severity
    return Severity.UNKNOWN


class ThreatSource(str, Enum):
    NWS = "NWS"
    USGS = "USGS"


class Threat(BaseModel):
    """A hazard event normalized from any upstream feed"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Upstream id, or a synthesized UUID")
    source: ThreatSource
    type: str = Field(..., description="Hazard category, e.g. 'Tornado Warning'")
    severity: Severity = Severity.UNKNOWN
    headline: str
    description: str
    area_desc: str
    effective: TimeValue
    expires: TimeValue | None = Field(default=None, description="None means ongoing")
    coordinates: tuple[float, float] | None = Field(default=None, description="(lat, lon)")
    magnitude: float | None = None

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self.severity]

    @property
    def effective_timestamp(self) -> float | None:
        return to_epoch_seconds(self.effective)


# =============================================================================
# AI Analysis Records
# =============================================================================


class Confidence(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class SegmentPriority(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


PRIORITY_ORDER = {
    SegmentPriority.CRITICAL: 0,
    SegmentPriority.HIGH: 1,
    SegmentPriority.MEDIUM: 2,
    SegmentPriority.LOW: 3,
}


class Audience(str, Enum):
    GENERAL_PUBLIC = "General Public"
    SCHOOLS = "Schools"
    UTILITIES = "Utilities"


class Tone(str, Enum):
    URGENT = "Urgent"
    INFORMATIONAL = "Informational"
    ALL_CLEAR = "All-Clear"


class EscalationPrediction(BaseModel):
    """Forecast of a threat's severity over the next 6-48 hours"""

    threat_id: str
    current_severity: Severity
    predicted_severity: Severity
    escalation_probability: int = Field(default=0, ge=0, le=100)
    timeframe: str = "24 hours"
    confidence: Confidence = Confidence.MEDIUM
    reasoning: str = "No reasoning provided."
    early_warning_indicators: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)
    historical_comparison: str = ""
    degraded: bool = Field(default=False, description="True when this is a fallback record")


class ThreatInteraction(BaseModel):
    threat1: str = "Unknown threat"
    threat2: str = "Unknown threat"
    interaction_type: str = "Unspecified interaction"
    combined_impact: str = "Impact not described."


class CompoundRiskAnalysis(BaseModel):
    """Emergent risk from two or more concurrent threats"""

    has_compound_risk: bool = False
    risk_level: RiskLevel = RiskLevel.LOW
    interactions: list[ThreatInteraction] = Field(default_factory=list)
    cascading_effects: list[str] = Field(default_factory=list)
    overall_summary: str = "No compound risks detected."
    degraded: bool = False


class CommunicationChannel(BaseModel):
    channel: str
    effectiveness: int = Field(default=50, ge=0, le=100, description="0-100 effectiveness score")
    reasoning: str = ""


class MessageCustomization(BaseModel):
    tone: str = "Clear and direct"
    key_points: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)


class AudienceSegment(BaseModel):
    """A sub-population needing its own messaging strategy"""

    id: str
    name: str
    description: str = ""
    priority: SegmentPriority = SegmentPriority.MEDIUM
    estimated_size: str = "Unknown"
    vulnerability_factors: list[str] = Field(default_factory=list)
    recommended_channels: list[CommunicationChannel] = Field(default_factory=list)
    message_customization: MessageCustomization = Field(default_factory=MessageCustomization)


class OverallReach(BaseModel):
    total_affected_population: str = "Unknown"
    critical_segments: int = Field(default=0, ge=0)


class SegmentationAnalysis(BaseModel):
    threat_id: str
    segments: list[AudienceSegment] = Field(default_factory=list)
    overall_reach: OverallReach = Field(default_factory=OverallReach)
    summary: str = ""
    degraded: bool = False

    def sorted_segments(self) -> list[AudienceSegment]:
        """Segments ordered Critical first; ties keep reply order"""
        return sorted(self.segments, key=lambda s: PRIORITY_ORDER[s.priority])


class GeneratedAlerts(BaseModel):
    """Channel-specific alert bodies drafted in one backend call"""

    sms: str
    email: str
    voice: str
    degraded: bool = False


class ThreatSummary(BaseModel):
    threat_id: str
    summary: str
    degraded: bool = False
