# SentinelAI Core Modules
from .aggregator import FETCH_ERROR_MESSAGE, ThreatAggregator, rank_threats
from .feed_fetcher import FeedAdapter, NWSAdapter, USGSAdapter, coordinates_from_geometry
from .llm_client import InferenceError, LLMClient, MissingCredentialsError
from .models import (
    Audience,
    AudienceSegment,
    CommunicationChannel,
    CompoundRiskAnalysis,
    Confidence,
    EscalationPrediction,
    GeneratedAlerts,
    RiskLevel,
    SegmentationAnalysis,
    SegmentPriority,
    Severity,
    Threat,
    ThreatSource,
    ThreatSummary,
    Tone,
    magnitude_to_severity,
)
from .orchestration import AnalysisKind, AnalysisOrchestrator, AnalysisState, AnalysisStatus
from .refresh import RefreshController

__all__ = [
    "ThreatAggregator",
    "rank_threats",
    "FETCH_ERROR_MESSAGE",
    "FeedAdapter",
    "NWSAdapter",
    "USGSAdapter",
    "coordinates_from_geometry",
    "RefreshController",
    "LLMClient",
    "InferenceError",
    "MissingCredentialsError",
    "AnalysisOrchestrator",
    "AnalysisKind",
    "AnalysisState",
    "AnalysisStatus",
    # Models
    "Threat",
    "ThreatSource",
    "Severity",
    "magnitude_to_severity",
    "EscalationPrediction",
    "CompoundRiskAnalysis",
    "SegmentationAnalysis",
    "AudienceSegment",
    "CommunicationChannel",
    "GeneratedAlerts",
    "ThreatSummary",
    "Audience",
    "Tone",
    "Confidence",
    "RiskLevel",
    "SegmentPriority",
]
