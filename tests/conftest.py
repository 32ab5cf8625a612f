"""
SentinelAI Test Configuration and Shared Fixtures
"""

import os
import sys
from datetime import UTC, datetime

import boto3
import pytest
from moto import mock_aws

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


# =============================================================================
# Environment Setup
# =============================================================================


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Set up required environment variables for all tests."""
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test-key-12345")
    monkeypatch.delenv("GROQ_API_KEY_SSM_PARAM", raising=False)
    monkeypatch.delenv("GROQ_API_URL", raising=False)
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")


# =============================================================================
# SSM Fixtures
# =============================================================================


@pytest.fixture
def ssm_client():
    """Create a mocked SSM client."""
    with mock_aws():
        client = boto3.client("ssm", region_name="us-east-1")
        yield client


# =============================================================================
# Threat Fixtures
# =============================================================================


@pytest.fixture
def make_threat():
    """Factory for Threat instances with sensible defaults."""
    from sentinel.models import Severity, Threat, ThreatSource

    def _make(
        id: str = "threat-1",
        severity: Severity = Severity.SEVERE,
        effective="2026-01-08T10:00:00+00:00",
        source: ThreatSource = ThreatSource.NWS,
        **kwargs,
    ) -> Threat:
        defaults = {
            "type": "Tornado Warning",
            "headline": "Tornado Warning issued for Dallas County",
            "description": "A confirmed tornado was located near Dallas, moving east at 30 mph.",
            "area_desc": "Dallas, TX",
        }
        defaults.update(kwargs)
        return Threat(id=id, source=source, severity=severity, effective=effective, **defaults)

    return _make


@pytest.fixture
def sample_threat(make_threat):
    return make_threat()


@pytest.fixture
def sample_threats(make_threat):
    from sentinel.models import Severity

    return [
        make_threat(id="tornado", severity=Severity.EXTREME),
        make_threat(
            id="flood",
            severity=Severity.MODERATE,
            type="Flood Watch",
            area_desc="Harris, TX",
        ),
    ]


# =============================================================================
# Feed Data Fixtures
# =============================================================================


@pytest.fixture
def nws_feature():
    """A single NWS alert feature with polygon geometry."""
    return {
        "id": "https://api.weather.gov/alerts/urn:oid:2.49.0.1.840.0.abc",
        "type": "Feature",
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[-97.5, 32.7], [-97.0, 32.7], [-97.0, 33.0], [-97.5, 32.7]]],
        },
        "properties": {
            "event": "Severe Thunderstorm Warning",
            "severity": "Severe",
            "headline": "Severe Thunderstorm Warning issued January 8 at 10:00AM CST",
            "description": "At 958 AM CST, a severe thunderstorm was located near Fort Worth.",
            "areaDesc": "Tarrant, TX",
            "effective": "2026-01-08T10:00:00-06:00",
            "expires": "2026-01-08T11:00:00-06:00",
        },
    }


@pytest.fixture
def nws_response(nws_feature):
    return {"type": "FeatureCollection", "features": [nws_feature]}


@pytest.fixture
def usgs_response():
    """USGS summary feed with one Texas and one California quake."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "id": "tx2026abcd",
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [-103.5, 31.4, 6.2]},
                "properties": {
                    "mag": 6.0,
                    "place": "25 km NW of Pecos, Texas",
                    "time": int(datetime(2026, 1, 8, 12, 0, tzinfo=UTC).timestamp() * 1000),
                    "type": "earthquake",
                    "title": "M 6.0 - 25 km NW of Pecos, Texas",
                },
            },
            {
                "id": "ci40123456",
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [-117.6, 35.7, 8.1]},
                "properties": {
                    "mag": 3.1,
                    "place": "12 km SW of Searles Valley, CA",
                    "time": int(datetime(2026, 1, 8, 9, 0, tzinfo=UTC).timestamp() * 1000),
                    "type": "earthquake",
                    "title": "M 3.1 - 12 km SW of Searles Valley, CA",
                },
            },
        ],
    }


# =============================================================================
# LLM Reply Fixtures
# =============================================================================


@pytest.fixture
def escalation_reply():
    return {
        "currentSeverity": "Severe",
        "predictedSeverity": "Extreme",
        "escalationProbability": 72,
        "timeframe": "12 hours",
        "confidence": "High",
        "reasoning": "Supercell environment persists through the evening.",
        "earlyWarningIndicators": ["Rotation on radar", "Dropping pressure"],
        "recommendedActions": ["Open shelters", "Pre-position crews"],
        "historicalComparison": "Similar to the 2019 Dallas tornado outbreak.",
    }


@pytest.fixture
def segmentation_reply():
    return {
        "segments": [
            {
                "id": "schools",
                "name": "Schools",
                "description": "K-12 campuses in session",
                "priority": "High",
                "estimatedSize": "85,000 students",
                "vulnerabilityFactors": ["Large groups", "Dependent minors"],
                "recommendedChannels": [
                    {"channel": "Email", "effectiveness": 60, "reasoning": "Admin inboxes"},
                    {"channel": "Phone Call", "effectiveness": 90, "reasoning": "Direct to principals"},
                ],
                "messageCustomization": {
                    "tone": "Calm and directive",
                    "keyPoints": ["Shelter in interior rooms"],
                    "actionItems": ["Hold students indoors"],
                },
            },
            {
                "name": "Hospitals",
                "priority": "Critical",
                "recommendedChannels": [{"channel": "Radio", "effectiveness": 95}],
            },
        ],
        "overallReach": {"totalAffectedPopulation": "2.6 million", "criticalSegments": 1},
    }
