"""
SentinelAI Formatters
Time normalization and region helpers shared by feeds and prompts
"""

from datetime import UTC, datetime
from typing import Any

US_STATES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "FL": "Florida", "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho",
    "IL": "Illinois", "IN": "Indiana", "IA": "Iowa", "KS": "Kansas",
    "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi",
    "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
    "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma",
    "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah",
    "VT": "Vermont", "VA": "Virginia", "WA": "Washington", "WV": "West Virginia",
    "WI": "Wisconsin", "WY": "Wyoming",
}


def state_name(code: str) -> str:
    """Full US state name for a two-letter code, or the code itself"""
    return US_STATES.get(code.upper(), code)


def to_datetime(value: Any) -> datetime | None:
    """Normalize a feed time value to an aware datetime.

    Numbers are epoch milliseconds (USGS encoding); strings are ISO-8601.
    Naive values are taken as UTC. Returns None when the value can't be read.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, int | float):
        try:
            dt = datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def to_epoch_seconds(value: Any) -> float | None:
    dt = to_datetime(value)
    return dt.timestamp() if dt else None


def format_datetime(value: Any) -> str:
    """Readable 'Jan 8, 10:00 AM UTC' label; falls back to the raw text"""
    dt = to_datetime(value)
    if dt is None:
        return str(value)
    dt = dt.astimezone(UTC)
    hour = dt.strftime("%I").lstrip("0")
    return f"{dt:%b} {dt.day}, {hour}:{dt:%M %p} UTC"
