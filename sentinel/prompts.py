"""
Prompt Builders for SentinelAI

Each AI analysis sends one hand-built user message. JSON analyses spell
out the exact reply schema; alert drafting asks for a labelled
SMS / EMAIL / VOICE text block instead.
"""

from .formatters import format_datetime
from .models import Audience, AudienceSegment, Threat, Tone

TONE_GUIDANCE = {
    Tone.URGENT: "Immediate action is required. Be direct and commanding without causing panic.",
    Tone.INFORMATIONAL: "Keep people aware. Calm, factual, no alarmist wording.",
    Tone.ALL_CLEAR: "The threat has passed. Reassure, and mention any remaining precautions.",
}


def _threat_block(threat: Threat) -> str:
    lines = [
        f"Type: {threat.type}",
        f"Severity: {threat.severity.value}",
        f"Location: {threat.area_desc}",
        f"Description: {threat.description}",
        f"Time: {format_datetime(threat.effective)}",
    ]
    if threat.expires is not None:
        lines.append(f"Expires: {format_datetime(threat.expires)}")
    if threat.magnitude is not None:
        lines.append(f"Magnitude: {threat.magnitude:.1f}")
    return "\n".join(lines)


def build_escalation_prompt(threat: Threat) -> str:
    """Single-threat escalation forecast over the next 6-48 hours."""
    return f"""You are an expert emergency management analyst specializing in threat prediction.

CURRENT THREAT:
{_threat_block(threat)}

Analyze this threat and predict if it will escalate in the next 6-48 hours.
Respond with ONLY valid JSON (no markdown):
{{
  "currentSeverity": "{threat.severity.value}",
  "predictedSeverity": "<Extreme|Severe|Moderate|Minor|Unknown>",
  "escalationProbability": <0-100>,
  "timeframe": "<when escalation expected>",
  "confidence": "<Low|Medium|High>",
  "reasoning": "<why you predict this>",
  "earlyWarningIndicators": ["indicator1", "indicator2"],
  "recommendedActions": ["action1", "action2"],
  "historicalComparison": "<similar past events>"
}}"""


def build_compound_risk_prompt(threats: list[Threat]) -> str:
    """Cross-threat interaction analysis."""
    threats_list = "\n".join(
        f"{i + 1}. {t.type} ({t.severity.value}) - {t.area_desc}" for i, t in enumerate(threats)
    )

    return f"""You are analyzing multiple simultaneous threats for compound disaster risks.

ACTIVE THREATS:
{threats_list}

Identify if these threats interact to create compound risks or cascading failures.
Respond with ONLY valid JSON:
{{
  "hasCompoundRisk": <true|false>,
  "riskLevel": "<Low|Medium|High|Critical>",
  "interactions": [
    {{
      "threat1": "<threat name>",
      "threat2": "<threat name>",
      "interactionType": "<how they interact>",
      "combinedImpact": "<what happens when combined>"
    }}
  ],
  "cascadingEffects": ["effect1", "effect2"],
  "overallSummary": "<2-3 sentence summary>"
}}"""


def build_segmentation_prompt(threat: Threat) -> str:
    """Audience segmentation with channel rankings per segment."""
    return f"""You are an emergency communications strategist planning public warnings.

THREAT:
{_threat_block(threat)}

Identify the distinct audience segments affected by this threat (for example the
general public, first responders, schools, hospitals, elderly residents, non-English
speakers, utilities). For each segment estimate its size, explain what makes it
vulnerable, rank the best communication channels (SMS, Email, Phone Call, Siren,
Social Media, Radio, TV, Mobile App, Door-to-Door) with an effectiveness score from
0 to 100, and give tailored message guidance.

Respond with ONLY valid JSON (no markdown):
{{
  "segments": [
    {{
      "id": "<short-kebab-id>",
      "name": "<segment name>",
      "description": "<who they are and why they matter here>",
      "priority": "<Critical|High|Medium|Low>",
      "estimatedSize": "<e.g. 250,000 residents>",
      "vulnerabilityFactors": ["factor1", "factor2"],
      "recommendedChannels": [
        {{"channel": "<channel>", "effectiveness": <0-100>, "reasoning": "<why>"}}
      ],
      "messageCustomization": {{
        "tone": "<tone>",
        "keyPoints": ["point1", "point2"],
        "actionItems": ["action1", "action2"]
      }}
    }}
  ],
  "overallReach": {{
    "totalAffectedPopulation": "<estimate>",
    "criticalSegments": <number of Critical segments>
  }}
}}"""


def _segment_block(segment: AudienceSegment) -> str:
    custom = segment.message_customization
    lines = [
        f"TARGET SEGMENT: {segment.name}",
        f"- Segment tone: {custom.tone}",
    ]
    if custom.key_points:
        lines.append("- Key points to cover:")
        lines.extend(f"  * {point}" for point in custom.key_points)
    if custom.action_items:
        lines.append("- Actions this segment should take:")
        lines.extend(f"  * {item}" for item in custom.action_items)
    return "\n".join(lines)


def build_draft_prompt(
    threat: Threat,
    audience: Audience,
    tone: Tone,
    segment: AudienceSegment | None = None,
) -> str:
    """Three channel-specific alert messages in one labelled reply."""
    expires = format_datetime(threat.expires) if threat.expires is not None else "until further notice"
    segment_section = f"\n{_segment_block(segment)}\n" if segment else ""

    return f"""You are an emergency communications officer for a public safety agency.

A threat has been detected with the following details:
- Type: {threat.type}
- Severity: {threat.severity.value}
- Location: {threat.area_desc}
- Details: {threat.description}
- Expires: {expires}
- Source: {threat.source.value}
{segment_section}
Generate exactly 3 alert messages for the following parameters:
- Audience: {segment.name if segment else audience.value}
- Tone: {tone.value} ({TONE_GUIDANCE[tone]})

Format your response EXACTLY like this with no extra text:

SMS:
[Your SMS message here - maximum 160 characters, plain language]

EMAIL:
[Your email message here - 2-3 sentences, professional and clear]

VOICE:
[Your voice script here - 30 seconds when read aloud, calm and instructional]"""


def build_summary_prompt(threat: Threat) -> str:
    """Plain-language rewrite of an official alert."""
    return f"""You are an emergency management expert. Create a concise, clear summary of this emergency alert for the general public.

REQUIREMENTS:
- Write 3-5 sentences maximum
- Use simple, direct language
- Convert ALL CAPS to normal case
- Focus on: What's happening, when, where, and what people should do
- Remove technical jargon
- Keep urgent/critical information

ORIGINAL ALERT:
{threat.description}

THREAT TYPE: {threat.type}
SEVERITY: {threat.severity.value}
LOCATION: {threat.area_desc}

SUMMARY:"""
