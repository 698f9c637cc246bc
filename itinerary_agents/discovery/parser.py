"""
Candidate parsing for the LLM knowledge source.

Handles extraction of the JSON payload from LLM responses (raw JSON,
markdown code blocks, leading prose) and normalization of candidate
entries into DiscoveryCandidate models.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from itinerary_agents.shared.contracts.discovery import DiscoveryCandidate


logger = logging.getLogger(__name__)

# camelCase keys some models insist on returning
_KEY_ALIASES = {
    "estimatedDuration": "estimated_duration",
    "estimatedCost": "estimated_cost",
    "energyLevel": "energy_level",
    "openingHours": "opening_hours",
    "whyRecommended": "why_recommended",
    "strategicFit": "strategic_fit",
}


class ParseError(Exception):
    """Raised when candidate parsing fails."""

    pass


def extract_json_from_response(raw_response: str) -> str:
    """
    Extract the JSON object from an LLM response.

    Args:
        raw_response: Raw LLM response string

    Returns:
        Cleaned JSON string ready for parsing

    Raises:
        ParseError: If no JSON object is present
    """
    content = (raw_response or "").strip()

    code_block_pattern = r"```(?:json)?\s*([\s\S]*?)```"
    match = re.search(code_block_pattern, content)
    if match:
        content = match.group(1).strip()

    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ParseError("No JSON object found in response")

    return content[start : end + 1]


def normalize_candidate(
    entry: Dict[str, Any],
    city: Optional[str] = None,
    source: str = "knowledge_source",
) -> Optional[DiscoveryCandidate]:
    """
    Convert one raw candidate dict into a model.

    Entries without both a name and an address, or that fail model
    validation, are dropped (None).
    """
    if not isinstance(entry, dict):
        return None

    data = {_KEY_ALIASES.get(key, key): value for key, value in entry.items()}
    if not data.get("name") or not data.get("address"):
        return None

    fit = str(data.get("strategic_fit") or "medium").lower()
    data["strategic_fit"] = fit if fit in ("low", "medium", "high") else "medium"
    data.setdefault("city", city)
    data.setdefault("source", source)

    try:
        return DiscoveryCandidate.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Dropping malformed candidate {data.get('name')!r}: {e}")
        return None


def parse_candidates(
    raw_response: str,
    city: Optional[str] = None,
    source: str = "llm",
) -> List[DiscoveryCandidate]:
    """
    Parse a ``{"candidates": [...]}`` LLM response.

    Args:
        raw_response: Raw LLM response string
        city: City the candidates were requested for
        source: Source tag stamped onto every candidate

    Returns:
        Candidates with at least a name and an address

    Raises:
        ParseError: If the JSON is invalid or has no usable candidates
    """
    json_str = extract_json_from_response(raw_response)

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse candidates JSON: {e}")

    raw_candidates = data.get("candidates") if isinstance(data, dict) else None
    if not isinstance(raw_candidates, list):
        raise ParseError("Invalid response format: missing candidates array")

    candidates = [
        candidate
        for candidate in (normalize_candidate(c, city, source) for c in raw_candidates)
        if candidate is not None
    ]
    if not candidates:
        raise ParseError("No valid candidates in response")

    return candidates
