"""
Vision response parser.

Turns raw model text into a validated `VisionAnalysisPayload`.
"""

import json
import re
from typing import Any

from pydantic import ValidationError

from ketolens.domain.recognition.models import VisionAnalysisPayload
from ketolens.domain.shared.errors import AnalysisFormatError

# Outermost {...}: first opening brace to last closing brace
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Parse text as a JSON object, searching free text if needed.

    Raises:
        AnalysisFormatError: If no JSON object can be parsed

    Example:
        >>> extract_json_object('Sure! {"score": 80, "verdict": "safe"} Enjoy')
        {'score': 80, 'verdict': 'safe'}
    """
    if not text or not text.strip():
        raise AnalysisFormatError("Empty model response")

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(text)
        if match is None:
            raise AnalysisFormatError("No JSON object in model response")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise AnalysisFormatError(f"Malformed JSON in model response: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisFormatError(
            f"Expected JSON object, got {type(data).__name__}"
        )
    return data


def parse_analysis(text: str) -> VisionAnalysisPayload:
    """
    Parse and validate a vision back end response.

    Raises:
        AnalysisFormatError: If the text is not JSON or violates the contract
    """
    data = extract_json_object(text)
    try:
        return VisionAnalysisPayload.model_validate(data)
    except ValidationError as e:
        raise AnalysisFormatError(
            f"Response does not match analysis contract: {e.error_count()} error(s)"
        ) from e
