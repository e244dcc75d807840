"""
Response parsing for the vision model's roster extraction output.

The model is asked for a single JSON object but long rosters regularly hit the
output token ceiling, so the text may stop mid-array. Parsing strategy:
1. Strip markdown fences and any prose before the first "{"
2. Direct json.loads
3. Truncation recovery: cut back to the last complete array element and re-close
   the containers that were open at that point
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from .errors import MalformedResponseError
from .schemas import ParsedExtraction

logger = logging.getLogger("roster_extraction.response_parser")

MALFORMED_MESSAGE = (
    "Could not interpret the extraction response. "
    "The image may be unclear or not a valid roster grid."
)
EXCERPT_CHARS = 500

RECORD_KEYS = ("turnos", "records", "shifts")
AGENT_KEYS = ("agentes", "agents")

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```\s*$")
_CLOSERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    cleaned = (text or "").strip()
    cleaned = _FENCE_START.sub("", cleaned)
    cleaned = _FENCE_END.sub("", cleaned)
    cleaned = cleaned.strip()

    start = cleaned.find("{")
    if start > 0:
        cleaned = cleaned[start:]
    return cleaned


def _scan(text: str) -> Tuple[List[str], bool, Optional[Tuple[int, List[str]]], Optional[int]]:
    """
    Walk the text once, tracking open containers outside of strings.

    Returns (open_stack, ended_in_string, last_element_boundary, top_level_end).
    last_element_boundary is (index just past the "}" of the last "}," pair, the
    stack open at that point). top_level_end is the index just past the first
    complete top-level value, if the document closed.
    """
    stack: List[str] = []
    in_string = False
    escaped = False
    last_close_brace: Optional[int] = None
    boundary: Optional[Tuple[int, List[str]]] = None
    top_level_end: Optional[int] = None

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
            last_close_brace = None
        elif char in _CLOSERS:
            stack.append(char)
            last_close_brace = None
        elif char in ("}", "]"):
            if stack:
                stack.pop()
            last_close_brace = index if char == "}" else None
            if not stack and top_level_end is None:
                top_level_end = index + 1
        elif char == ",":
            if last_close_brace is not None and stack:
                boundary = (last_close_brace + 1, list(stack))
            last_close_brace = None
        elif not char.isspace():
            last_close_brace = None

    return stack, in_string, boundary, top_level_end


def recover_truncated_json(text: str) -> Optional[str]:
    """Best-effort repair of a truncated JSON document; None when nothing to do."""
    stack, in_string, boundary, top_level_end = _scan(text)

    if not stack and not in_string:
        # Closed document followed by trailing prose.
        if top_level_end is not None and top_level_end < len(text):
            return text[:top_level_end]
        return None

    if boundary is not None:
        cut, open_containers = boundary
        closers = "".join(_CLOSERS[opener] for opener in reversed(open_containers))
        return text[:cut] + closers

    repaired = text + ('"' if in_string else "")
    repaired = repaired.rstrip().rstrip(",")
    return repaired + "".join(_CLOSERS[opener] for opener in reversed(stack))


def _excerpt(text: str) -> str:
    if len(text) <= EXCERPT_CHARS * 2:
        return text
    return f"{text[:EXCERPT_CHARS]} ... {text[-EXCERPT_CHARS:]}"


def _first_list(payload: Dict[str, Any], keys) -> List[Dict[str, Any]]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
    return []


def parse_extraction_response(raw_text: str) -> ParsedExtraction:
    """Parse the model response into its metadata / agents / records sections."""
    cleaned = strip_code_fences(raw_text)
    recovered = False

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.warning(
            "Direct JSON parse failed (%s); attempting truncation recovery on %d chars",
            exc.msg,
            len(cleaned),
        )
        repaired = recover_truncated_json(cleaned)
        if repaired is None:
            logger.error("Malformed extraction response: %s", _excerpt(cleaned))
            raise MalformedResponseError(MALFORMED_MESSAGE, excerpt=_excerpt(cleaned)) from exc
        try:
            payload = json.loads(repaired)
        except json.JSONDecodeError as repair_exc:
            logger.error("Truncation recovery failed: %s", _excerpt(cleaned))
            raise MalformedResponseError(MALFORMED_MESSAGE, excerpt=_excerpt(cleaned)) from repair_exc
        recovered = True
        logger.info("Recovered truncated extraction response (%d -> %d chars)", len(cleaned), len(repaired))

    if not isinstance(payload, dict):
        logger.error("Extraction response is not a JSON object: %s", type(payload).__name__)
        raise MalformedResponseError(MALFORMED_MESSAGE, excerpt=_excerpt(cleaned))

    metadata = payload.get("metadata")
    return ParsedExtraction(
        metadata=metadata if isinstance(metadata, dict) else {},
        agents=_first_list(payload, AGENT_KEYS),
        records=_first_list(payload, RECORD_KEYS),
        recovered=recovered,
    )
