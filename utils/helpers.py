"""Helper utility functions."""

import json
import re
from datetime import datetime, timezone
from typing import Any, Optional


_CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
# 00.95 -> 0.95, but leave 100.5 alone
_DOUBLE_ZERO_DECIMAL = re.compile(r"(?<![\d.])00\.(\d+)")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fence markers from model output."""
    return _CODE_FENCE.sub("", text.strip()).strip()


def extract_delimited(text: str, opener: str = "{", closer: str = "}") -> Optional[str]:
    """
    Extract the first balanced block delimited by opener/closer.
    
    Delimiters inside JSON strings are ignored. When the block never
    balances, everything up to the last closer is returned instead.
    """
    start = text.find(opener)
    if start == -1:
        return None
    
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
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
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    
    end = text.rfind(closer)
    if end > start:
        return text[start:end + 1]
    return None


def fix_json_text(text: str) -> str:
    """Apply textual fixups for common model JSON mistakes."""
    text = _DOUBLE_ZERO_DECIMAL.sub(r"0.\1", text)
    text = _TRAILING_COMMA.sub(r"\1", text)
    return text


def repair_json_object(text: str) -> Optional[str]:
    """
    Turn raw model output into a parseable JSON object string.
    
    Examples:
        '```json\\n{"tool": "get_quote",}\\n```' -> '{"tool": "get_quote"}'
        'Sure! {"confidence": 00.9}' -> '{"confidence": 0.9}'
    """
    candidate = extract_delimited(strip_code_fences(text), "{", "}")
    if candidate is None:
        return None
    return fix_json_text(candidate)


def repair_json_array(text: str) -> Optional[str]:
    """Same as repair_json_object, for a top-level JSON array."""
    candidate = extract_delimited(strip_code_fences(text), "[", "]")
    if candidate is None:
        return None
    return fix_json_text(candidate)


def parse_tool_payload(text: Optional[str]) -> Any:
    """Decode a tool's text payload; non-JSON text is wrapped as a message."""
    if not text:
        return {}
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return {"message": text}


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


def truncate_text(text: str, max_length: int = 100) -> str:
    """Truncate text to max length with ellipsis."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."
