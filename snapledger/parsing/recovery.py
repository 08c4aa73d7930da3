"""
Response Recovery Parser

Turns the model's free-form reply into an ExtractionResult.

The model is ASKED for a JSON object but nothing guarantees it. Replies
seen in practice include:
- a bare JSON object
- the object inside a ```json fence
- prose before and/or after the object
- the pre-list single-transaction shape ({"name": ..., "amount": ...})

Recovery steps:
1. Strip an optional code fence
2. Find the first balanced JSON object (character scanner)
3. json.loads it
4. Wrap a legacy single-item object into {"items": [object]}
5. Validate each item on its own (LineItemValidator)

Only the first JSON object in the reply is used.
"""

import json
import re
from datetime import date
from typing import Optional

from snapledger.models.ledger import ExtractionResult, ExtractedLineItem
from snapledger.services.vision import AnalysisError
from snapledger.validation import LineItemValidator


_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


class MalformedResponseError(AnalysisError):
    """
    The model's reply could not be turned into line items.

    raw_text is for server-side diagnostics only and must never be
    returned to the client.
    """

    code = "malformed_response"

    def __init__(self, reason: str, raw_text: str):
        self.reason = reason
        self.raw_text = raw_text
        super().__init__(reason)


def strip_code_fence(text: str) -> str:
    """Return the contents of the first ``` fence, or the text unchanged."""
    match = _FENCE_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return text


def _scan_object(text: str, start: int) -> Optional[int]:
    """
    Index just past the object opening at text[start], or None if it never closes.

    Braces inside string literals don't count; escapes inside strings
    are skipped.
    """
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        char = text[i]
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
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i + 1

    return None


def find_first_json_object(text: str) -> Optional[str]:
    """
    Locate the first balanced {...} substring.

    Nesting depth is unbounded. If an opening brace never closes, the
    scan restarts from the next opening brace.
    """
    start = text.find("{")
    while start != -1:
        end = _scan_object(text, start)
        if end is not None:
            return text[start:end]
        start = text.find("{", start + 1)
    return None


def parse_model_response(
    raw_text: str,
    today: date,
    validator: Optional[LineItemValidator] = None,
) -> ExtractionResult:
    """
    Recover line items from the model's reply.

    Args:
        raw_text: The reply exactly as the provider returned it
        today: Fallback for missing or unreadable dates
        validator: Per-item validator (default settings if None)

    Returns:
        ExtractionResult with valid items and rejected ones

    Raises:
        MalformedResponseError: If no JSON object can be recovered, or the
            object isn't an items list or a single item
    """
    validator = validator or LineItemValidator()

    candidate = strip_code_fence(raw_text)
    fragment = find_first_json_object(candidate)
    if fragment is None:
        raise MalformedResponseError("no JSON object found in model response", raw_text)

    try:
        data = json.loads(fragment)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"invalid JSON in model response: {e.msg}", raw_text) from e

    # Legacy single-transaction shape
    if "items" not in data and data.get("name"):
        data = {"items": [data]}

    raw_items = data.get("items")
    if raw_items is None:
        raise MalformedResponseError("model response has no items", raw_text)
    if not isinstance(raw_items, list):
        raise MalformedResponseError("model response items is not a list", raw_text)

    result = ExtractionResult(processed_on=today)
    for index, raw_item in enumerate(raw_items):
        if index >= validator.max_line_items:
            result.rejected.append(validator.rejected_over_limit(raw_item, index))
            continue

        outcome = validator.validate_item(raw_item, index, today)
        if isinstance(outcome, ExtractedLineItem):
            result.items.append(outcome)
        else:
            result.rejected.append(outcome)

    return result
