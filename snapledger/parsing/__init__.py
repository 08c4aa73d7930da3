"""Model response recovery."""

from snapledger.parsing.recovery import (
    MalformedResponseError,
    find_first_json_object,
    parse_model_response,
    strip_code_fence,
)

__all__ = [
    "MalformedResponseError",
    "find_first_json_object",
    "parse_model_response",
    "strip_code_fence",
]
