"""
Lenient decoding of structured model output.

LLM responses are expected to be JSON objects but routinely arrive wrapped in
markdown fences, surrounded by prose, truncated, or with fields of the wrong
shape. ``lenient_decode`` turns any such text into a valid pydantic record by
filling every missing or invalid field from a defaults provider, so a bad
response degrades the record instead of failing the caller.

Example:
    >>> result = lenient_decode(text, VisionAnalysis, lambda parsed: {"confidence": 0.5})
    >>> result.value.confidence
    0.5
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from product_creator.utils.errors import ParseError
from product_creator.utils.logger import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Receives the fields the model did supply (keyed by field name) and returns
# fallback values for any field name.
DefaultsProvider = Callable[[dict[str, Any]], dict[str, Any]]

_CODE_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")


def extract_json(text: str) -> str:
    """Extract JSON from text that may contain markdown or other content."""
    if not text:
        return ""

    # Code blocks first
    match = _CODE_FENCE_PATTERN.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()

    # Outermost object
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]

    return text.strip()


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Parse model output into a mapping.

    Raises:
        ParseError: If the text holds no JSON object.
    """
    candidate = extract_json(text)
    if not candidate:
        raise ParseError("Empty response")
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e.msg} at position {e.pos}") from e
    if not isinstance(parsed, dict):
        raise ParseError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


@dataclass
class DecodeResult(Generic[ModelT]):
    """A decoded record plus what had to be filled in."""
    value: ModelT
    parse_error: Optional[str] = None
    defaulted_fields: list[str] = field(default_factory=list)

    @property
    def fully_parsed(self) -> bool:
        return self.parse_error is None and not self.defaulted_fields


def _field_keys(model: type[BaseModel]) -> dict[str, str]:
    """Map every accepted input key (field name or alias) to its field name."""
    keys: dict[str, str] = {}
    for name, info in model.model_fields.items():
        keys[name] = name
        if info.alias:
            keys[info.alias] = name
        if isinstance(info.validation_alias, str):
            keys[info.validation_alias] = name
    return keys


def _normalize_keys(parsed: dict[str, Any], keys: dict[str, str]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in parsed.items():
        name = keys.get(key)
        if name is None or value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        # An exact field-name key wins over its alias
        if name in normalized and key != name:
            continue
        normalized[name] = value
    return normalized


def lenient_decode(
    text: str,
    model: type[ModelT],
    defaults: Optional[DefaultsProvider] = None,
) -> DecodeResult[ModelT]:
    """
    Decode ``text`` into ``model`` without ever failing on bad content.

    Steps:
        1. Parse the text into a mapping; unparsable text becomes ``{}``.
           Null and blank-string values count as absent.
        2. Ask ``defaults`` for fallback values given what was parsed.
        3. Fill absent fields from the fallbacks.
        4. Validate; each field that fails is replaced by its fallback, and
           if the fallback fails too, by the model's own default.

    A model with required fields and no usable fallback for them still raises
    pydantic's ValidationError, since that is a programming error.
    """
    parse_error: Optional[str] = None
    try:
        parsed = parse_json_object(text)
    except ParseError as e:
        parse_error = str(e)
        parsed = {}

    keys = _field_keys(model)
    supplied = _normalize_keys(parsed, keys)
    fallback = {
        name: value
        for name, value in (defaults(dict(supplied)) if defaults else {}).items()
        if name in model.model_fields
    }

    candidate = dict(supplied)
    defaulted: list[str] = []
    for name, value in fallback.items():
        if name not in candidate:
            candidate[name] = value
            defaulted.append(name)

    # Each failing field moves one step: supplied -> fallback -> model default
    for _ in range(2 * len(model.model_fields) + 1):
        try:
            value = model.model_validate(candidate)
            break
        except ValidationError as exc:
            failing = {
                keys.get(str(err["loc"][0]), str(err["loc"][0]))
                for err in exc.errors()
                if err.get("loc")
            }
            if not failing:
                raise
            for name in failing:
                if name in fallback and candidate.get(name) is not fallback[name]:
                    candidate[name] = fallback[name]
                elif name in candidate:
                    del candidate[name]
                else:
                    raise
                if name not in defaulted:
                    defaulted.append(name)
    else:
        value = model.model_validate(candidate)

    if parse_error or defaulted:
        logger.debug(
            "Decoded model output with defaults",
            model=model.__name__,
            parse_error=parse_error,
            defaulted_fields=defaulted,
        )

    return DecodeResult(value=value, parse_error=parse_error, defaulted_fields=defaulted)


__all__ = [
    "DefaultsProvider",
    "DecodeResult",
    "extract_json",
    "parse_json_object",
    "lenient_decode",
]
