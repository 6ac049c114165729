import json
import logging
import re
from typing import Any, Dict, Mapping, Union

import json5

from analyzer.errors import DecodeError

logger = logging.getLogger(__name__)

Payload = Union[str, bytes, bytearray, Mapping[str, Any]]


def load_payload(raw: Payload) -> Dict[str, Any]:
    """
    Multi-layered decoding of an externally supplied record.

    Attempts to decode through multiple strategies:
    1. Mappings are returned as a plain dict
    2. Standard json.loads()
    3. Clean common issues (markdown code fences, trailing commas)
    4. json5 parser (tolerates comments, single quotes and trailing commas)

    Args:
        raw: Capture payload as a dict, bytes or JSON text

    Returns:
        Decoded dictionary

    Raises:
        DecodeError: If the payload is not an object or all layers fail
    """
    if isinstance(raw, Mapping):
        return dict(raw)

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"payload is not valid UTF-8: {e}", field="payload") from e

    if not isinstance(raw, str):
        raise DecodeError(
            f"unsupported payload type {type(raw).__name__}", field="payload"
        )

    errors = []

    # Layer 1: Standard JSON
    try:
        return _expect_object(json.loads(raw))
    except json.JSONDecodeError as e:
        errors.append(f"Standard JSON: {e}")
        logger.debug(f"Layer 1 failed: {e}")

    # Layer 2: Strip code fences and trailing commas
    cleaned = raw.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
    cleaned = re.sub(r"\s*```$", "", cleaned)
    cleaned = re.sub(r",(\s*[}\]])", r"\1", cleaned)
    try:
        result = _expect_object(json.loads(cleaned))
        logger.info("✅ Payload decoded after cleaning")
        return result
    except json.JSONDecodeError as e:
        errors.append(f"Cleaned JSON: {e}")
        logger.debug(f"Layer 2 failed: {e}")

    # Layer 3: json5
    try:
        result = _expect_object(json5.loads(cleaned))
        logger.info("✅ Payload decoded with json5")
        return result
    except ValueError as e:
        errors.append(f"JSON5: {e}")
        logger.debug(f"Layer 3 failed: {e}")

    logger.warning(f"⚠️ Payload could not be decoded: {'; '.join(errors)}")
    raise DecodeError(
        f"failed to decode payload after all attempts. Errors: {'; '.join(errors[:2])}",
        field="payload",
    )


def _expect_object(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise DecodeError(
            f"payload must be a JSON object, got {type(value).__name__}", field="payload"
        )
    return value
