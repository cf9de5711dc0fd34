import json
import logging
import re
from typing import Any

from pydantic import TypeAdapter, ValidationError

from interview_coach.core.exceptions import MalformedResponseError

logger = logging.getLogger(__name__)


def clean_llm_json_output(raw_text: str) -> str:
    """Cleans LLM output to extract valid JSON (object or array)."""
    if not raw_text:
        return ""

    # Remove markdown code blocks
    text = re.sub(r'```json\s*', '', raw_text)
    text = re.sub(r'```', '', text).strip()

    try:
        json.loads(text)
        return text
    except json.JSONDecodeError:
        pass

    # Fallback: extract the outermost object or array from surrounding text
    for opener, closer in (('{', '}'), ('[', ']')):
        start_idx = text.find(opener)
        end_idx = text.rfind(closer)
        if start_idx != -1 and end_idx > start_idx:
            extracted = text[start_idx:end_idx + 1]
            try:
                json.loads(extracted)
                return extracted
            except json.JSONDecodeError:
                continue

    return text


def parse_llm_response(result: Any, schema: Any, unwrap_array: bool = False) -> Any:
    """
    Parse an LLM response and validate it against `schema`.

    `schema` is anything pydantic's TypeAdapter accepts, e.g. a model class
    or `list[Model]`.

    Raises:
        MalformedResponseError: if the payload is not JSON or fails validation.
    """
    raw_content = result if isinstance(result, str) else str(result)
    schema_name = getattr(schema, "__name__", str(schema))

    try:
        data = json.loads(clean_llm_json_output(raw_content))
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing {schema_name}: {e}")
        logger.debug(f"Raw output (first 500 chars): {raw_content[:500]}...")
        raise MalformedResponseError(
            f"Provider returned invalid JSON for {schema_name}", {"raw": raw_content[:500]}
        ) from e

    if unwrap_array:
        data = unwrap_json_array(data)
    return validate_payload(data, schema)


def validate_payload(data: Any, schema: Any) -> Any:
    """Validate already-decoded JSON against `schema`."""
    schema_name = getattr(schema, "__name__", str(schema))
    try:
        return TypeAdapter(schema).validate_python(data)
    except ValidationError as e:
        logger.error(f"Payload failed {schema_name} validation: {e.error_count()} error(s)")
        raise MalformedResponseError(
            f"Provider response does not match {schema_name}", {"errors": e.errors(include_url=False)}
        ) from e


def unwrap_json_array(data: Any) -> Any:
    """
    JSON-object response modes cannot return a bare array; accept an object
    wrapping a single list (e.g. {"roadmap": [...]}) as that array.
    """
    if isinstance(data, dict):
        lists = [value for value in data.values() if isinstance(value, list)]
        if len(lists) == 1:
            return lists[0]
    return data
