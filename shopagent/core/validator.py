"""
Action validator - the only trust boundary between generated actions and the store.

Every candidate is checked against the schema registry before it can be previewed
or executed. Failing items are reported and dropped; passing siblings are kept.
"""

import math
import re
from typing import Any, List, Optional, Tuple

from .action_schema import (
    MAX_ACTIONS_PER_REQUEST,
    MAX_TITLE_LENGTH,
    PrimitiveType,
    is_blocked,
    lookup,
)
from .schema import ValidatedAction, ValidationResult
from ..util.logging import logger

_INT_PATTERN = re.compile(r"^[+-]?\d+$")


def validate_actions(candidates: Any, max_actions: int = MAX_ACTIONS_PER_REQUEST,
                     source: str = "api") -> ValidationResult:
    """
    Validate a candidate action list.

    Args:
        candidates: Untrusted list of action mappings, each tagged with `kind`
        max_actions: Largest batch accepted; bigger batches are rejected, not truncated
        source: Caller label for the audit log

    Returns:
        ValidationResult; `valid` is True only when no errors were found
    """
    structural_error = _check_structure(candidates, max_actions)
    if structural_error:
        logger.log_validation(_safe_len(candidates), 0, [structural_error], source)
        return ValidationResult(valid=False, actions=[], errors=[structural_error])

    errors: List[str] = []
    validated: List[ValidatedAction] = []

    for index, candidate in enumerate(candidates, start=1):
        action, item_errors = _validate_one(index, candidate)
        if item_errors:
            errors.extend(item_errors)
        else:
            validated.append(action)

    logger.log_validation(len(candidates), len(validated), errors, source)

    return ValidationResult(valid=not errors, actions=validated, errors=errors)


def _check_structure(candidates: Any, max_actions: int) -> Optional[str]:
    if not isinstance(candidates, (list, tuple)):
        return "Candidate actions must be a list of actions"

    if len(candidates) > max_actions:
        return f"Too many actions ({len(candidates)}). Maximum is {max_actions}."

    if len(candidates) == 0:
        return "No actions provided"

    return None


def _validate_one(index: int, candidate: Any) -> Tuple[Optional[ValidatedAction], List[str]]:
    prefix = f"Action #{index}"

    if not isinstance(candidate, dict):
        return None, [f"{prefix}: Action must be an object"]

    kind = candidate.get("kind")
    if kind is None or kind == "":
        return None, [f'{prefix}: Missing "kind" field']

    if not isinstance(kind, str):
        return None, [f'{prefix}: Unknown action kind "{kind}"']

    if is_blocked(kind):
        return None, [f'{prefix}: Action "{kind}" is BLOCKED and not allowed']

    schema = lookup(kind)
    if schema is None:
        return None, [f'{prefix}: Unknown action kind "{kind}"']

    prefix = f"{prefix} ({kind})"

    missing = sorted(f for f in schema.required if f not in candidate)
    if missing:
        return None, [f"{prefix}: Missing required fields: {', '.join(missing)}"]

    errors = []
    fields = {}
    for name in sorted(schema.fields):
        if name not in candidate:
            continue
        value = candidate[name]
        expected = schema.field_types.get(name)

        if expected is PrimitiveType.NUMBER:
            number = coerce_number(value)
            if number is None:
                errors.append(f'{prefix}: Field "{name}" must be a number, got "{str(value)[:100]}"')
                continue
            value = number

        elif expected is PrimitiveType.STRING:
            if not isinstance(value, str):
                errors.append(f'{prefix}: Field "{name}" must be a string')
                continue
            if name == "title" and len(value) > MAX_TITLE_LENGTH:
                errors.append(f"{prefix}: Title is too long (max {MAX_TITLE_LENGTH} characters)")
                continue

        elif expected is PrimitiveType.ARRAY:
            if not isinstance(value, (list, tuple)):
                errors.append(f'{prefix}: Field "{name}" must be an array')
                continue
            value = list(value)

        fields[name] = value

    if errors:
        return None, errors

    # Unknown fields never make it past this point
    ordered = {name: fields[name] for name in candidate if name in fields}
    return ValidatedAction(kind=schema.kind, fields=ordered), []


def coerce_number(value: Any) -> Optional[float]:
    """Coerce numbers and numeric-looking strings; None when the value is not numeric."""
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _INT_PATTERN.match(text):
            try:
                return int(text)
            except ValueError:
                # Beyond the interpreter's integer string conversion limit
                return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if isinstance(number, float) and (math.isnan(number) or math.isinf(number)):
        return None
    return number


def _safe_len(value: Any) -> int:
    return len(value) if isinstance(value, (list, tuple)) else 0
