"""Field-set validation for nested intent objects.

Comparisons are set based. Key lists are sorted before they are reported
so the same document always produces the same error message.
"""

from typing import Any, Iterable, List, Mapping

from deltanear.primitives.errors import MissingField, SchemaViolation


def _sorted_keys(keys: Iterable[str]) -> List[str]:
    return sorted(str(k) for k in keys)


def require_object(value: Any, path: str) -> Mapping[str, Any]:
    """Ensure value is a JSON object.

    Args:
        value: Candidate value.
        path: Dotted field path used in error messages.

    Returns:
        The value, unchanged.

    Raises:
        MissingField: If value is None.
        SchemaViolation: If value is any other non-mapping type.
    """
    if value is None:
        raise MissingField(f"Missing object: {path}", field=path)
    if not isinstance(value, Mapping):
        raise SchemaViolation(
            f"{path} must be an object, got {type(value).__name__}",
            field=path,
            value=value,
        )
    return value


def require_exact_keys(obj: Mapping[str, Any], expected: Iterable[str], path: str) -> None:
    """Key set of obj must equal expected.

    Raises:
        SchemaViolation: Naming the expected and actual key sets.
    """
    expected_keys = _sorted_keys(expected)
    actual_keys = _sorted_keys(obj.keys())
    if actual_keys != expected_keys:
        extra = [k for k in actual_keys if k not in expected_keys]
        raise SchemaViolation(
            f"Invalid {path} fields. Expected {expected_keys}, got {actual_keys}",
            field=path,
            value=extra or actual_keys,
        )


def require_keys(
    obj: Mapping[str, Any],
    required: Iterable[str],
    allowed: Iterable[str],
    path: str,
) -> None:
    """Every required key must be present and no key may fall outside allowed.

    Missing keys are checked first, in sorted order.

    Raises:
        MissingField: First missing required key.
        SchemaViolation: First key outside the allowed set.
    """
    actual_keys = _sorted_keys(obj.keys())
    for key in _sorted_keys(required):
        if key not in actual_keys:
            raise MissingField(
                f"Missing required field in {path}: {key}",
                field=f"{path}.{key}",
            )

    allowed_keys = _sorted_keys(allowed)
    for key in actual_keys:
        if key not in allowed_keys:
            raise SchemaViolation(
                f"Unknown field in {path}: {key}. Allowed {allowed_keys}",
                field=f"{path}.{key}",
                value=key,
            )
