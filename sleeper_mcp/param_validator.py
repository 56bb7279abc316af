"""Central parameter schema validation for tool arguments.

One schema dict per tool keeps argument rules in a single place and produces
consistent error messages. Schema format:

{
  "param_name": {
      "type": type | tuple[type, ...],
      "required": bool,               # default False
      "nullable": bool,               # None accepted as a value
      "default": any,                 # applied when the param is missing
      "min": number, "max": number,   # numeric bounds
      "choices": [...],               # allowed values
      "item_type": type,              # element type for list params
      "min_items": int, "max_items": int,
  }, ...
}

Returns (validated_dict, errors_list); an empty errors_list means success.
"""
from __future__ import annotations
from typing import Any, Dict, Tuple, List


def _type_name(expected: Any) -> str:
    if isinstance(expected, tuple):
        return " or ".join(getattr(t, "__name__", str(t)) for t in expected if t is not type(None))
    return getattr(expected, "__name__", str(expected))


def _coerce(name: str, val: Any, expected: Any, errors: List[str]) -> Tuple[bool, Any]:
    if expected is Any:
        return True, val
    if isinstance(val, bool) and expected in (int, float):
        errors.append(f"'{name}' must be of type {_type_name(expected)}")
        return False, val
    if expected in (int, float) and isinstance(val, str):
        try:
            val = expected(val)
        except ValueError:
            errors.append(f"'{name}' must be of type {_type_name(expected)}")
            return False, val
    if not isinstance(val, expected):
        errors.append(f"'{name}' must be of type {_type_name(expected)}")
        return False, val
    return True, val


def validate_params(schema: Dict[str, Dict[str, Any]], values: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    validated: Dict[str, Any] = {}
    errors: List[str] = []

    for name, spec in schema.items():
        present = name in values
        val = values.get(name)
        required = spec.get("required", False)
        nullable = spec.get("nullable", False)

        if val is None:
            if not present and "default" in spec:
                validated[name] = spec["default"]
                continue
            if nullable or not required:
                validated[name] = spec.get("default") if not present else None
                continue
            errors.append(f"'{name}' is required")
            continue

        ok, val = _coerce(name, val, spec.get("type", Any), errors)
        if not ok:
            continue

        if isinstance(val, (int, float)) and not isinstance(val, bool):
            if "min" in spec and val < spec["min"]:
                errors.append(f"'{name}' must be >= {spec['min']}")
            if "max" in spec and val > spec["max"]:
                errors.append(f"'{name}' must be <= {spec['max']}")

        if spec.get("choices") and val not in spec["choices"]:
            choices_list = ", ".join(map(str, spec["choices"]))
            errors.append(f"'{name}' must be one of: {choices_list}")

        if isinstance(val, list):
            item_type = spec.get("item_type")
            if item_type is not None and not all(isinstance(item, item_type) for item in val):
                errors.append(f"'{name}' items must be of type {_type_name(item_type)}")
            if "min_items" in spec and len(val) < spec["min_items"]:
                errors.append(f"'{name}' must contain at least {spec['min_items']} item(s)")
            if "max_items" in spec and len(val) > spec["max_items"]:
                errors.append(f"'{name}' must contain at most {spec['max_items']} item(s)")

        validated[name] = val

    return validated, errors


def format_errors(errors: List[str]) -> str:
    return "; ".join(errors)
