"""Bind an untyped parameter bag to a handler's declared parameters.

Callers are frequently LLM agents, so binding is permissive: keys are matched
by name, lower-cased name or position, values are coerced where a sensible
conversion exists, and only a truly absent required value is a hard error.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from pydantic import TypeAdapter

from toolhub.app.core.errors import MissingRequiredParameter, TypeCoercionFailure
from toolhub.app.domain.tools.registry import ParamSpec, ToolHandle

logger = logging.getLogger("toolhub")

_TRUE_WORDS = {"true", "1", "yes", "on"}

_ZERO_VALUES: dict[Any, Any] = {
    int: 0,
    float: 0.0,
    bool: False,
    str: "",
}


def zero_value(target: Any) -> Any:
    return _ZERO_VALUES.get(target)


def _lookup(params: Mapping[str, Any], spec: ParamSpec, position: int) -> Any:
    for key in (spec.name, spec.name.lower(), str(position)):
        value = params.get(key)
        if value is not None:
            return value
    return None


def _parse_number(text: str, target: type, spec: ParamSpec, original: Any) -> int | float:
    text = text.strip()
    try:
        if target is int:
            try:
                return int(text)
            except ValueError:
                number = float(text)
                if not number.is_integer():
                    raise
                return int(number)
        return float(text)
    except ValueError:
        raise TypeCoercionFailure(spec.name, target, original) from None


def coerce(value: Any, spec: ParamSpec) -> Any:
    target = spec.type
    if target is Any or target is object:
        return value

    if target in (int, float):
        if isinstance(value, bool):
            return target(value)
        if isinstance(value, target):
            return value
        if isinstance(value, (int, float)):
            try:
                return target(value)
            except (ValueError, OverflowError):
                raise TypeCoercionFailure(spec.name, target, value) from None
        if isinstance(value, (str, bytes)):
            text = value.decode() if isinstance(value, bytes) else value
            return _parse_number(text, target, spec, value)
        raise TypeCoercionFailure(spec.name, target, value)

    if target is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        text = str(value).strip().lower()
        if text in _TRUE_WORDS:
            return True
        # numeric text follows the same rule as numbers
        try:
            return float(text) != 0
        except ValueError:
            return False

    if target is str:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return str(value)

    if isinstance(target, type):
        try:
            if isinstance(value, target):
                return value
        except TypeError:
            pass

    try:
        adapter = TypeAdapter(target)
        if isinstance(value, str):
            try:
                return adapter.validate_json(value)
            except ValueError:
                pass
        return adapter.validate_python(value)
    except Exception:
        logger.warning(
            "Cannot convert value for %s to %s, passing it through",
            spec.name,
            getattr(target, "__name__", target),
        )
        return value


class ArgumentBinder:
    def bind(self, handle: ToolHandle, params: Mapping[str, Any] | None) -> list[Any]:
        params = params or {}
        args: list[Any] = []
        for position, spec in enumerate(handle.params):
            value = _lookup(params, spec, position)
            if value is None:
                if spec.required:
                    raise MissingRequiredParameter(spec.name, position)
                args.append(zero_value(spec.type))
                continue
            args.append(coerce(value, spec))
        return args
