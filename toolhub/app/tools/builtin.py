"""Built-in local tools."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from toolhub.app.domain.tools.registry import LocalTool, ParamSpec, local_tool

_WORD = re.compile(r"\w+", re.UNICODE)


def echo(text: str, repeat: int) -> str:
    """Return the text, optionally repeated."""
    return " ".join([text] * max(repeat, 1))


def add_numbers(a: float, b: float) -> float:
    """Add two numbers."""
    return a + b


def word_count(text: str, unique: bool) -> int:
    """Count words in a text."""
    words = _WORD.findall(text.lower())
    return len(set(words)) if unique else len(words)


def current_time(tz: str) -> str:
    """Current time as ISO 8601, in UTC unless a time zone name is given."""
    if not tz:
        return datetime.now(timezone.utc).isoformat()
    try:
        return datetime.now(ZoneInfo(tz)).isoformat()
    except ZoneInfoNotFoundError:
        raise ValueError(f"Unknown time zone: {tz}") from None


def json_pick(document: dict, path: str) -> Any:
    """Follow a dotted path (``a.b.0.c``) into a JSON document."""
    current: Any = document
    for part in (p for p in path.split(".") if p):
        if isinstance(current, list):
            current = current[int(part)]
        elif isinstance(current, dict):
            current = current[part]
        else:
            raise KeyError(path)
    return current


def builtin_tools() -> list[LocalTool]:
    return [
        local_tool(
            echo,
            params=[
                ParamSpec("text", str, description="Text to echo back"),
                ParamSpec("repeat", int, required=False, description="Number of repetitions"),
            ],
        ),
        local_tool(
            add_numbers,
            params=[ParamSpec("a", float), ParamSpec("b", float)],
        ),
        local_tool(
            word_count,
            params=[
                ParamSpec("text", str),
                ParamSpec("unique", bool, required=False, description="Count distinct words only"),
            ],
        ),
        local_tool(
            current_time,
            params=[ParamSpec("tz", str, required=False, description="IANA time zone name")],
        ),
        local_tool(
            json_pick,
            description="Extract a value from a JSON document",
            params=[
                ParamSpec("document", dict, description="JSON object, or its text"),
                ParamSpec("path", str, description="Dotted path"),
            ],
        ),
    ]
