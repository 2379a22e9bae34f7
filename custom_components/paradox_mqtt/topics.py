"""MQTT topic matching with `+` and `#` wildcards."""

from __future__ import annotations

from functools import lru_cache
import logging
import re
from typing import Optional, Pattern

_LOGGER = logging.getLogger(__name__)

_WILDCARDS = {"+": "[^/]+", "#": ".+"}


@lru_cache(maxsize=512)
def _compile(pattern: str) -> Optional[Pattern[str]]:
    rx = "".join(_WILDCARDS.get(ch) or re.escape(ch) for ch in pattern)
    try:
        return re.compile(f"^{rx}$")
    except re.error:
        _LOGGER.debug("topic pattern %r does not compile", pattern)
        return None


def has_wildcard(pattern: str) -> bool:
    return "+" in pattern or "#" in pattern


def topic_matches(topic: str, pattern: Optional[str]) -> bool:
    """Return True when ``topic`` satisfies ``pattern``.

    Patterns without wildcards only match on equality. Never raises.
    """
    if not pattern:
        return False
    if pattern == topic:
        return True
    if not has_wildcard(pattern):
        return False
    compiled = _compile(pattern)
    if compiled is None:
        return False
    return compiled.match(topic) is not None
