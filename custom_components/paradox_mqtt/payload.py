"""Decode raw MQTT payloads into domain values.

Every decoder is total: it returns a value or ``None`` ("no opinion") and never
raises. Callers decide whether to apply the result.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Sequence, Union

from .const import DEFAULT_COMMAND_TOKENS, DEFAULT_STATE_TOKENS, DEFAULT_TRIGGERED_TOKENS
from .models import TOKEN_LIST_ORDER, SecuritySystemMode

TRUTHY: FrozenSet[str] = frozenset({"1", "true", "online", "yes", "on", "ok", "open"})
FALSY: FrozenSet[str] = frozenset({"0", "false", "offline", "no", "off", "closed", "close"})

LOOSE_MODE_SYNONYMS: Dict[str, SecuritySystemMode] = {}
for _mode, _tokens in (
    (SecuritySystemMode.DISARMED, ("disarm", "disarmed", "off", "0", "idle", "ready")),
    (SecuritySystemMode.HOME_ARMED, ("arm_home", "home", "stay", "armed_home")),
    (SecuritySystemMode.AWAY_ARMED, ("arm_away", "away", "armed_away", "away_armed")),
    (SecuritySystemMode.NIGHT_ARMED, ("arm_night", "night", "armed_night", "sleep", "arm_sleep", "armed_sleep")),
):
    for _token in _tokens:
        LOOSE_MODE_SYNONYMS[_token] = _mode

TRANSITIONAL_TOKENS: FrozenSet[str] = frozenset({"entry_delay", "exit_delay", "pending", "arming", "disarming"})
LOOSE_TRIGGERED_TOKENS: FrozenSet[str] = frozenset({"alarm", "triggered"})

DEFAULT_OUTGOING: Dict[SecuritySystemMode, str] = {
    SecuritySystemMode.DISARMED: "disarm",
    SecuritySystemMode.HOME_ARMED: "arm_home",
    SecuritySystemMode.AWAY_ARMED: "arm_away",
    SecuritySystemMode.NIGHT_ARMED: "arm_night",
}

Tamper = Union[bool, str]


def payload_to_str(payload: Any) -> str:
    """Return payload as text, whether it's bytes, str, a message or None."""
    p = getattr(payload, "payload", payload)
    if p is None:
        return ""
    if isinstance(p, (bytes, bytearray)):
        return bytes(p).decode("utf-8", "ignore")
    return str(p)


def normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def truthy(value: Optional[str]) -> bool:
    return normalize(value) in TRUTHY


def falsy(value: Optional[str]) -> bool:
    return normalize(value) in FALSY


def decode_bool(value: Optional[str]) -> Optional[bool]:
    if truthy(value):
        return True
    if falsy(value):
        return False
    return None


# Leading numeric prefix; trailing units such as "%" are ignored.
_LEADING_NUMBER_RE = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def decode_level(value: Optional[str]) -> Optional[float]:
    """Parse a 0..100 level; out of range values are clamped, junk is dropped."""
    match = _LEADING_NUMBER_RE.match(value or "")
    if match is None:
        return None
    number = float(match.group(0))
    if not math.isfinite(number):
        return None
    return clamp(number, 0.0, 100.0)


def decode_tamper(
    value: Optional[str], vocabulary: Iterable[str], reasons: Sequence[str]
) -> Optional[Tamper]:
    """Map a tamper payload to a named reason, True, False or no opinion."""
    np = normalize(value)
    if np in reasons:
        return np
    if truthy(np) or np in vocabulary:
        return True
    if falsy(np):
        return False
    return None


def decode_json_flag(
    raw: str,
    fields: Sequence[str],
    state_on: Iterable[str] = (),
    state_off: Iterable[str] = (),
) -> Optional[bool]:
    """Recover a boolean from a JSON object payload.

    ``fields`` are checked in order; a leading ``!`` inverts the field (e.g. a
    ``contact: false`` reading means open). A string ``state`` field is checked
    last against ``state_on``/``state_off``.
    """
    try:
        doc = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(doc, dict):
        return None
    for name in fields:
        inverted = name.startswith("!")
        key = name[1:] if inverted else name
        val = doc.get(key)
        if isinstance(val, bool):
            return (not val) if inverted else val
    state = doc.get("state")
    if isinstance(state, str):
        s = normalize(state)
        if s in state_on:
            return True
        if s in state_off:
            return False
    return None


class ModeVocabulary:
    """Strict or loose translation between panel tokens and modes."""

    def __init__(
        self,
        *,
        strict: bool = False,
        state_tokens: Sequence[str] = DEFAULT_STATE_TOKENS,
        command_tokens: Sequence[str] = DEFAULT_COMMAND_TOKENS,
        triggered_tokens: Sequence[str] = DEFAULT_TRIGGERED_TOKENS,
    ) -> None:
        self.strict = strict
        self._state_tokens: Dict[str, SecuritySystemMode] = {
            normalize(tok): mode for mode, tok in zip(TOKEN_LIST_ORDER, state_tokens)
        }
        self._command_tokens: Dict[SecuritySystemMode, str] = dict(zip(TOKEN_LIST_ORDER, command_tokens))
        self._triggered_tokens: FrozenSet[str] = frozenset(normalize(t) for t in triggered_tokens)

    def decode_mode(self, value: Optional[str]) -> Optional[SecuritySystemMode]:
        np = normalize(value)
        if not np:
            return None
        if self.strict:
            return self._state_tokens.get(np)
        if np in TRANSITIONAL_TOKENS:
            return None
        return LOOSE_MODE_SYNONYMS.get(np)

    def is_triggered(self, value: Optional[str]) -> bool:
        np = normalize(value)
        if self.strict:
            return np in self._triggered_tokens
        return np in LOOSE_TRIGGERED_TOKENS

    def outgoing(
        self, mode: SecuritySystemMode, overrides: Optional[Mapping[SecuritySystemMode, str]] = None
    ) -> str:
        override = (overrides or {}).get(mode)
        if override:
            return override
        if self.strict and self._command_tokens.get(mode):
            return self._command_tokens[mode]
        return DEFAULT_OUTGOING[mode]

    def describe(self) -> Dict[str, Any]:
        return {
            "strict": self.strict,
            "state_tokens": {tok: mode.value for tok, mode in self._state_tokens.items()},
            "command_tokens": {mode.value: tok for mode, tok in self._command_tokens.items()},
            "triggered_tokens": sorted(self._triggered_tokens),
        }
