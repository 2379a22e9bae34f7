"""Payload decoding tests."""

from __future__ import annotations

import pytest

from custom_components.paradox_mqtt.models import SecuritySystemMode
from custom_components.paradox_mqtt.payload import (
    FALSY,
    TRUTHY,
    ModeVocabulary,
    decode_bool,
    decode_json_flag,
    decode_level,
    decode_tamper,
    falsy,
    payload_to_str,
    truthy,
)


def test_truthy_and_falsy_are_disjoint() -> None:
    """No token is both truthy and falsy."""

    assert not TRUTHY & FALSY
    for token in TRUTHY | FALSY | {"", "maybe", "  ON ", "Off"}:
        assert not (truthy(token) and falsy(token))


def test_decode_bool_is_case_and_whitespace_insensitive() -> None:
    """Booleans normalise before lookup and return None for unknown text."""

    assert decode_bool(" Online ") is True
    assert decode_bool("OFF") is False
    assert decode_bool("maybe") is None
    assert decode_bool(None) is None


def test_payload_to_str_handles_bytes_messages_and_none() -> None:
    """Raw paho payloads arrive as bytes."""

    class _Msg:
        payload = b"armed_away"

    assert payload_to_str(b"on") == "on"
    assert payload_to_str(_Msg()) == "armed_away"
    assert payload_to_str(None) == ""
    assert payload_to_str(42) == "42"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("90", 90.0),
        ("150", 100.0),
        ("-3", 0.0),
        ("55.5", 55.5),
        ("90%", 90.0),
        (" 85 %", 85.0),
        ("nan", None),
        ("inf", None),
        ("1e999", None),
        ("full", None),
        ("", None),
    ],
)
def test_decode_level_clamps_and_rejects_junk(raw: str, expected) -> None:
    """Levels clamp to 0..100 and trailing units are ignored; junk and non-finite values are no opinion."""

    assert decode_level(raw) == expected


def test_decode_tamper_prefers_named_reason() -> None:
    """A reason literal wins over a plain truthy reading."""

    vocabulary = ("tamper", "intrusion", "cover")
    reasons = ("cover", "intrusion")
    assert decode_tamper("Cover", vocabulary, reasons) == "cover"
    assert decode_tamper("tamper", vocabulary, reasons) is True
    assert decode_tamper("1", vocabulary, reasons) is True
    assert decode_tamper("off", vocabulary, reasons) is False
    assert decode_tamper("whatever", vocabulary, reasons) is None


def test_decode_json_flag_fields_inversion_and_state() -> None:
    """JSON payloads are checked field by field, then by their state string."""

    fields = ("open", "!contact")
    assert decode_json_flag('{"open": true}', fields) is True
    assert decode_json_flag('{"contact": false}', fields) is True
    assert decode_json_flag('{"contact": true}', fields) is False
    assert decode_json_flag('{"state": "OPEN"}', fields, {"open"}, {"closed"}) is True
    assert decode_json_flag('{"state": "closed"}', fields, {"open"}, {"closed"}) is False
    assert decode_json_flag('{"open": "yes"}', fields) is None
    assert decode_json_flag("not json", fields) is None
    assert decode_json_flag("[1, 2]", fields) is None


def test_loose_vocabulary_accepts_synonyms() -> None:
    """Loose mode maps common panel wording onto the four modes."""

    vocab = ModeVocabulary()
    assert vocab.decode_mode("stay") is SecuritySystemMode.HOME_ARMED
    assert vocab.decode_mode("ARM_AWAY") is SecuritySystemMode.AWAY_ARMED
    assert vocab.decode_mode("sleep") is SecuritySystemMode.NIGHT_ARMED
    assert vocab.decode_mode("disarmed") is SecuritySystemMode.DISARMED
    assert vocab.decode_mode("exit_delay") is None
    assert vocab.decode_mode("") is None


def test_strict_vocabulary_only_accepts_configured_tokens() -> None:
    """Strict mode ignores synonyms that are not in the token list."""

    vocab = ModeVocabulary(strict=True)
    assert vocab.decode_mode("stay") is None
    assert vocab.decode_mode("armed_home") is SecuritySystemMode.HOME_ARMED
    assert vocab.decode_mode("armed_night") is SecuritySystemMode.NIGHT_ARMED

    custom = ModeVocabulary(strict=True, state_tokens=["STAY", "AWAY", "SLEEP", "OFF"])
    assert custom.decode_mode("stay") is SecuritySystemMode.HOME_ARMED
    assert custom.decode_mode("off") is SecuritySystemMode.DISARMED


def test_triggered_tokens_follow_vocabulary_mode() -> None:
    """Triggered detection uses the configured list only in strict mode."""

    assert ModeVocabulary().is_triggered("Alarm")
    assert not ModeVocabulary().is_triggered("in_alarm")
    strict = ModeVocabulary(strict=True, triggered_tokens=["in_alarm"])
    assert strict.is_triggered("IN_ALARM")
    assert not strict.is_triggered("alarm")


def test_outgoing_token_precedence() -> None:
    """Override beats strict command token, which beats the default."""

    loose = ModeVocabulary(command_tokens=["STAY", "AWAY", "SLEEP", "OFF"])
    strict = ModeVocabulary(strict=True, command_tokens=["STAY", "AWAY", "SLEEP", "OFF"])
    overrides = {SecuritySystemMode.AWAY_ARMED: "ARM_ALL"}

    assert loose.outgoing(SecuritySystemMode.HOME_ARMED) == "arm_home"
    assert strict.outgoing(SecuritySystemMode.HOME_ARMED) == "STAY"
    assert strict.outgoing(SecuritySystemMode.DISARMED) == "OFF"
    assert strict.outgoing(SecuritySystemMode.AWAY_ARMED, overrides) == "ARM_ALL"
    assert loose.outgoing(SecuritySystemMode.AWAY_ARMED, overrides) == "ARM_ALL"
