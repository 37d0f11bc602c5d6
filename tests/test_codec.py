"""Tests for RAPI wire helpers: body decoding and query/body encoding."""

import pytest

from ganeti_client import errors
from ganeti_client.rapi import codec, types

# ---------------------------------------------------------------------------
# decode_body
# ---------------------------------------------------------------------------


def test_decode_body_strict_object():
    """A strict JSON object decodes to a dict."""
    assert codec.decode_body('{"a":1}') == {"a": 1}


def test_decode_body_strict_array_of_strings():
    """A strict JSON array decodes unchanged."""
    assert codec.decode_body('["tag1","tag2"]') == ["tag1", "tag2"]


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ("3", 3),
        ('"master-candidate"', "master-candidate"),
        ("  42\n", 42),
        ("null", None),
    ],
)
def test_decode_body_bare_scalars(body: str, expected):
    """Bare scalars decode to their value."""
    assert codec.decode_body(body) == expected


def test_decode_body_uses_wrapped_retry_when_strict_fails(monkeypatch: pytest.MonkeyPatch):
    """The second attempt parses the body wrapped in an array."""
    seen: list[str] = []
    real_loads = codec.json.loads

    def fake_loads(text: str):
        seen.append(text)
        if not text.startswith("["):
            raise codec.json.JSONDecodeError("strict parser refuses", text, 0)
        return real_loads(text)

    monkeypatch.setattr(codec.json, "loads", fake_loads)

    assert codec.decode_body("3") == 3
    assert seen == ["3", "[3]"]


@pytest.mark.parametrize("body", ["not json at all {", "", "1, 2", "{'a': 1}"])
def test_decode_body_invalid_raises_decode_error(body: str):
    """Bodies that are invalid in both dialects raise DecodeError."""
    with pytest.raises(errors.DecodeError) as exc_info:
        codec.decode_body(body)
    assert exc_info.value.body == body


# ---------------------------------------------------------------------------
# encode_params
# ---------------------------------------------------------------------------


def test_encode_params_booleans_as_digits():
    """Booleans are rendered as 1 and 0, never true/false."""
    encoded = codec.encode_params({"bulk": True, "dry-run": False})
    assert encoded == [("bulk", "1"), ("dry-run", "0")]


def test_encode_params_lists_become_repeated_keys():
    """List values produce one pair per item, in order."""
    encoded = codec.encode_params({"tag": ["a", "b", "c"], "dry-run": True})
    assert encoded == [("tag", "a"), ("tag", "b"), ("tag", "c"), ("dry-run", "1")]


def test_encode_params_drops_none():
    """None values are left out."""
    encoded = codec.encode_params({"iallocator": None, "remote_node": "node2"})
    assert encoded == [("remote_node", "node2")]


def test_encode_params_enums_by_value():
    """Enum members are sent by their value."""
    encoded = codec.encode_params(
        {"type": types.RebootType.HARD, "mode": types.ReplaceDisksMode.REPLACE_AUTO},
    )
    assert encoded == [("type", "hard"), ("mode", "replace_auto")]


def test_encode_params_other_values_as_strings():
    """Numbers and strings are rendered with str()."""
    assert codec.encode_params({"id": 5, "os": "debian"}) == [("id", "5"), ("os", "debian")]


def test_encode_params_empty_list_sends_nothing():
    """An empty list contributes no pairs."""
    assert codec.encode_params({"tag": []}) == []


# ---------------------------------------------------------------------------
# encode_role_body
# ---------------------------------------------------------------------------


def test_encode_role_body_quotes_string():
    """The role body is a JSON string literal including its quotes."""
    assert codec.encode_role_body("master-candidate") == '"master-candidate"'


def test_encode_role_body_accepts_enum():
    """NodeRole members are encoded by value."""
    assert codec.encode_role_body(types.NodeRole.DRAINED) == '"drained"'
