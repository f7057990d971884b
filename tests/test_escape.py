"""Tests for serialize_to_javascript.escape."""

import json
import re
import shutil
import subprocess

import pytest

from serialize_to_javascript.escape import (
    FREEZE_REVIVER,
    WRAPPER_OVERHEAD,
    escape_json_parse,
    estimate_capacity,
)
from serialize_to_javascript.options import RenderOptions
from serialize_to_javascript.serialize import to_json

requires_node = pytest.mark.skipif(shutil.which("node") is None, reason="node not installed")


def _decode_literal(literal: str):
    """Evaluate a JSON.parse('...') literal the way a JS engine would."""
    assert literal.startswith("JSON.parse('")
    assert literal.endswith("')")
    body = literal[len("JSON.parse('"):-len("')")]
    # Every backslash in the body prefixes the character it escapes.
    return json.loads(re.sub(r"\\(.)", r"\1", body, flags=re.S))


class TestEscapeJsonParse:
    def test_minimal_escaping(self):
        text = '{"a":1,"b":[true,null,"x"]}'
        assert escape_json_parse(text) == "JSON.parse('" + text + "')"

    def test_escapes_quote_and_backslash(self):
        assert escape_json_parse("a'b\\c") == "JSON.parse('a\\'b\\\\c')"

    def test_consecutive_specials(self):
        assert escape_json_parse("''\\\\") == "JSON.parse('\\'\\'\\\\\\\\')"

    def test_special_at_edges(self):
        assert escape_json_parse("'x'") == "JSON.parse('\\'x\\'')"

    def test_empty_input(self):
        assert escape_json_parse("") == "JSON.parse('')"

    def test_multibyte_untouched(self):
        text = '"héllo ✓ 😀 \u2028"'
        assert escape_json_parse(text) == "JSON.parse('" + text + "')"

    def test_json_escapes_are_doubled(self):
        # "a\"b\n" as JSON text
        text = to_json('a"b\n')
        assert text == '"a\\"b\\n"'
        assert escape_json_parse(text) == "JSON.parse('\"a\\\\\"b\\\\n\"')"


class TestFreeze:
    def test_freeze_adds_reviver_before_closing_paren(self):
        out = escape_json_parse('{"a":{"b":1}}', RenderOptions(freeze=True))
        assert out.endswith("'" + FREEZE_REVIVER + ")")

    def test_freeze_only_differs_by_reviver(self):
        text = "{\"it's\":\"a\\\\b\"}"
        plain = escape_json_parse(text)
        frozen = escape_json_parse(text, RenderOptions(freeze=True))
        assert frozen == plain[:-1] + FREEZE_REVIVER + ")"

    def test_buffer_hint_does_not_change_output(self):
        text = "{\"a\":\"'\"}"
        assert escape_json_parse(text, RenderOptions(extra_buffer_hint=4096)) == escape_json_parse(text)


class TestEstimateCapacity:
    def test_wrapper_overhead(self):
        assert WRAPPER_OVERHEAD == 14
        assert estimate_capacity("") == 14

    def test_exact_when_nothing_to_escape(self):
        text = '{"key":"value","n":[1,2,3]}'
        assert estimate_capacity(text) == len(escape_json_parse(text))

    def test_exact_with_freeze(self):
        opts = RenderOptions(freeze=True)
        text = '[1,2]'
        assert estimate_capacity(text, opts) == len(escape_json_parse(text, opts))
        assert estimate_capacity(text, opts) == 14 + len(text) + len(FREEZE_REVIVER)

    def test_extra_hint_added(self):
        assert estimate_capacity("abc", RenderOptions(extra_buffer_hint=10)) == 27

    def test_underestimate_by_escape_count(self):
        text = "a'b\\c'"
        assert len(escape_json_parse(text)) == estimate_capacity(text) + 3


ROUND_TRIP_VALUES = [
    "asdf",
    "it's a \\ test",
    'quotes " and \' and \\" mixed',
    "line\nbreak\ttab\r",
    "unicode é ✓ 😀 \u2028\u2029",
    {"nested": {"list": [1, 2.5, -3, None, True, False], "empty": {}}},
    ["'", "\\", "\\'", "''"],
    0,
    "",
]


class TestRoundTrip:
    @pytest.mark.parametrize("value", ROUND_TRIP_VALUES)
    def test_decodes_to_original(self, value):
        assert _decode_literal(escape_json_parse(to_json(value))) == value

    @requires_node
    def test_node_parses_to_original(self):
        value = {"items": ROUND_TRIP_VALUES}
        literal = escape_json_parse(to_json(value))
        script = f"process.stdout.write(JSON.stringify({literal}))"
        proc = subprocess.run(
            ["node", "-e", script], capture_output=True, text=True, encoding="utf-8", check=True
        )
        assert json.loads(proc.stdout) == value

    @requires_node
    def test_node_freeze_is_deep(self):
        literal = escape_json_parse(
            to_json({"outer": {"inner": [1, {"x": 2}]}}), RenderOptions(freeze=True)
        )
        script = (
            f"const v = {literal};"
            "process.stdout.write(JSON.stringify(["
            "Object.isFrozen(v), Object.isFrozen(v.outer),"
            "Object.isFrozen(v.outer.inner), Object.isFrozen(v.outer.inner[1])]))"
        )
        proc = subprocess.run(
            ["node", "-e", script], capture_output=True, text=True, check=True
        )
        assert json.loads(proc.stdout) == [True, True, True, True]
