"""Escape JSON text into a ``JSON.parse('...')`` JavaScript expression.

Single quotes are used as the outer delimiter because JSON already uses double
quotes for keys and strings. Inside a single-quoted JavaScript string only two
characters can change how the literal is read: the backslash and the single
quote itself. Everything else, including multi-byte characters, is copied
through untouched.

Safety relies on two things:

1. the JSON encoder producing correctly escaped JSON text, and
2. JavaScript engines ending a single-quoted string only at another
   unescaped single quote.
"""

from __future__ import annotations

import re

from serialize_to_javascript.options import RenderOptions, default_render_options

JSON_PARSE_OPEN = "JSON.parse('"
JSON_PARSE_CLOSE = "')"

# Reviver applied by JSON.parse bottom-up, so nested containers are frozen
# before the containers holding them.
FREEZE_REVIVER = ", (_, value) => Object.freeze(value)"

# 14 chars in JSON.parse('')
WRAPPER_OVERHEAD = len(JSON_PARSE_OPEN) + len(JSON_PARSE_CLOSE)

_NEEDS_ESCAPE = re.compile(r"[\\']")


def estimate_capacity(json_text: str, options: RenderOptions | None = None) -> int:
    """Minimum output size for ``json_text``, assuming nothing needs escaping.

    Each escaped character adds one more. The estimate is a sizing hint only.
    """
    options = options or default_render_options()
    estimate = WRAPPER_OVERHEAD + len(json_text) + options.extra_buffer_hint
    if options.freeze:
        estimate += len(FREEZE_REVIVER)
    return estimate


def escape_json_parse(json_text: str, options: RenderOptions | None = None) -> str:
    """Wrap ``json_text`` as ``JSON.parse('{json}')``.

    Every backslash and single quote is prefixed with a backslash. With
    ``options.freeze`` the call also gets a reviver that deep-freezes the
    parsed value.
    """
    options = options or default_render_options()

    parts = [JSON_PARSE_OPEN]

    # insert a backslash before any backslash or single quote characters
    last = 0
    for match in _NEEDS_ESCAPE.finditer(json_text):
        idx = match.start()
        parts.append(json_text[last:idx])
        parts.append("\\")
        last = idx

    # trailing characters that don't need escaping
    parts.append(json_text[last:])
    parts.append("'")
    if options.freeze:
        parts.append(FREEZE_REVIVER)
    parts.append(")")
    return "".join(parts)
