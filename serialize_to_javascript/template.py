"""Placeholder substitution of escaped and raw field values into a document.

Escaped fields are written as ``__TEMPLATE_<name>__`` in the document and are
replaced by a ``JSON.parse('...')`` expression. Raw fields are written as
``__RAW_<name>__`` and are replaced by ``str(value)`` with no escaping at all.
Raw substitution is unsafe by contract: the caller must make sure the text
cannot break out of the surrounding script.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import re
import sys
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from serialize_to_javascript.escape import estimate_capacity, escape_json_parse
from serialize_to_javascript.options import RenderOptions, default_render_options
from serialize_to_javascript.serialize import NotYetSerialized

logger = logging.getLogger(__name__)

ESCAPED_PREFIX = "__TEMPLATE_"
RAW_PREFIX = "__RAW_"
PLACEHOLDER_SUFFIX = "__"

# dataclasses.field metadata key marking a field as raw.
RAW_METADATA_KEY = "serialize_to_javascript.raw"

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Used for inspection only; the renderer never pattern-matches documents.
# The closing "__" must end the identifier or run straight into the next
# placeholder, so names ending in "_" and adjacent placeholders both resolve.
_PLACEHOLDER_RE = re.compile(
    r"__(TEMPLATE|RAW)_([A-Za-z_][A-Za-z0-9_]*?)__"
    r"(?=$|[^A-Za-z0-9_]|__(?:TEMPLATE|RAW)_)"
)


class FieldKind(enum.Enum):
    ESCAPED = "escaped"
    RAW = "raw"


def placeholder_name(name: str, kind: FieldKind) -> str:
    """Return the placeholder text a field named ``name`` is substituted into."""
    prefix = RAW_PREFIX if kind is FieldKind.RAW else ESCAPED_PREFIX
    return f"{prefix}{name}{PLACEHOLDER_SUFFIX}"


@dataclass(frozen=True)
class TemplateField:
    """One named slot of a render call."""

    name: str
    kind: FieldKind
    value: Any

    def __post_init__(self):
        if not isinstance(self.name, str) or not _IDENTIFIER_RE.fullmatch(self.name):
            raise ValueError(
                f"Template field names must be identifiers, got {self.name!r}"
            )
        if not isinstance(self.kind, FieldKind):
            raise ValueError(f"Unknown field kind: {self.kind!r}")

    @property
    def placeholder(self) -> str:
        return placeholder_name(self.name, self.kind)


def _field_text(field: TemplateField, options: RenderOptions) -> str:
    if field.kind is FieldKind.RAW:
        return str(field.value)

    serialized = NotYetSerialized(field.value).serialize(field=field.name)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Field %s serialized to %d chars (estimated literal size %d)",
            field.name,
            len(serialized.text),
            estimate_capacity(serialized.text, options),
        )
    return escape_json_parse(serialized.text, options)


def _check_unique(fields: list[TemplateField]) -> None:
    seen: set[str] = set()
    for field in fields:
        if field.name in seen:
            raise ValueError(f"Duplicate template field name: {field.name!r}")
        seen.add(field.name)


def render(
    fields: Iterable[TemplateField],
    document: str,
    options: RenderOptions | None = None,
) -> str:
    """Replace every field's placeholder in ``document`` with its rendered text.

    Each field is rendered once, in order, before any substitution starts, so
    a value is read exactly once no matter how many times its placeholder
    appears. The first ``SerializationError`` aborts the render.

    Substitution is a single pass over ``document``: text inserted for one
    field is never scanned for another field's placeholder, and field order
    does not change the result. Placeholders with no matching field are left
    as-is.
    """
    options = options or default_render_options()
    fields = list(fields)
    _check_unique(fields)

    replacements: dict[str, str] = {}
    for field in fields:
        replacements[field.placeholder] = _field_text(field, options)

    if not replacements:
        return document

    # Longest first so a placeholder never shadows a longer one it prefixes.
    alternatives = sorted(replacements, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(p) for p in alternatives))
    hits: Counter[str] = Counter()

    def _replacer(m: re.Match) -> str:
        hits[m.group(0)] += 1
        return replacements[m.group(0)]

    rendered = pattern.sub(_replacer, document)

    logger.debug("Rendered %d field(s) into %d-char document", len(fields), len(document))
    for placeholder in replacements:
        logger.debug("Placeholder %s replaced %d time(s)", placeholder, hits[placeholder])
    return rendered


def find_placeholders(document: str) -> list[tuple[str, FieldKind, int]]:
    """List ``(name, kind, occurrences)`` for placeholders found in ``document``.

    Ordered by first appearance.
    """
    counts: Counter[tuple[str, FieldKind]] = Counter()
    for m in _PLACEHOLDER_RE.finditer(document):
        kind = FieldKind.RAW if m.group(1) == "RAW" else FieldKind.ESCAPED
        counts[(m.group(2), kind)] += 1
    return [(name, kind, n) for (name, kind), n in counts.items()]


def raw_field(**kwargs: Any) -> Any:
    """``dataclasses.field`` that marks the field for raw substitution."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[RAW_METADATA_KEY] = True
    return dataclasses.field(metadata=metadata, **kwargs)


class Template:
    """Builder collecting the fields of one render call.

    ``Template().add_escaped_field("key", "asdf").add_raw_field("js", code).render(doc)``
    """

    def __init__(self, fields: Iterable[TemplateField] = ()) -> None:
        self._fields: list[TemplateField] = []
        for field in fields:
            self._add(field)

    def _add(self, field: TemplateField) -> Template:
        if any(f.name == field.name for f in self._fields):
            raise ValueError(f"Duplicate template field name: {field.name!r}")
        self._fields.append(field)
        return self

    def add_escaped_field(self, name: str, value: Any) -> Template:
        return self._add(TemplateField(name, FieldKind.ESCAPED, value))

    def add_raw_field(self, name: str, value: Any) -> Template:
        return self._add(TemplateField(name, FieldKind.RAW, value))

    @property
    def fields(self) -> tuple[TemplateField, ...]:
        return tuple(self._fields)

    def render(self, document: str, options: RenderOptions | None = None) -> str:
        return render(self._fields, document, options)

    @classmethod
    def from_dataclass(cls, obj: Any) -> Template:
        """Build a template from a dataclass instance's fields, in declaration order.

        Fields declared with :func:`raw_field` become raw fields.
        """
        if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
            raise TypeError(
                f"Template data must be a dataclass instance, got {type(obj).__name__}"
            )
        template = cls()
        for f in dataclasses.fields(obj):
            value = getattr(obj, f.name)
            if f.metadata.get(RAW_METADATA_KEY):
                template.add_raw_field(f.name, value)
            else:
                template.add_escaped_field(f.name, value)
        return template


def render_data(obj: Any, document: str, options: RenderOptions | None = None) -> str:
    """Render a dataclass instance's fields into ``document``."""
    return Template.from_dataclass(obj).render(document, options)


def _render_default(self, options: RenderOptions | None = None) -> str:
    return render_data(self, type(self).RAW_TEMPLATE, options)


def default_template(path: str):
    """Class decorator attaching a template file to a dataclass.

    The file is read once, relative to the directory of the module defining
    the class, and stored as ``RAW_TEMPLATE``. Instances gain
    ``render_default(options=None)``.
    """

    def decorator(cls):
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"default_template requires a dataclass, got {cls.__name__}")
        module = sys.modules.get(cls.__module__)
        module_file = getattr(module, "__file__", None)
        base = Path(module_file).resolve().parent if module_file else Path.cwd()
        template_path = base / path
        cls.RAW_TEMPLATE = template_path.read_text(encoding="utf-8")
        cls.render_default = _render_default
        logger.debug("Loaded default template for %s from %s", cls.__name__, template_path)
        return cls

    return decorator
