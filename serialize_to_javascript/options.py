"""Render options dataclass and YAML loader."""

from __future__ import annotations

from dataclasses import dataclass

import yaml


@dataclass(frozen=True)
class RenderOptions:
    """Knobs shared by the escaper and the template renderer.

    ``freeze`` wraps every ``JSON.parse`` call with a reviver that deep-freezes
    the parsed value. ``extra_buffer_hint`` is extra capacity reserved per
    value when estimating output size; it never changes the output.
    """

    freeze: bool = False
    extra_buffer_hint: int = 0

    def __post_init__(self):
        if not isinstance(self.freeze, bool):
            raise ValueError(f"'freeze' must be a bool, got {type(self.freeze).__name__}")
        if isinstance(self.extra_buffer_hint, bool) or not isinstance(self.extra_buffer_hint, int):
            raise ValueError(
                "'extra_buffer_hint' must be an int, "
                f"got {type(self.extra_buffer_hint).__name__}"
            )
        if self.extra_buffer_hint < 0:
            raise ValueError(
                f"'extra_buffer_hint' must be non-negative, got {self.extra_buffer_hint}"
            )


_OPTION_KEYS = frozenset(RenderOptions.__dataclass_fields__)


def default_render_options() -> RenderOptions:
    return RenderOptions()


def load_render_options(path: str) -> RenderOptions:
    """Load render options from a YAML file.

    An empty file yields the defaults. Unknown keys cause a ``ValueError``
    so typos are caught early.
    """
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if raw is None:
        return default_render_options()
    if not isinstance(raw, dict):
        raise ValueError(f"Render options YAML must be a mapping, got {type(raw).__name__}")

    unknown = set(raw) - _OPTION_KEYS
    if unknown:
        raise ValueError(
            f"Unknown keys in render options: {sorted(unknown)}. "
            f"Allowed: {sorted(_OPTION_KEYS)}"
        )

    return RenderOptions(**raw)
