"""CLI entry point: python -m serialize_to_javascript escape|render|placeholders ..."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from serialize_to_javascript.options import RenderOptions, default_render_options, load_render_options

logger = logging.getLogger(__name__)


def _build_options(args: argparse.Namespace) -> RenderOptions:
    # Build render options: defaults <- YAML <- CLI flags
    if args.options:
        options = load_render_options(args.options)
    else:
        options = default_render_options()

    freeze = options.freeze
    if args.freeze is not None:
        freeze = args.freeze
    extra = options.extra_buffer_hint
    if args.extra_buffer_hint is not None:
        extra = args.extra_buffer_hint
    return RenderOptions(freeze=freeze, extra_buffer_hint=extra)


def _read_text(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _write_text(path: str | None, text: str) -> None:
    if path is None or path == "-":
        sys.stdout.write(text)
        return
    Path(path).write_text(text, encoding="utf-8")
    logger.info("Wrote %d chars to %s", len(text), path)


def _split_assignment(item: str, flag: str) -> tuple[str, str]:
    name, sep, value = item.partition("=")
    if not sep or not name:
        raise ValueError(f"{flag} expects NAME=VALUE, got {item!r}")
    return name, value


def _reject_constant(name: str):
    # json.loads accepts NaN and Infinity; JSON.parse does not.
    raise ValueError(f"non-standard JSON constant {name}")


def _load_data(path: str) -> dict:
    """Load escaped field values from a YAML (or JSON) mapping."""
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Data file must be a mapping, got {type(raw).__name__}")
    return raw


def cmd_escape(args: argparse.Namespace) -> None:
    from serialize_to_javascript.escape import escape_json_parse

    try:
        options = _build_options(args)
        text = _read_text(args.input).strip()
        json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        print(f"Error: input is not valid JSON: {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(escape_json_parse(text, options))


def cmd_render(args: argparse.Namespace) -> None:
    from serialize_to_javascript.serialize import SerializationError
    from serialize_to_javascript.template import Template

    try:
        options = _build_options(args)
        document = Path(args.template).read_text(encoding="utf-8")

        template = Template()
        if args.data:
            for name, value in _load_data(args.data).items():
                template.add_escaped_field(str(name), value)
        for item in args.raw:
            name, value = _split_assignment(item, "--raw")
            template.add_raw_field(name, value)
        for item in args.raw_file:
            name, path = _split_assignment(item, "--raw-file")
            template.add_raw_field(name, Path(path).read_text(encoding="utf-8"))

        rendered = template.render(document, options)
        _write_text(args.output, rendered)
    except SerializationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_placeholders(args: argparse.Namespace) -> None:
    from rich.console import Console
    from rich.table import Table

    from serialize_to_javascript.template import find_placeholders, placeholder_name

    try:
        document = Path(args.template).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    found = find_placeholders(document)
    console = Console()
    if not found:
        console.print(f"No placeholders found in {args.template}")
        return

    table = Table(title=f"Placeholders in {args.template}", show_header=True, header_style="bold")
    table.add_column("Field")
    table.add_column("Kind")
    table.add_column("Placeholder")
    table.add_column("Occurrences", justify="right")

    for name, kind, count in found:
        kind_label = "[yellow]raw[/yellow]" if kind.value == "raw" else "escaped"
        table.add_row(name, kind_label, placeholder_name(name, kind), str(count))

    console.print(table)


def _add_option_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--freeze", action=argparse.BooleanOptionalAction, default=None,
                        help="Deep-freeze parsed values with Object.freeze (overrides --options)")
    parser.add_argument("--extra-buffer-hint", type=int, default=None,
                        help="Extra capacity reserved per value (sizing hint only)")
    parser.add_argument("--options", default=None,
                        help="Path to YAML file with render options")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="serialize-to-javascript",
        description="Embed JSON-serializable values in JavaScript source",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # -- escape --
    p_escape = subparsers.add_parser("escape", help="Wrap JSON text as a JSON.parse('...') expression")
    p_escape.add_argument("--input", default=None, help="JSON file to read (default: stdin)")
    _add_option_args(p_escape)
    p_escape.set_defaults(func=cmd_escape)

    # -- render --
    p_render = subparsers.add_parser("render", help="Substitute field values into a template")
    p_render.add_argument("--template", required=True, help="Template document path")
    p_render.add_argument("--data", default=None,
                          help="YAML/JSON mapping of escaped field names to values")
    p_render.add_argument("--raw", action="append", default=[], metavar="NAME=TEXT",
                          help="Raw field inserted without escaping (repeatable). UNSAFE.")
    p_render.add_argument("--raw-file", action="append", default=[], metavar="NAME=PATH",
                          help="Raw field read from a file (repeatable). UNSAFE.")
    p_render.add_argument("--output", "-o", default=None, help="Output path (default: stdout)")
    _add_option_args(p_render)
    p_render.set_defaults(func=cmd_render)

    # -- placeholders --
    p_ph = subparsers.add_parser("placeholders", help="List placeholders found in a template")
    p_ph.add_argument("--template", required=True, help="Template document path")
    p_ph.set_defaults(func=cmd_placeholders)

    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    args.func(args)


if __name__ == "__main__":
    main()
