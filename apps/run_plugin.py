from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from textutil.api import build_registry, run_plugin
from textutil.configuration import ConfigError, load_host_config, parse_override


def _resolve_log_level() -> int:
    level_name = os.environ.get("TEXTUTIL_LOG_LEVEL", "WARNING").upper()
    return getattr(logging, level_name, logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a TextUtil plugin over a text buffer.")
    parser.add_argument("plugin", nargs="?", help="Plugin name (case-insensitive)")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Host config YAML (defaults to $TEXTUTIL_CONFIG, then built-in defaults)",
    )
    parser.add_argument(
        "--input",
        dest="input_path",
        type=Path,
        default=None,
        help="Read the buffer from this file instead of stdin",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Dotted config override, e.g. runtime.timeout_s=1",
    )
    parser.add_argument("--list", action="store_true", help="List registered plugins and exit")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=_resolve_log_level(), format="%(levelname)s %(name)s: %(message)s")

    try:
        overrides = dict(parse_override(raw) for raw in args.overrides)
        config = load_host_config(args.config, overrides=overrides)
    except ConfigError as exc:
        print(f"config error: {exc}", file=sys.stderr)
        return 2

    registry = build_registry(config)

    if args.list:
        for info in registry.list():
            print(info.key)
        return 0

    if not args.plugin:
        print("a plugin name is required (or pass --list)", file=sys.stderr)
        return 2

    if args.input_path is None:
        text = sys.stdin.read()
    else:
        try:
            text = args.input_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            print(f"input error: cannot read {args.input_path}: {exc}", file=sys.stderr)
            return 2

    result = run_plugin(args.plugin, text, registry=registry, config=config)
    if not result.ok:
        print(result.message, file=sys.stderr)
        return 1

    sys.stdout.write(result.text or "")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
