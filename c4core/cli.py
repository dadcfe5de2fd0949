#!/usr/bin/env python3
"""C4 DSL CLI - convert, check and reformat Structurizr-style DSL files."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .errors import C4Error, get_error_message
from .generator import generate_dsl
from .models import Workspace
from .parser import parse_dsl_with_diagnostics
from .validation import collect_issues, validate_dsl, validation_summary

logger = logging.getLogger(__name__)


def _json_out(data, code: int = 0):
    print(json.dumps(data))
    sys.exit(code)


def _error_out(error):
    _json_out({"status": "error", "error": get_error_message(error)}, code=1)


def _read(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        _error_out(f"Cannot read {path}: {e.strerror}")


def _write(path: str, content: str) -> None:
    Path(path).write_text(content, encoding="utf-8")
    logger.info("Wrote %s", path)


# ── Conversion ───────────────────────────────────────────────────────────────

def cmd_parse(args):
    try:
        result = parse_dsl_with_diagnostics(_read(args.path))
    except C4Error as e:
        _error_out(e)

    data = result.workspace.to_json_dict()
    if args.output:
        _write(args.output, json.dumps(data, indent=2))
        _json_out({"status": "ok", "output": args.output, "warnings": result.warnings})
    _json_out({"status": "ok", "workspace": data, "warnings": result.warnings})


def cmd_generate(args):
    try:
        workspace = Workspace.from_json_dict(json.loads(_read(args.path)))
    except (json.JSONDecodeError, ValueError) as e:
        _error_out(f"Invalid workspace JSON: {e}")

    dsl = generate_dsl(workspace)
    if args.output:
        _write(args.output, dsl)
        _json_out({"status": "ok", "output": args.output})
    _json_out({"status": "ok", "dsl": dsl})


def cmd_format(args):
    text = _read(args.path)
    try:
        result = parse_dsl_with_diagnostics(text)
    except C4Error as e:
        _error_out(e)

    dsl = generate_dsl(result.workspace)
    _write(args.output or args.path, dsl)
    _json_out({"status": "ok", "output": args.output or args.path, "warnings": result.warnings})


# ── Analysis ─────────────────────────────────────────────────────────────────

def cmd_check(args):
    text = _read(args.path)
    try:
        validate_dsl(text)
        result = parse_dsl_with_diagnostics(text)
    except C4Error as e:
        _error_out(e)

    issues = collect_issues(result.workspace)
    summary = validation_summary(issues)
    _json_out({
        "status": "ok" if summary["valid"] else "invalid",
        "issues": [issue.to_dict() for issue in issues],
        "warnings": result.warnings,
        "summary": summary,
    }, code=0 if summary["valid"] else 2)


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(description="C4 DSL tool CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("parse", help="Parse a DSL file into workspace JSON")
    p.add_argument("path")
    p.add_argument("-o", "--output", default=None)

    p = sub.add_parser("generate", help="Generate DSL from workspace JSON")
    p.add_argument("path")
    p.add_argument("-o", "--output", default=None)

    p = sub.add_parser("format", help="Parse and regenerate a DSL file")
    p.add_argument("path")
    p.add_argument("-o", "--output", default=None)

    p = sub.add_parser("check", help="Pre-flight and validate a DSL file")
    p.add_argument("path")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmd_map = {
        "parse": cmd_parse,
        "generate": cmd_generate,
        "format": cmd_format,
        "check": cmd_check,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
