"""Command line access to templates, the signal catalog, validation and submission.

Usage:
    .venv/bin/python -m src.scripts.strategy_config_cli templates
    .venv/bin/python -m src.scripts.strategy_config_cli instantiate bi_long --output draft.json
    .venv/bin/python -m src.scripts.strategy_config_cli validate draft.json
    .venv/bin/python -m src.scripts.strategy_config_cli submit draft.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from rich.table import Table

from src.config import settings
from src.engine.strategy import (
    StrategyEditor,
    StrategyConfigViolation,
    get_signal_catalog,
    instantiate,
    list_templates,
    load_strategy_payload,
    to_wire_json,
    validate_strategy_payload,
)
from src.engine.strategy.serializer import build_strategy_config
from src.services.strategy_engine_client import StrategyEngineClient
from src.util.logger import configure_logging, console, log_error


def _print_violations(violations: tuple[StrategyConfigViolation, ...] | list[StrategyConfigViolation]) -> None:
    for item in violations:
        style = "yellow" if item.severity == "warning" else "red"
        console.print(f"[{style}]{item.code}[/{style}] {item.path or '$'}: {item.message}", markup=True)


def _cmd_templates(_args: argparse.Namespace) -> int:
    table = Table(title="Strategy templates")
    table.add_column("key")
    table.add_column("name")
    table.add_column("category")
    table.add_column("description")
    for template in list_templates():
        table.add_row(template.key, f"{template.icon} {template.name}", template.category, template.description)
    console.print(table)
    return 0


def _cmd_catalog(args: argparse.Namespace) -> int:
    matches = get_signal_catalog().search(args.search, freq=args.freq, category=args.category)
    table = Table(title=f"Catalog signals ({len(matches)})")
    table.add_column("name")
    table.add_column("display")
    table.add_column("freq")
    table.add_column("category")
    for entry in matches:
        table.add_row(entry.name, entry.display_name, entry.freq, entry.category)
    console.print(table)
    return 0


def _cmd_instantiate(args: argparse.Namespace) -> int:
    draft = instantiate(args.key, author=args.author)
    if draft is None:
        console.print(f"[red]Unknown template '{args.key}'.[/red]")
        return 2
    text = to_wire_json(draft, indent=2)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        console.print(f"Draft written to {args.output}")
    else:
        print(text)
    return 0


def _load(path: str) -> dict | None:
    try:
        return load_strategy_payload(path)
    except (OSError, ValueError) as exc:
        log_error(f"Cannot read strategy file {path}", exc)
        return None


def _cmd_validate(args: argparse.Namespace) -> int:
    payload = _load(args.file)
    if payload is None:
        return 1
    result = validate_strategy_payload(payload)
    if result.is_valid:
        console.print("[green]No violations.[/green]")
        return 0
    _print_violations(result.violations)
    return 1


async def _submit(path: str) -> int:
    payload = _load(path)
    if payload is None:
        return 1
    result = validate_strategy_payload(payload)
    if not result.is_valid:
        _print_violations(result.violations)
        return 1

    editor = StrategyEditor(build_strategy_config(payload))
    async with StrategyEngineClient() as client:
        outcome = await editor.submit(client)
    if not outcome.ok:
        console.print(f"[red]{outcome.status}[/red] {outcome.message}")
        _print_violations(outcome.violations)
        return 1
    print(json.dumps({"status": outcome.status, "strategy_id": outcome.strategy_id}, ensure_ascii=False))
    return 0


def _cmd_submit(args: argparse.Namespace) -> int:
    return asyncio.run(_submit(args.file))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build, check and submit strategy configurations.")
    parser.add_argument("--log-level", default=settings.log_level)
    subparsers = parser.add_subparsers(dest="command", required=True)

    templates = subparsers.add_parser("templates", help="List built-in templates.")
    templates.set_defaults(handler=_cmd_templates)

    catalog = subparsers.add_parser("catalog", help="Search catalog signals.")
    catalog.add_argument("--search", default=None)
    catalog.add_argument("--freq", default=None)
    catalog.add_argument("--category", default=None)
    catalog.set_defaults(handler=_cmd_catalog)

    inst = subparsers.add_parser("instantiate", help="Print a new draft seeded from a template.")
    inst.add_argument("key", nargs="?", default=settings.default_template_key)
    inst.add_argument("--author", default=None)
    inst.add_argument("--output", default=None, help="Write JSON here instead of stdout.")
    inst.set_defaults(handler=_cmd_instantiate)

    validate = subparsers.add_parser("validate", help="Check a strategy JSON file.")
    validate.add_argument("file")
    validate.set_defaults(handler=_cmd_validate)

    submit = subparsers.add_parser("submit", help="Validate then create the strategy on the engine.")
    submit.add_argument("file")
    submit.set_defaults(handler=_cmd_submit)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
