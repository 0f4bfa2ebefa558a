# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""hideseen CLI: scan, recompute, site, toggle, forget commands.

Usage:
    python -m hideseen.cli scan PAGE.html --url URL [--policy count|timestamp] [--threshold H] [--json] [-o OUT.html]
    python -m hideseen.cli recompute PAGE.html --url URL --policy timestamp --threshold 4
    python -m hideseen.cli site {list,enable,disable,toggle} [HOST]
    python -m hideseen.cli toggle {on,off,status}
    python -m hideseen.cli forget {ID [ID ...] | --all}
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

from .config import EvaluationConfig, parse_policy, parse_strategy, parse_threshold, resolve_db_path
from .errors import ConfigError, HideSeenError
from .logging_config import configure, resolve_level
from .seen_store import InMemoryKeyValueStore, KeyValueStoreProtocol, SeenStateStore
from .settings import SiteSettings, format_threshold, normalize_host, threshold_from_slider

logger = logging.getLogger("hideseen.cli")


async def _open_store(args: argparse.Namespace) -> KeyValueStoreProtocol:
    """In-memory store for ``--memory``, otherwise the SQLite database."""
    if getattr(args, "memory", False):
        return InMemoryKeyValueStore()
    from .store_sqlite import SqliteKeyValueStore

    return await SqliteKeyValueStore.create(resolve_db_path(getattr(args, "db", "") or ""))


def _read_page(path_str: str) -> str:
    if path_str == "-":
        return sys.stdin.read()
    return Path(path_str).read_text(encoding="utf-8", errors="replace")


def _build_config(args: argparse.Namespace, *, enabled: bool, dimming_on: bool) -> EvaluationConfig:
    """Environment first, then CLI flags on top."""
    base = EvaluationConfig.from_env()

    locator_overrides: dict = {}
    if args.strategy:
        locator_overrides["strategy"] = parse_strategy(args.strategy)
    if args.container_tag:
        locator_overrides["container_tag"] = args.container_tag.lower()
    if args.row_tag:
        locator_overrides["row_tag"] = None if args.row_tag.lower() == "any" else args.row_tag.lower()
    if args.min_rows is not None:
        if args.min_rows < 0:
            raise ConfigError("--min-rows must be non-negative", field="min_rows")
        locator_overrides["min_rows"] = args.min_rows

    overrides: dict = {"enabled_for_this_site": enabled, "dimming_on": dimming_on}
    if args.policy:
        overrides["policy"] = parse_policy(args.policy)
    if args.threshold is not None and args.slider is not None:
        raise ConfigError("--threshold and --slider are mutually exclusive", field="threshold")
    if args.threshold is not None:
        overrides["threshold_hours"] = parse_threshold(args.threshold)
    elif args.slider is not None:
        overrides["threshold_hours"] = threshold_from_slider(args.slider)
    if locator_overrides:
        overrides["locator"] = dataclasses.replace(base.locator, **locator_overrides)

    return dataclasses.replace(base, **overrides)


# ---------------------------------------------------------------------------
# scan / recompute
# ---------------------------------------------------------------------------


async def _run_scan(args: argparse.Namespace, *, mark: bool) -> int:
    from .element import parse_document
    from .evaluator import apply_verdicts, evaluate_page

    html = _read_page(args.page)
    document = parse_document(html, args.url)

    kv = await _open_store(args)
    try:
        settings = SiteSettings(kv)
        enabled = args.all_sites or await settings.is_enabled(document.host)
        config = _build_config(args, enabled=enabled, dimming_on=await settings.dimming_on())
        result = await evaluate_page(document, SeenStateStore(kv), config, mark=mark)
    finally:
        await kv.close()

    if args.output:
        import lxml.html

        apply_verdicts(result)
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(lxml.html.tostring(document.root.raw, doctype="<!DOCTYPE html>", encoding="utf-8"))

    if args.json:
        from .report import ScanReport

        print(ScanReport.from_result(result).model_dump_json(indent=2))
        return 0

    if not result.enabled:
        print(
            f"Row suppression is not enabled for {document.host or args.url!r}.\n"
            f"Enable it with: python -m hideseen.cli site enable {document.host or 'HOST'}  (or pass --all-sites)",
            file=sys.stderr,
        )
        return 0

    summary = f"{result.url}: {result.total_rows} rows ({result.policy} policy, {result.strategy})"
    if result.policy == "count":
        summary += f", {result.dimmed_count} dimmed, max count {result.max_count}"
    else:
        summary += f", {result.hidden_count} hidden, threshold {format_threshold(result.threshold_hours)}"
    print(summary)
    if not result.show_widget:
        print("No rows found on this page.")
    for verdict in result.verdicts:
        print(f"  {verdict}")
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Evaluate a page and record this visit."""
    return asyncio.run(_run_scan(args, mark=True))


def cmd_recompute(args: argparse.Namespace) -> int:
    """Evaluate a page without recording a visit (threshold changes)."""
    return asyncio.run(_run_scan(args, mark=False))


# ---------------------------------------------------------------------------
# site / toggle / forget
# ---------------------------------------------------------------------------


async def _run_site(args: argparse.Namespace) -> int:
    kv = await _open_store(args)
    try:
        settings = SiteSettings(kv)
        if args.action == "list":
            for host in await settings.enabled_sites():
                print(host)
            return 0
        if not args.host:
            raise ConfigError(f"'site {args.action}' needs a HOST", field="host")
        host = normalize_host(args.host)
        if args.action == "enable":
            state = await settings.set_enabled(host, True)
        elif args.action == "disable":
            state = await settings.set_enabled(host, False)
        else:
            state = await settings.toggle_site(host)
        print(f"{'Enabled' if state else 'Disabled'} hideseen for {host}")
        return 0
    finally:
        await kv.close()


def cmd_site(args: argparse.Namespace) -> int:
    """Manage the per-site enabled list."""
    return asyncio.run(_run_site(args))


async def _run_toggle(args: argparse.Namespace) -> int:
    kv = await _open_store(args)
    try:
        settings = SiteSettings(kv)
        if args.state != "status":
            await settings.set_dimming(args.state == "on")
        print(f"Dimming is {'on' if await settings.dimming_on() else 'off'}")
        return 0
    finally:
        await kv.close()


def cmd_toggle(args: argparse.Namespace) -> int:
    """Switch count-policy dimming on or off."""
    return asyncio.run(_run_toggle(args))


async def _run_forget(args: argparse.Namespace) -> int:
    kv = await _open_store(args)
    try:
        store = SeenStateStore(kv)
        if args.all and args.identifiers:
            raise ConfigError("pass identifiers or --all, not both", field="identifiers")
        if not args.all and not args.identifiers:
            raise ConfigError("'forget' needs at least one ID, or --all", field="identifiers")
        targets = await store.identifiers() if args.all else args.identifiers
        removed = 0
        for identifier in targets:
            if await store.forget(identifier):
                removed += 1
            else:
                print(f"No evidence for {identifier}", file=sys.stderr)
        print(f"Forgot {removed} identifier(s)")
        return 0
    finally:
        await kv.close()


def cmd_forget(args: argparse.Namespace) -> int:
    """Delete stored evidence for the given identifiers."""
    return asyncio.run(_run_forget(args))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _add_store_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--db", type=str, default="", metavar="PATH", help="SQLite store (default: ~/.hideseen/seen.db)")
    p.add_argument("--memory", action="store_true", help="Use a throwaway in-memory store")


def _add_scan_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("page", metavar="PAGE", help="Rendered HTML file ('-' for stdin)")
    p.add_argument("--url", required=True, metavar="URL", help="Location the page was loaded from")
    p.add_argument("--policy", choices=["count", "timestamp"], help="Evidence policy (default: count)")
    p.add_argument("--threshold", metavar="HOURS", help="Hide rows first seen longer ago than this, or 'disabled'")
    p.add_argument("--slider", type=float, metavar="N", help="Threshold as a 0-300 slider position (300 = disabled)")
    p.add_argument("--strategy", choices=["generic", "best_container", "best-container"], help="Row detection")
    p.add_argument("--container-tag", metavar="TAG", help="Container tag for best_container (default: table)")
    p.add_argument("--row-tag", metavar="TAG", help="Row tag for best_container ('any' for any child)")
    p.add_argument("--min-rows", type=int, metavar="N", help="Rows a container must exceed (default: 5)")
    p.add_argument("--all-sites", action="store_true", help="Ignore the per-site enabled list")
    p.add_argument("--json", action="store_true", help="Print a JSON report")
    p.add_argument("-o", "--output", metavar="PATH", help="Write the page with suppression styles applied")
    _add_store_args(p)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Dim or hide the rows of a page you have already seen",
        prog="python -m hideseen.cli",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v: info, -vv: debug")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    subparsers = parser.add_subparsers(dest="command", required=True)

    _scan_epilog = """\
examples:
  %(prog)s page.html --url https://example.com/list                    Dim by visit count
  %(prog)s page.html --url https://example.com/list --policy timestamp --threshold 4
  %(prog)s page.html --url https://example.com/list --json            JSON report
  %(prog)s page.html --url https://example.com/list -o styled.html    Styled copy of the page
"""
    p_scan = subparsers.add_parser(
        "scan",
        help="Evaluate a page and record the visit",
        epilog=_scan_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_scan_args(p_scan)

    p_recompute = subparsers.add_parser("recompute", help="Evaluate a page without recording the visit")
    _add_scan_args(p_recompute)

    p_site = subparsers.add_parser("site", help="Manage sites where suppression is enabled")
    p_site.add_argument("action", choices=["list", "enable", "disable", "toggle"])
    p_site.add_argument("host", nargs="?", default="", help="Hostname, e.g. example.com")
    _add_store_args(p_site)

    p_toggle = subparsers.add_parser("toggle", help="Turn count-policy dimming on or off")
    p_toggle.add_argument("state", choices=["on", "off", "status"])
    _add_store_args(p_toggle)

    p_forget = subparsers.add_parser("forget", help="Delete evidence for identifiers")
    p_forget.add_argument("identifiers", nargs="*", metavar="ID")
    p_forget.add_argument("--all", action="store_true", help="Forget every stored identifier (settings are kept)")
    _add_store_args(p_forget)

    commands = {
        "scan": cmd_scan,
        "recompute": cmd_recompute,
        "site": cmd_site,
        "toggle": cmd_toggle,
        "forget": cmd_forget,
    }

    args = parser.parse_args(argv)

    configure(json_output=args.log_json, level=resolve_level(args.verbose))

    try:
        code = commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except (HideSeenError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
