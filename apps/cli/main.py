#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Update Atlas CLI.

Usage:
  python -m apps.cli.main list --search "#rare"
  python -m apps.cli.main compare Trails---Tales Tricky-Trials
  python -m apps.cli.main time-since --watch 10
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rich.console import Console  # noqa: E402
from rich.live import Live  # noqa: E402
from rich.logging import RichHandler  # noqa: E402
from rich.markup import escape  # noqa: E402
from rich.panel import Panel  # noqa: E402
from rich.table import Table  # noqa: E402

from apps.cli.cli_common import close_controller, open_controller, record_title, short_label  # noqa: E402
from atlas.config import atlas_config  # noqa: E402
from atlas.controller import ViewStateController  # noqa: E402
from atlas.dates import format_date_for_display, format_long_date  # noqa: E402
from atlas.errors import LoadError, ModeDataError  # noqa: E402
from atlas.models import CONTENT_TYPES  # noqa: E402
from atlas.modes import NameStats  # noqa: E402
from atlas.persistence import encode_state  # noqa: E402
from atlas.query import all_names  # noqa: E402
from atlas.stats import name_length_stats  # noqa: E402
from atlas.view_state import DETAIL_KIND_VERSION, DETAIL_KIND_YEAR, DatasetView, Mode  # noqa: E402

console = Console()


def _visible_types(ctl: ViewStateController) -> List[str]:
    vis = ctl.state.visibility
    return [t for t in CONTENT_TYPES if vis.get(t, True)]


# ----------------- renderers -----------------


def _list_table(ctl: ViewStateController) -> Table:
    snap = ctl.snapshot()
    types = _visible_types(ctl)
    title = "Versions" if snap.view == DatasetView.VERSIONS else "Years"
    table = Table(title=title, box=None, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Update", style="bold")
    table.add_column("Released")
    for t in types:
        table.add_column(short_label(t), justify="right")
    table.add_column("Total", justify="right", style="green")

    for rec in snap.records:
        counts = [rec.count(t) for t in types]
        released = "-" if rec.is_year_group else format_date_for_display(rec.release_date)
        table.add_row(rec.derived_id, record_title(rec), released, *[str(c) if c else "" for c in counts], str(sum(counts)))
    return table


def cmd_list(ctl: ViewStateController, args: argparse.Namespace) -> int:
    if getattr(args, "view", None):
        ctl.set_view(DatasetView(args.view))
    if ctl.mode != Mode.LIST:
        ctl.set_mode(Mode.LIST)
    console.print(_list_table(ctl))
    summary = ctl.snapshot().summary
    if summary is not None:
        q = f' for "{summary.query}"' if summary.query else ""
        console.print(f"[dim]{summary.entry_count} entries, {summary.item_count} items{q}[/dim]")
    return 0


def cmd_compare(ctl: ViewStateController, args: argparse.Namespace) -> int:
    ctl.set_mode(Mode.COMPARE)
    for slot, rid in enumerate((args.first, args.second)):
        if not ctl.select_compare(slot, rid):
            console.print(f"[yellow]Not found in {ctl.view.value}: {rid}[/yellow]")

    left, right = ctl.snapshot().compare
    table = Table(title="Compare", box=None, show_header=True, header_style="bold cyan")
    table.add_column("Type", style="bold")
    table.add_column(record_title(left) if left else "-", justify="right")
    table.add_column(record_title(right) if right else "-", justify="right")
    table.add_column("Only left", style="green")
    table.add_column("Only right", style="magenta")
    for t in _visible_types(ctl):
        a = {i.identifier: i.name for i in (left.items(t) if left else ())}
        b = {i.identifier: i.name for i in (right.items(t) if right else ())}
        if not a and not b:
            continue
        only_a = [n for k, n in a.items() if k not in b]
        only_b = [n for k, n in b.items() if k not in a]
        table.add_row(short_label(t), str(len(a)), str(len(b)), ", ".join(only_a[:8]), ", ".join(only_b[:8]))
    console.print(table)
    return 0


def cmd_detail(ctl: ViewStateController, args: argparse.Namespace) -> int:
    kind = DETAIL_KIND_YEAR if args.year else DETAIL_KIND_VERSION
    if not ctl.open_detail(kind, args.id):
        console.print(f"[red]Record not found: {args.id}[/red]")
        return 1
    snap = ctl.snapshot()
    rec = snap.detail
    if rec is None:
        return 1

    head = f"[bold cyan]{record_title(rec)}[/bold cyan]"
    if not rec.is_year_group:
        head += f"\nReleased: {format_long_date(rec.release_date) if rec.release_date else 'upcoming'}"
    if rec.wiki:
        head += f"\n[dim]{rec.wiki}[/dim]"
    nav = []
    if snap.detail_prev is not None:
        nav.append(f"prev: {snap.detail_prev.derived_id}")
    if snap.detail_next is not None:
        nav.append(f"next: {snap.detail_next.derived_id}")
    if nav:
        head += "\n[dim]" + "  ".join(nav) + "[/dim]"
    console.print(Panel(head, border_style="cyan"))

    for sec in snap.detail_sections:
        t = str(sec["section"])
        if ctl.is_section_collapsed(rec.derived_id, t):
            console.print(f"[dim]▸ {sec['label']} ({sec['count']}) collapsed[/dim]")
            continue
        table = Table(title=f"{sec['label']} ({sec['count']})", box=None, show_header=True, header_style="bold")
        table.add_column("Name")
        table.add_column("Identifier", style="dim")
        table.add_column("Tags", style="green")
        for it in rec.items(t):
            table.add_row(it.name, it.identifier, ", ".join(it.types + it.tags))
        console.print(table)
    return 0


async def cmd_stats(ctl: ViewStateController, args: argparse.Namespace) -> int:
    if args.years:
        ctl.set_view(DatasetView.YEARS)
    ctl.set_mode(Mode.STATS)

    rows = ctl.stats_table(args.sort)
    sort = ctl.stats.sort
    key_col = "year" if ctl.view == DatasetView.YEARS else "name"
    table = Table(title=f"Statistics ({ctl.view.value}, {sort.column} {sort.direction})", box=None, header_style="bold cyan")
    table.add_column(key_col.title(), style="bold")
    if key_col == "name":
        table.add_column("Version", style="dim")
    for t in CONTENT_TYPES:
        table.add_column(short_label(t), justify="right")
    table.add_column("Total", justify="right", style="green")
    for r in rows:
        cells = [str(r[key_col])]
        if key_col == "name":
            cells.append(str(r["version"]))
        cells += [str(r[t]) for t in CONTENT_TYPES]
        cells.append(str(r["total"]))
        table.add_row(*cells)
    console.print(table)

    g = ctl.growth(cumulative=True)
    if g.labels:
        totals = ", ".join(f"{short_label(t)} {g.series[t][-1]}" for t in CONTENT_TYPES if g.series[t][-1])
        console.print(f"[dim]Cumulative through {g.labels[-1]}: {totals}[/dim]")

    try:
        names = await ctl.mode_data()
    except ModeDataError as e:
        console.print(f"[yellow]Name statistics unavailable ({escape(str(e))}), computed from the loaded records[/yellow]")
        names = NameStats(**name_length_stats(all_names(ctl.store.records())))
    if names is not None:
        for title, values in (("Longest names", names.longest), ("Shortest names", names.shortest)):
            nt = Table(title=title, box=None, header_style="bold")
            nt.add_column("Name")
            nt.add_column("Length", justify="right")
            for n in values:
                nt.add_row(n, str(len(n)))
            console.print(nt)
    return 0


def _time_since_table(ctl: ViewStateController) -> Table:
    board = ctl.time_since.cached
    elapsed = ctl.time_since.elapsed
    table = Table(title="Time Since Last Update", box=None, header_style="bold cyan")
    table.add_column("Card", style="bold")
    table.add_column("Name")
    table.add_column("Version", style="dim")
    table.add_column("Released")
    table.add_column("Elapsed", style="green")
    if board is None:
        return table
    for card in board.cards():
        version = f"{card.version_name} ({card.version})" if card.version_name else (card.version or "")
        table.add_row(card.label, card.name or "", version, format_long_date(card.release_date), elapsed.get(card.key, "..."))
    return table


async def cmd_time_since(ctl: ViewStateController, args: argparse.Namespace) -> int:
    ctl.set_mode(Mode.TIME_SINCE)
    try:
        board = await ctl.mode_data()
    except ModeDataError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return 1
    if board is None:
        return 1
    if not args.watch:
        ctl.time_since.refresh()
        console.print(_time_since_table(ctl))
        return 0

    with Live(_time_since_table(ctl), console=console, refresh_per_second=2) as live:
        ctl.time_since.start_ticking(lambda _elapsed: live.update(_time_since_table(ctl)))
        await asyncio.sleep(float(args.watch))
    return 0


async def cmd_groups(ctl: ViewStateController, args: argparse.Namespace) -> int:
    ctl.set_mode(Mode.MATERIAL_GROUPS)
    if args.toggle:
        ctl.material_groups.toggle(args.toggle)
    try:
        groups = await ctl.mode_data()
    except ModeDataError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return 1
    if not groups:
        console.print("[dim]No material groups found.[/dim]")
        return 0
    for g in groups:
        if g.collapsed:
            console.print(f"[dim]▸ {g.name} ({g.section_id}) collapsed[/dim]")
            continue
        table = Table(title=f"{g.name} [dim]({g.section_id})[/dim]", box=None, header_style="bold cyan")
        table.add_column("Material", style="bold")
        for col in g.columns:
            table.add_column(col)
        for row in g.rows:
            table.add_row(row.material.name if row.material else "-", *[(c.name if c else "-") for c in row.cells])
        console.print(table)
    return 0


def cmd_state(ctl: ViewStateController, args: argparse.Namespace) -> int:
    st = ctl.state
    doc: Dict[str, Any] = encode_state(st)
    doc["mode"] = st.mode.value
    doc["query"] = st.query
    console.print(Panel(json.dumps(doc, indent=2, ensure_ascii=False), title="Persisted state", border_style="cyan"))
    console.print(f"URL: ?{ctl.current_url()}")
    return 0


# ----------------- entry -----------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="atlas", description="Update Atlas: browse content additions by version and year")
    p.add_argument("--data", default=None, help="Data directory or http(s) base URL (default: conf/settings.ini)")
    p.add_argument("--state", default=None, help="State file (default: conf/settings.ini)")
    p.add_argument("--no-state", action="store_true", help="Do not read or write the state file")
    p.add_argument("--url", default="", help="Initial URL query, e.g. 'view=years&mode=stats'")
    p.add_argument("--search", default=None, help="Search query (plain words and #tags)")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd")

    sp = sub.add_parser("list", help="Filtered list of the current view")
    sp.add_argument("--view", choices=[v.value for v in DatasetView])
    sub.add_parser("years", help="Filtered list aggregated by year")

    sp = sub.add_parser("compare", help="Compare two records of the current view")
    sp.add_argument("first")
    sp.add_argument("second")

    sp = sub.add_parser("detail", help="Show one record section by section")
    sp.add_argument("id")
    sp.add_argument("--year", action="store_true", help="ID is a year group")

    sp = sub.add_parser("stats", help="Per-version (or per-year) statistics")
    sp.add_argument("--years", action="store_true")
    sp.add_argument("--sort", default=None, help="Column to sort by (repeat to flip direction)")

    sp = sub.add_parser("time-since", help="Time elapsed since the last releases")
    sp.add_argument("--watch", type=float, default=0, metavar="N", help="Refresh every second for N seconds")

    sp = sub.add_parser("groups", help="Material groups")
    sp.add_argument("--toggle", default=None, metavar="SECTION_ID", help="Collapse/expand a group")

    sub.add_parser("state", help="Show the persisted UI state")
    return p


async def run(args: argparse.Namespace) -> int:
    cfg = atlas_config
    try:
        ctl = await open_controller(cfg, data=args.data, state=args.state, url=args.url, memory=args.no_state)
    except LoadError as e:
        console.print(Panel(f"[red]{escape(str(e))}[/red]", title="Dataset unavailable", border_style="red"))
        return 2

    try:
        if args.cmd in (None, "list", "years") and ctl.mode != Mode.LIST:
            ctl.set_mode(Mode.LIST)
        if args.search is not None:
            if not ctl.set_search(args.search):
                console.print("[yellow]Search is disabled in the current mode[/yellow]")

        if args.cmd == "years":
            args.view = DatasetView.YEARS.value
            return cmd_list(ctl, args)
        if args.cmd in (None, "list"):
            return cmd_list(ctl, args)
        if args.cmd == "compare":
            return cmd_compare(ctl, args)
        if args.cmd == "detail":
            return cmd_detail(ctl, args)
        if args.cmd == "stats":
            return await cmd_stats(ctl, args)
        if args.cmd == "time-since":
            return await cmd_time_since(ctl, args)
        if args.cmd == "groups":
            return await cmd_groups(ctl, args)
        if args.cmd == "state":
            return cmd_state(ctl, args)
        return 0
    finally:
        await close_controller(ctl)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
