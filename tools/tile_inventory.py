#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import os
import re
import sys
import stat
import json
import argparse
import tempfile
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel
from rich import box

# Tile Inventory Generator
# Scans a zoom/x/y.png tile pyramid and writes a JSON manifest of the tiles on disk.

# --- CONFIGURATION ---
DEFAULT_TILES_DIR = Path("public") / "tiles"
ROOT_ENV_VAR = "TILE_INVENTORY_ROOT"
INVENTORY_FILENAME = "tile-inventory.json"
NUMERIC_NAME = re.compile(r"[0-9]+")
TILE_NAME = re.compile(r"([0-9]+)\.png")
JSON_INDENT = 2
SEPARATOR = " ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"

def is_numeric_name(name):
    """True if name is one or more ASCII digits and nothing else."""
    return NUMERIC_NAME.fullmatch(name) is not None

def parse_tile_index(name):
    """Returns the Y index of a '<digits>.png' file name, or None."""
    m = TILE_NAME.fullmatch(name)
    return int(m.group(1)) if m else None

def _warn_unreadable(console, path, err):
    console.print(f"  ⚠️  Skipping unreadable directory {escape(str(path))}: {escape(str(err))}")

def list_numeric_dirs(path, console):
    """
    Names of the numeric subdirectories of path, in ascending numeric order.
    Returns None (after warning) when path cannot be listed.
    """
    try:
        with os.scandir(path) as it:
            names = [e.name for e in it if is_numeric_name(e.name) and e.is_dir()]
    except OSError as e:
        _warn_unreadable(console, path, e)
        return None
    return sorted(names, key=int)

def list_tile_indices(path, console):
    """
    Y indices of the '<digits>.png' regular files in path, ascending.
    Returns None (after warning) when path cannot be listed.
    """
    ys = []
    try:
        with os.scandir(path) as it:
            for e in it:
                y = parse_tile_index(e.name)
                if y is not None and e.is_file():
                    ys.append(y)
    except OSError as e:
        _warn_unreadable(console, path, e)
        return None
    return sorted(ys)

def build_inventory(root, console, quiet=False):
    root = Path(root)
    inventory = {}

    zooms = list_numeric_dirs(root, console)
    if zooms is None:
        return None
    if not quiet:
        console.print(f"  🔍 Found zoom levels: {zooms}")

    for zoom in zooms:
        xs = list_numeric_dirs(root / zoom, console)
        if xs is None:
            continue
        inventory[zoom] = {}
        if not quiet:
            console.print(f"  └─ Zoom {zoom} - X coordinates: {xs}")

        for x in xs:
            ys = list_tile_indices(root / zoom / x, console)
            if ys is None:
                continue
            inventory[zoom][x] = ys
            if not quiet:
                console.print(f"     {zoom}/{x}: [{', '.join(str(y) for y in ys)}]")

    return inventory

def summarize_inventory(inventory):
    """Returns ({zoom: tile_count}, total_tiles)."""
    per_zoom = {}
    for zoom, columns in inventory.items():
        per_zoom[zoom] = sum(len(ys) for ys in columns.values())
    return per_zoom, sum(per_zoom.values())

def render_inventory(inventory):
    # Key order is the numeric traversal order; sort_keys would make it lexicographic.
    return json.dumps(inventory, indent=JSON_INDENT)

def _manifest_mode(path):
    """Mode of the existing manifest, else what a plain open() would create (0666 minus umask)."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask

def write_inventory(inventory, path):
    """Writes the manifest through a temp file in the same directory, then renames it into place."""
    path = Path(path)
    mode = _manifest_mode(path)
    tmp = tempfile.NamedTemporaryFile("w", encoding="utf-8", prefix=".tile-inventory-", suffix=".tmp",
                                      dir=path.parent, delete=False)
    try:
        with tmp as f:
            f.write(render_inventory(inventory))
        # temp files are created 0600
        os.chmod(tmp.name, mode)
        os.replace(tmp.name, path)
    except BaseException:
        if os.path.exists(tmp.name):
            os.remove(tmp.name)
        raise

def print_summary(inventory, console):
    per_zoom, total = summarize_inventory(inventory)
    table = Table(box=box.ROUNDED, border_style="blue", header_style="bold magenta")
    table.add_column("Zoom", style="cyan", justify="right")
    table.add_column("Tiles", style="green", justify="right")
    for zoom, count in per_zoom.items():
        table.add_row(zoom, str(count))
    table.add_section()
    table.add_row("[bold]TOTAL[/bold]", f"[bold yellow]{total}[/bold yellow]")
    console.print(table)

def generate_tile_inventory(root, dry_run=False, quiet=False, console=None):
    """
    Scans root and writes root/tile-inventory.json.

    Returns the inventory mapping, or None when the root is missing or the
    manifest could not be written. Nothing is written on failure or dry run.
    """
    console = console or Console()
    root = Path(root)

    if not root.is_dir():
        console.print(f"❌ Tiles directory not found: {escape(str(root))}")
        return None

    console.print(Panel.fit(f"🗺️  [bold blue]Tile Inventory[/bold blue]\n[dim]{escape(str(root))}[/dim]", border_style="blue"))
    console.print(SEPARATOR)

    inventory = build_inventory(root, console, quiet=quiet)
    if inventory is None:
        console.print(f"❌ Could not read tiles directory: {escape(str(root))}")
        return None

    console.print(SEPARATOR)
    inventory_path = root / INVENTORY_FILENAME
    if dry_run:
        console.print("\n--- [DRY-RUN] Tile Inventory Preview ---", markup=False)
        console.print(render_inventory(inventory), markup=False, highlight=False)
        console.print("----------------------------------------\n")
    else:
        try:
            write_inventory(inventory, inventory_path)
        except OSError as e:
            console.print(f"❌ Failed to write {escape(str(inventory_path))}: {escape(str(e))}")
            return None
        console.print(f"✅ Tile inventory generated: {escape(str(inventory_path))}")

    print_summary(inventory, console)
    return inventory

def main(argv=None):
    parser = argparse.ArgumentParser(description="Tile Inventory Generator")
    parser.add_argument("root", nargs="?", default=os.getenv(ROOT_ENV_VAR, str(DEFAULT_TILES_DIR)),
                        help=f"Tile pyramid root (default: ${ROOT_ENV_VAR} or {DEFAULT_TILES_DIR})")
    parser.add_argument("--dry-run", action="store_true", help="Preview inventory in console")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print the summary")
    args = parser.parse_args(argv)

    inventory = generate_tile_inventory(Path(args.root), dry_run=args.dry_run, quiet=args.quiet)
    return 0 if inventory is not None else 1

if __name__ == "__main__":
    sys.exit(main())
