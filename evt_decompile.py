#!/usr/bin/env python3
"""Command-line interface for the map script decompiler."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from evtdecomp import (
    CommitPolicy,
    DecompileError,
    DecompileOptions,
    MapDecompiler,
    MethodCatalogue,
    Rom,
)
from evtdecomp.knowledge import DEFAULT_CATALOGUE_PATH


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("image", type=Path, help="Game image holding the map overlays")
    parser.add_argument("map_table", type=Path, help="JSON table describing the maps")
    parser.add_argument(
        "--map",
        action="append",
        dest="maps",
        help="Restrict decompilation to the named maps",
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help="Directory receiving <map>.evt.txt files (defaults to the image directory)",
    )
    parser.add_argument(
        "--catalogue",
        type=Path,
        default=DEFAULT_CATALOGUE_PATH,
        help="Location of the native method catalogue",
    )
    parser.add_argument(
        "--commit-policy",
        choices=[policy.value for policy in CommitPolicy],
        default=CommitPolicy.SKIP_REMAINING.value,
        help="How unresolved inference candidates are handled",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def validate_inputs(*paths: Path) -> None:
    for path in paths:
        if not path.exists():
            raise SystemExit(f"missing input file: {path}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    start_time = time.perf_counter()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    validate_inputs(args.image, args.map_table, args.catalogue)

    catalogue = MethodCatalogue.load(args.catalogue)
    rom = Rom.load(args.image, args.map_table)
    options = DecompileOptions(commit_policy=CommitPolicy(args.commit_policy))
    decompiler = MapDecompiler(catalogue, options=options)

    out_dir = args.out_dir or args.image.parent
    out_dir.mkdir(parents=True, exist_ok=True)

    names = args.maps or rom.map_names()
    failures = 0
    for name in names:
        try:
            map_ = rom.map(name)
        except KeyError:
            print(f"{name}: unknown map", file=sys.stderr)
            failures += 1
            continue
        try:
            source = decompiler.decompile(map_)
        except DecompileError as error:
            print(f"{name}: {error}", file=sys.stderr)
            failures += 1
            continue
        output_path = out_dir / f"{name}.evt.txt"
        output_path.write_text(source, "utf-8")
        print(f"{name} written to {output_path}")

    total_time = time.perf_counter() - start_time
    print(f"total execution time: {total_time:.2f}s")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
