#!/usr/bin/env python3
"""Inspect and edit an exported prototype JSON file."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from facegeom.errors import FaceGeomError
from facegeom.exchange import export_to_file, import_from_file
from facegeom.io_utils import setup_logging
from facegeom.recognition.prototypes import PrototypeStore


LOGGER = logging.getLogger("scripts.manage_prototypes")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage prototype JSON files")
    parser.add_argument("store", type=Path, help="Prototype JSON file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List enrolled identities")

    remove = subparsers.add_parser("remove", help="Delete one identity")
    remove.add_argument("name", type=str)

    subparsers.add_parser("clear", help="Delete every identity")

    merge = subparsers.add_parser("merge", help="Import another file, overwriting shared names")
    merge.add_argument("other", type=Path)

    convert = subparsers.add_parser("convert", help="Rewrite the file in the chosen shape")
    convert.add_argument(
        "--legacy",
        action="store_true",
        help="Write flat vectors without sample counts",
    )
    return parser.parse_args(argv)


def load_store(path: Path) -> PrototypeStore:
    store = PrototypeStore()
    if path.exists():
        import_from_file(store, path)
    return store


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging()

    try:
        store = load_store(args.store)

        if args.command == "list":
            if len(store) == 0:
                print("No identities enrolled")
            else:
                print(store.summary_frame().to_string(index=False))
            return 0

        if args.command == "remove":
            if not store.remove(args.name):
                LOGGER.error("No prototype named %s", args.name)
                return 1
            export_to_file(store, args.store)
        elif args.command == "clear":
            if store.clear() == 0:
                LOGGER.warning("Nothing to clear in %s", args.store)
                return 0
            export_to_file(store, args.store)
        elif args.command == "merge":
            overwritten = import_from_file(store, args.other)
            if overwritten:
                LOGGER.warning("Overwritten: %s", ", ".join(overwritten))
            export_to_file(store, args.store)
        elif args.command == "convert":
            export_to_file(store, args.store, with_counts=not args.legacy)
    except FaceGeomError as exc:
        LOGGER.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
