#!/usr/bin/env python3
"""db.json import / export.

Moves data between the SQLite store and the flat json-server document
(``{"users": [...], "books": [...]}``) so an existing db.json can be
brought over, or the current state dumped for inspection.

Exit Codes:
  0 = ok
  3 = the import or export failed
"""
from __future__ import annotations

import argparse
import os
import sys

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from booknotes.db import init_engine_once  # noqa: E402
from booknotes.services import db_json  # noqa: E402


def _run_import(path: str) -> bool:
    try:
        summary = db_json.load_file(path)
    except (OSError, db_json.DbJsonError) as exc:
        print(f"[SEED] import ERROR {exc}", file=sys.stderr)
        return False
    print(
        f"[SEED] import ok users={summary.get('users')} books={summary.get('books')} "
        f"skipped_users={summary.get('skipped_users')}"
    )
    return True


def _run_export(path: str) -> bool:
    try:
        summary = db_json.dump_file(path)
    except OSError as exc:
        print(f"[SEED] export ERROR {exc}", file=sys.stderr)
        return False
    print(f"[SEED] export ok users={summary['users']} books={summary['books']} path={path}")
    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import or export a json-server db.json document")
    sub = parser.add_subparsers(dest="command", required=True)
    imp = sub.add_parser("import", help="load a db.json file into the database")
    imp.add_argument("path")
    exp = sub.add_parser("export", help="write the database to a db.json file")
    exp.add_argument("path")
    args = parser.parse_args(argv)

    init_engine_once()
    if args.command == "import":
        ok = _run_import(args.path)
    else:
        ok = _run_export(args.path)
    return 0 if ok else 3


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
