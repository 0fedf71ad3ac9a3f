#!/usr/bin/env python3
"""Command-line driver for the booknotes REST API.

Examples::

    booknotes_cli.py register ann@example.com secret --first-name Ann
    booknotes_cli.py login ann@example.com secret          # prints the token
    BOOKNOTES_API_TOKEN=... booknotes_cli.py books --q draft --sort name
    BOOKNOTES_API_TOKEN=... booknotes_cli.py add-book "Field notes" -c bob@example.com
    BOOKNOTES_API_TOKEN=... booknotes_cli.py add-section 3 "Chapter 1" --page 12 --parent 0

Output is JSON on stdout; API errors go to stderr with exit code 1.
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, List, Optional

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from booknotes import config as app_config  # noqa: E402
from booknotes.services.api_client import ApiClientError, BooknotesClient  # noqa: E402
from booknotes.services.section_tree import (  # noqa: E402
    SectionTreeError,
    append_section,
    sections_from_payload,
    sections_to_payload,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="booknotes API client")
    parser.add_argument("--url", default=app_config.api_url(), help="API base URL")
    parser.add_argument("--token", default=app_config.api_token(), help="bearer token")
    sub = parser.add_subparsers(dest="command", required=True)

    reg = sub.add_parser("register", help="create an account")
    reg.add_argument("email")
    reg.add_argument("password")
    reg.add_argument("--first-name", default="")
    reg.add_argument("--last-name", default="")

    login = sub.add_parser("login", help="print an access token")
    login.add_argument("email")
    login.add_argument("password")

    sub.add_parser("users", help="list registered users")

    books = sub.add_parser("books", help="list visible books")
    books.add_argument("--q", help="name substring")
    books.add_argument("--user-id", type=int, help="only books owned by this user id")
    books.add_argument("--sort", choices=["id", "name"])
    books.add_argument("--order", choices=["asc", "desc"], default="asc")

    show = sub.add_parser("book", help="show one book")
    show.add_argument("book_id", type=int)

    add = sub.add_parser("add-book", help="create a book")
    add.add_argument("name")
    add.add_argument("-c", "--collaborator", action="append", default=[], dest="collaborators")

    sec = sub.add_parser("add-section", help="append a section and save the book")
    sec.add_argument("book_id", type=int)
    sec.add_argument("name")
    sec.add_argument("--page", default="", help="page number")
    sec.add_argument("--parent", default="", help="dotted index path of the parent section")
    return parser


def _dump(data: Any) -> None:
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def _add_section(client: BooknotesClient, book_id: int, name: str, page: str, parent: str) -> Any:
    book = client.get_book(book_id)
    tree = sections_from_payload(book.get("sections"))
    created = append_section(tree, parent)
    created.name = name
    created.page_no = page
    book["sections"] = sections_to_payload(tree)
    return client.update_book(book)


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    client = BooknotesClient(args.url, args.token)
    try:
        if args.command == "register":
            _dump(client.register(args.email, args.password, args.first_name, args.last_name))
        elif args.command == "login":
            client.login(args.email, args.password)
            print(client.token)
        elif args.command == "users":
            _dump(client.list_users())
        elif args.command == "books":
            _dump(
                client.list_books(
                    q=args.q,
                    userId=args.user_id,
                    _sort=args.sort,
                    _order=args.order if args.sort else None,
                )
            )
        elif args.command == "book":
            _dump(client.get_book(args.book_id))
        elif args.command == "add-book":
            _dump(client.create_book(args.name, args.collaborators))
        elif args.command == "add-section":
            _dump(_add_section(client, args.book_id, args.name, args.page, args.parent))
    except ApiClientError as exc:
        status = exc.status if exc.status is not None else "-"
        print(f"error [{status}]: {exc.message}", file=sys.stderr)
        return 1
    except SectionTreeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
