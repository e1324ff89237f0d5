"""Inspect recent items and repair the PostgreSQL ``items`` id sequence.

A sequence left behind ``max(id)`` (after a bulk import, for example) makes
every new item fail with a duplicate primary key.
"""
from __future__ import annotations

import argparse
import sys

from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from slika.database import SessionLocal, dialect_name
from slika.models import Item, User

SEQUENCE_NAME = "items_id_seq"


def _print_latest(db: Session, limit: int) -> None:
    rows = db.execute(
        select(Item.id, Item.title, Item.media_type, User.username, Item.created_at)
        .join(User, Item.user_id == User.id)
        .order_by(Item.id.desc())
        .limit(limit)
    ).all()
    if not rows:
        print("No items stored.")
        return
    for item_id, title, media_type, username, created_at in rows:
        kind = getattr(media_type, "value", media_type)
        print(f"{item_id:>6} | {kind:<5} | {username:<20} | {created_at:%Y-%m-%d %H:%M:%S} | {title}")


def _sequence_state(db: Session) -> tuple[int, int]:
    max_id = int(db.scalar(select(func.coalesce(func.max(Item.id), 0))) or 0)
    last_value = int(db.execute(text(f"SELECT last_value FROM {SEQUENCE_NAME}")).scalar_one())
    return max_id, last_value


def _run(args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        _print_latest(db, args.limit)

        if dialect_name(db) != "postgresql":
            print(f"Sequence check skipped: database dialect is {dialect_name(db)}, not postgresql.")
            return 0

        max_id, last_value = _sequence_state(db)
        print(f"max(items.id)={max_id} {SEQUENCE_NAME}.last_value={last_value}")
        if last_value >= max_id:
            print("Sequence is ahead of the table; nothing to fix.")
            return 0
        if not args.fix:
            print("Sequence is behind the table. Re-run with --fix to reset it.")
            return 1

        db.execute(text("SELECT setval(:name, :value)"), {"name": SEQUENCE_NAME, "value": max(max_id, 1)})
        db.commit()
        print(f"{SEQUENCE_NAME} reset to {max_id}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show recent items and check the items id sequence.")
    parser.add_argument("--limit", type=int, default=10, help="How many recent items to print")
    parser.add_argument("--fix", action="store_true", help="Reset the sequence to max(id) when it lags behind")
    return parser


def main(argv: list[str] | None = None) -> int:
    return _run(build_parser().parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
