"""Command-line tool for seeding placeholder accounts with demo items.

Placeholder accounts hold content until a real person signs up with the same
username, at which point the content moves to the real account.
"""
from __future__ import annotations

import argparse
import sys
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from slika.database import SessionLocal, init_db
from slika.models import AccountKind, Item, MediaType, User
from slika.services.storage_service import media_type_for


def _ensure_placeholder(db: Session, username: str) -> User:
    record = db.scalar(select(User).where(User.username == username))
    if record is not None:
        if not record.is_placeholder:
            raise SystemExit(f"'{username}' already belongs to a real account; refusing to seed it.")
        return record
    user = User(
        id=f"placeholder_{uuid4().hex[:12]}",
        username=username,
        display_name=username.replace("_", " ").title(),
        account_kind=AccountKind.PLACEHOLDER,
    )
    db.add(user)
    db.flush()
    return user


def _seed(args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        user = _ensure_placeholder(db, args.username)
        for index, url in enumerate(args.media_url, start=1):
            title = args.title or f"{user.display_name} #{index}"
            media_type = MediaType(args.media_type) if args.media_type else media_type_for(None, url)
            db.add(Item(title=title, description=args.description, media_url=url, media_type=media_type, user_id=user.id))
        db.commit()
        print(f"{user.username} ({user.id}) now owns {len(user.items)} item(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create placeholder accounts and attach items to them.")
    parser.add_argument("username", help="Username the placeholder account reserves")
    parser.add_argument(
        "--media-url",
        action="append",
        default=[],
        help="Public URL of an already stored image or video (repeat for several items)",
    )
    parser.add_argument("--title", help="Title for every seeded item; defaults to '<name> #<n>'")
    parser.add_argument("--description", help="Description for every seeded item")
    parser.add_argument("--media-type", choices=[kind.value for kind in MediaType], help="Override media detection")
    parser.add_argument("--init-db", action="store_true", help="Create missing tables before seeding")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.init_db:
        init_db()
    return _seed(args)


if __name__ == "__main__":
    sys.exit(main())
