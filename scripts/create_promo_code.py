"""Create, list or deactivate promo codes from the command line.

Usage:
  python scripts/create_promo_code.py create WELCOME7 --free-days 7 --max-uses 100
  python scripts/create_promo_code.py create CLILB1 --free-days 14 --max-uses 50 \
      --content-type clil --level Beginner --expires-at 2027-01-01T00:00:00+00:00
  python scripts/create_promo_code.py list
  python scripts/create_promo_code.py disable 12
"""

from __future__ import annotations

import argparse
from datetime import datetime

from app.config import Settings
from app.db import SessionLocal, init_db
from app.services.promo_codes import (
    PromoCodeError,
    create_promo_code,
    list_promo_codes,
    set_promo_code_active,
)
from app.services.restrictions import Restrictions


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create")
    create.add_argument("code")
    create.add_argument("--free-days", type=int, required=True)
    create.add_argument("--max-uses", type=int, required=True)
    create.add_argument("--expires-at", type=datetime.fromisoformat, default=None)
    create.add_argument("--description", default=None)
    create.add_argument("--content-type", default=None)
    create.add_argument("--level", default=None)
    create.add_argument("--language", default=None)

    sub.add_parser("list")

    disable = sub.add_parser("disable")
    disable.add_argument("promo_id", type=int)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    init_db(Settings())

    with SessionLocal() as session:
        try:
            if args.command == "create":
                promo = create_promo_code(
                    session,
                    code=args.code,
                    free_days=args.free_days,
                    max_uses=args.max_uses,
                    expires_at=args.expires_at,
                    description=args.description,
                    restrictions=Restrictions.of(
                        args.content_type, args.level, args.language
                    ),
                )
                print(f"{promo.id}\t{promo.code}")
            elif args.command == "list":
                for promo in list_promo_codes(session):
                    scope = Restrictions.from_promo(promo).scope()
                    state = "active" if promo.active else "inactive"
                    print(
                        f"{promo.id}\t{promo.code}\t{state}\t"
                        f"{promo.current_uses}/{promo.max_uses}\t{scope}"
                    )
            else:
                promo = set_promo_code_active(session, args.promo_id, False)
                print(f"disabled {promo.code}")
        except (PromoCodeError, ValueError) as exc:
            raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
