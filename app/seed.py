"""Out-of-band setup commands.

Usage::

    python -m app.seed admin --email admin@example.com --password secret --name Admin
    python -m app.seed categories
"""

import argparse
import logging
import sys
from dataclasses import dataclass

from sqlalchemy.orm import Session

from . import crud, models, schemas
from .auth import get_password_hash
from .core import configure_logging
from .database import SessionLocal, engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategorySeed:
    name: str
    slug: str
    description: str


DEFAULT_CATEGORIES = [
    CategorySeed("Football", "football", "Football gear and accessories"),
    CategorySeed("Basketball", "basketball", "Basketball gear and accessories"),
    CategorySeed("Tennis", "tennis", "Tennis gear and accessories"),
    CategorySeed("Fitness", "fitness", "Fitness and weight training equipment"),
    CategorySeed("Running", "running", "Running gear"),
    CategorySeed("Swimming", "swimming", "Swimming and water sports gear"),
    CategorySeed("Racket sports", "racket-sports", "Tennis, badminton, squash, padel"),
    CategorySeed("Protective gear", "protection", "Protective and safety equipment"),
]


def create_or_update_admin(
    db: Session, email: str, password: str, name: str
) -> tuple[models.AdminUser, bool]:
    """
    Create the admin, or reset its password and name when it exists.

    Args:
        db (Session): Database session.
        email (str): Admin email.
        password (str): Plain password, stored hashed.
        name (str): Display name.

    Returns:
        tuple[AdminUser, bool]: The admin and whether it was created.
    """
    hashed = get_password_hash(password)
    existing = crud.get_admin_by_email(db, email)
    if existing:
        return crud.update_admin(db, existing, hashed, name), False
    return crud.create_admin(db, email, hashed, name), True


def create_default_categories(
    db: Session, seeds: list[CategorySeed] = DEFAULT_CATEGORIES
) -> list[models.Category]:
    """
    Insert the default categories, skipping ones whose name or slug exist.

    Returns:
        list[Category]: Categories created by this call.
    """
    created = []
    for seed in seeds:
        if crud.find_conflicting_category(db, seed.name, seed.slug):
            logger.info("Category %s already exists, skipped", seed.name)
            continue
        created.append(
            crud.create_category(
                db,
                schemas.CategoryCreate(
                    name=seed.name, slug=seed.slug, description=seed.description
                ),
            )
        )
        logger.info("Category %s created", seed.name)
    return created


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m app.seed")
    commands = parser.add_subparsers(dest="command", required=True)

    admin = commands.add_parser("admin", help="create or update the admin account")
    admin.add_argument("--email", required=True)
    admin.add_argument("--password", required=True)
    admin.add_argument("--name", default="Administrator")

    commands.add_parser("categories", help="insert the default categories")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    models.Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if args.command == "admin":
            admin, created = create_or_update_admin(
                db, args.email, args.password, args.name
            )
            logger.info("Admin %s %s", admin.email, "created" if created else "updated")
        else:
            created = create_default_categories(db)
            logger.info("%d categories created", len(created))
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
