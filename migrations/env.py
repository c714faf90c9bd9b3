"""Alembic environment for the promo redemption schema."""
import os
import sys
from pathlib import Path
from dotenv import load_dotenv
from alembic import context
from sqlalchemy import create_engine, pool

load_dotenv()

# the app package lives one level up
sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.models import Base  # noqa: E402

DEFAULT_URL = "sqlite:///./promo.db"

url = os.getenv("DATABASE_URL") or DEFAULT_URL
context.config.set_main_option("sqlalchemy.url", url)


def _run(**options) -> None:
    # sqlite needs batch mode for ALTER TABLE
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    _run(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})


def run_migrations_online() -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        _run(connection=connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
