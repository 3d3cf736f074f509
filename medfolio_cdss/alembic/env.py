from logging.config import fileConfig
import os
import sys
from pathlib import Path

from sqlalchemy import create_engine, pool
from alembic import context

# Migrations run from medfolio_cdss/, next to the cdss package
sys.path.append(str(Path(__file__).resolve().parents[1]))

from cdss.medfolio.api.db.session import Base  # noqa: E402
from cdss.medfolio.api.models import record_db  # noqa: E402,F401

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _records_db_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("Set DATABASE_URL to the records database before running migrations.")
    return url


def _configure(**kwargs) -> None:
    context.configure(target_metadata=Base.metadata, compare_type=True, **kwargs)


if context.is_offline_mode():
    _configure(url=_records_db_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()
else:
    engine = create_engine(_records_db_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        # SQLite cannot ALTER most constraints in place
        _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
        with context.begin_transaction():
            context.run_migrations()
