"""
Alembic migration environment for the check-in schema.

The URL comes from DATABASE_URL_SYNC unless overridden on the command line:
  alembic -x url=sqlite:///./local.db upgrade head
SQLite targets run in batch mode so ALTERs in later revisions still apply.
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from checkin.db.base import Base
import checkin.models  # noqa: F401 - register tables on Base.metadata
from checkin.core.config import get_settings

config = context.config

url = context.get_x_argument(as_dictionary=True).get("url") or get_settings().DATABASE_URL_SYNC
config.set_main_option("sqlalchemy.url", url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure_kwargs(dialect_name: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": dialect_name == "sqlite",
    }


def run_migrations_offline() -> None:
    """Emit the SQL script without a database connection."""
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(url.split(":", 1)[0].split("+", 1)[0]),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(connection.dialect.name))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
