"""
Alembic environment for the task store.

Online migrations either reuse a synchronous connection handed over through
``config.attributes["connection"]`` (see ``app.db.upgrade_db``) or open their
own async engine from the configured URL.
"""

import asyncio

from alembic import context
from sqlalchemy.pool import NullPool

from app import models  # noqa: F401
from app.config import settings
from app.db import create_app_engine
from app.models.base import Base
from app.utils.logger import setup_logger

logger = setup_logger("migrations")

config = context.config
target_metadata = Base.metadata


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or settings.migration_database_url


def _log_version_apply(*, ctx, step, heads, run_args):
    direction = "upgrade" if step.is_upgrade else "downgrade"
    logger.info(
        f"Applied {direction} {step.up_revision_id} ({step.up_revision.doc}); "
        f"current heads: {sorted(heads) or ['<base>']}"
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
        on_version_apply=_log_version_apply,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_app_engine(_database_url(), poolclass=NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    connection = config.attributes.get("connection")
    if connection is None:
        asyncio.run(run_async_migrations())
    else:
        do_run_migrations(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
