import argparse
import asyncio
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import event, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app import models  # noqa: F401
from app.config import settings
from app.utils.logger import setup_logger

logger = setup_logger("db")

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def normalize_database_url(url: str) -> str:
    """Rewrite a database URL to use the async driver for its backend."""
    if not url:
        raise ValueError("Database URL is empty")

    for async_scheme in _ASYNC_DRIVERS.values():
        if url.startswith(f"{async_scheme}://"):
            return url

    for sync_scheme, async_scheme in _ASYNC_DRIVERS.items():
        if url.startswith(f"{sync_scheme}://"):
            return url.replace(f"{sync_scheme}://", f"{async_scheme}://", 1)

    raise ValueError(f"Unsupported database URL prefix: {url.split('://', 1)[0]}")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY clauses unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_app_engine(url: str, **engine_kwargs) -> AsyncEngine:
    """
    Create an async engine for ``url``.

    SQLite engines get foreign-key enforcement switched on for every
    connection. Server databases get the pool sizing from settings unless the
    caller passes its own pool options.
    """
    url = normalize_database_url(url)
    is_sqlite = make_url(url).get_backend_name() == "sqlite"

    options = {"echo": settings.database_echo}
    if not is_sqlite and "poolclass" not in engine_kwargs:
        options.update(
            pool_pre_ping=True,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
        )
    options.update(engine_kwargs)

    engine = create_async_engine(url, **options)
    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


# --- Application DB ---
app_engine = create_app_engine(settings.database_url)
logger.debug(f"Application DB URL: {app_engine.url!r}")

AppAsyncSessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=app_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# --- Migrations ---
def build_alembic_config(url: str | None = None) -> Config:
    """Alembic configuration pointing at the bundled migration scripts."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("file_template", "%%(rev)s_%%(slug)s")
    if url:
        # ConfigParser interpolation treats '%' as special
        cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def _run_alembic(connection, cfg: Config, fn, *args) -> None:
    cfg.attributes["connection"] = connection
    fn(cfg, *args)


def _engine_url(engine: AsyncEngine) -> str:
    return engine.url.render_as_string(hide_password=False)


async def upgrade_db(revision: str = "head", engine: AsyncEngine | None = None):
    """Apply migrations up to ``revision`` in a single transaction."""
    engine = engine or app_engine
    cfg = build_alembic_config(_engine_url(engine))
    logger.info(f"Upgrading database to revision '{revision}'...")
    async with engine.begin() as conn:
        await conn.run_sync(_run_alembic, cfg, command.upgrade, revision)
    logger.info(f"Database upgraded to revision '{revision}'.")


async def downgrade_db(revision: str = "-1", engine: AsyncEngine | None = None):
    """Revert migrations down to ``revision`` in a single transaction."""
    engine = engine or app_engine
    cfg = build_alembic_config(_engine_url(engine))
    logger.warning(
        f"Downgrading database to revision '{revision}'. Dropped tables lose all their data."
    )
    async with engine.begin() as conn:
        await conn.run_sync(_run_alembic, cfg, command.downgrade, revision)
    logger.info(f"Database downgraded to revision '{revision}'.")


def _current_revision(connection) -> str | None:
    return MigrationContext.configure(connection).get_current_revision()


async def get_current_revision(engine: AsyncEngine | None = None) -> str | None:
    """Return the applied revision, or None for an unmigrated database."""
    engine = engine or app_engine
    async with engine.connect() as conn:
        return await conn.run_sync(_current_revision)


def list_revisions() -> list[tuple[str, str | None, str]]:
    """Known revisions as (revision, down_revision, message), newest first."""
    script = ScriptDirectory.from_config(build_alembic_config())
    return [
        (rev.revision, rev.down_revision, rev.doc)
        for rev in script.walk_revisions()
    ]


def create_revision(message: str, autogenerate: bool = False) -> None:
    """Write a new revision file, optionally diffed against the models."""
    cfg = build_alembic_config(settings.migration_database_url)
    command.revision(cfg, message=message, autogenerate=autogenerate)


# --- Inspection helpers ---
def _table_names(connection) -> list[str]:
    return sorted(inspect(connection).get_table_names())


async def list_tables(engine: AsyncEngine | None = None) -> list[str]:
    """Lists all tables in the database."""
    engine = engine or app_engine
    async with engine.connect() as conn:
        table_names = await conn.run_sync(_table_names)

    if table_names:
        logger.debug(f"Tables in database: {table_names}")
    else:
        logger.debug("No tables found in database.")
    return table_names


async def check_db_connection(engine_to_check=None, db_name="Application DB"):
    """Performs a simple query to check actual DB connectivity."""
    if engine_to_check is None:
        engine_to_check = app_engine

    try:
        async with engine_to_check.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            value = result.scalar_one()
    except Exception as e:
        logger.error(f"Failed to execute test query on {db_name}: {e}", exc_info=True)
        raise RuntimeError(
            f"Database connectivity check failed for {db_name}. {settings.db_unavailable_hint}"
        ) from e

    if value != 1:
        logger.error(f"Test query to {db_name} did not return 1. This is unexpected.")
        raise RuntimeError(f"Test query to {db_name} returned an unexpected result.")

    logger.info(f"Successfully connected to {db_name} and executed a test query.")
    return True


async def close_db():
    """Closes database connections."""
    logger.info("Closing database connections.")
    await app_engine.dispose()
    logger.info("Database connections closed.")


async def _run_and_close(coro):
    try:
        return await coro
    finally:
        await close_db()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Task store database and migration utility"
    )
    subparsers = parser.add_subparsers(dest="action", required=True)

    upgrade = subparsers.add_parser("upgrade", help="Apply pending migrations")
    upgrade.add_argument("--revision", default="head")

    downgrade = subparsers.add_parser("downgrade", help="Revert migrations")
    downgrade.add_argument(
        "--revision", default="-1", help="Target revision, 'base' reverts everything"
    )
    downgrade.add_argument(
        "--yes", action="store_true", help="Do not ask for confirmation"
    )

    subparsers.add_parser("current", help="Show the applied revision")
    subparsers.add_parser("history", help="List known revisions")

    revision = subparsers.add_parser("revision", help="Create a new revision file")
    revision.add_argument("-m", "--message", required=True)
    revision.add_argument("--autogenerate", action="store_true")

    subparsers.add_parser("list-tables", help="List tables in the database")
    subparsers.add_parser("check", help="Check database connectivity")
    return parser


def cli(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.action == "upgrade":
        asyncio.run(_run_and_close(upgrade_db(args.revision)))
    elif args.action == "downgrade":
        if not args.yes:
            confirm = input(
                f"WARNING: Downgrading to '{args.revision}' drops tables and all their data. Are you sure? (yes/no): "
            )
            if confirm.lower() != "yes":
                logger.info("Database downgrade cancelled by user.")
                return 1
        asyncio.run(_run_and_close(downgrade_db(args.revision)))
    elif args.action == "current":
        print(asyncio.run(_run_and_close(get_current_revision())))
    elif args.action == "history":
        for rev, down_rev, message in list_revisions():
            print(f"{down_rev or '<base>'} -> {rev}: {message}")
    elif args.action == "revision":
        create_revision(args.message, autogenerate=args.autogenerate)
    elif args.action == "list-tables":
        for table_name in asyncio.run(_run_and_close(list_tables())):
            print(table_name)
    elif args.action == "check":
        asyncio.run(_run_and_close(check_db_connection()))

    logger.info(f"Database utility '{args.action}' finished.")
    return 0


if __name__ == "__main__":
    sys.exit(cli())
