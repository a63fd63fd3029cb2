from logging.config import fileConfig
import asyncio
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlalchemy import pool
import logging
import os
from alembic import context

from config.conf import load_settings
from db.models import Base

logger = logging.getLogger("alembic.env")


def process_revision_directives(context, revision, directives):
    """Called by Alembic when generating migrations."""
    if os.getenv("ALEMBIC_UNSAFE_OK"):
        logger.warning("Skipping migration safety checks because ALEMBIC_UNSAFE_OK is set")
        return

    from alembic.operations import MigrationScript
    from db.check_migrations import check_migration_safety

    script = directives[0]
    if isinstance(script, MigrationScript):
        check_migration_safety(script.upgrade_ops)

# ──────────────────────────────────────────────
# Alembic Config and logging
# ──────────────────────────────────────────────
config = context.config

settings = load_settings()
if settings.database_url:
    # Env settings win over alembic.ini
    config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# ──────────────────────────────────────────────
# Offline migrations (no DB connection)
# ──────────────────────────────────────────────
def run_migrations_offline() -> None:
    """Emit SQL to the script output instead of running it."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        process_revision_directives=process_revision_directives
    )

    with context.begin_transaction():
        context.run_migrations()


# ──────────────────────────────────────────────
# Online migrations (async engine)
# ──────────────────────────────────────────────
def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        process_revision_directives=process_revision_directives,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
