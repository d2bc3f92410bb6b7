"""Alembic environment for the potluck schema.

The URL always comes from ``potluck.config.settings`` so migrations run
against the same database as the bot. Importing ``potluck.models.*``
registers every table on ``Base.metadata``.
"""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from potluck.config import settings
from potluck.database import Base
import potluck.models.dish  # noqa: F401
import potluck.models.event  # noqa: F401
import potluck.models.rsvp  # noqa: F401
import potluck.models.user  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
if config.config_file_name:
    fileConfig(config.config_file_name)

# SQLite cannot ALTER most constraints in place; batch mode rebuilds tables.
RENDER_AS_BATCH = settings.DATABASE_URL.startswith("sqlite")


def _migrate(**configure_kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        render_as_batch=RENDER_AS_BATCH,
        **configure_kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _migrate(
        url=settings.DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
else:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        _migrate(connection=connection)
