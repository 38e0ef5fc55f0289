from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
from pipeline_orchestrator.core.config import settings
from pipeline_orchestrator.db.session import Base
from pipeline_orchestrator.db import models  # noqa: F401 registers OrchestrationJob

config = context.config
if config.config_file_name and config.has_section("formatters"):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def migrate_offline() -> None:
    """Emit the job table DDL as SQL without a live connection."""
    context.configure(
        url=settings.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=settings.database_url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate_online() -> None:
    connectable = engine_from_config(
        {"sqlalchemy.url": settings.database_url},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    migrate_offline()
else:
    migrate_online()
