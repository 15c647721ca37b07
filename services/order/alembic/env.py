from logging.config import fileConfig
from sqlalchemy import pool
from alembic import context
from app.core.config import settings
from app.db.session import Base, make_engine
import app.db.models  # noqa

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# each service keeps its own version table in the shared database
VERSION_TABLE = "alembic_version_order"

def _configure(**kwargs):
    context.configure(target_metadata=target_metadata, version_table=VERSION_TABLE, compare_type=True, **kwargs)

def run_migrations_offline():
    _configure(url=settings.POSTGRES_DSN, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online():
    connectable = make_engine(poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
