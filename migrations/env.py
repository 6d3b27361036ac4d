# migrations/env.py
import os
from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

from timewise_auth.db.base import Base
import timewise_auth.models  # noqa: F401  registra as tabelas no metadata
from timewise_auth.db.session import normalize_url

# (1) carregar .env
load_dotenv()

config = context.config

# (2) URL: a do bootstrap (set_main_option) tem prioridade sobre o ambiente
db_url = config.get_main_option("sqlalchemy.url") or os.getenv("DATABASE_URL") or ""
if not db_url.strip():
    db_url = "sqlite:///./data/auth.db"
config.set_main_option("sqlalchemy.url", normalize_url(db_url))

target_metadata = Base.metadata

def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online():
    connectable = engine_from_config(config.get_section(config.config_ini_section), prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
