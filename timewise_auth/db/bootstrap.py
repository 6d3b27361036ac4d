# timewise_auth/db/bootstrap.py
import os
from alembic import command
from alembic.config import Config

from timewise_auth.core.config import Settings
from timewise_auth.db.init_db import init_db
from timewise_auth.db.session import normalize_url

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

def alembic_config(database_url: str) -> Config:
    # Aponta explicitamente para alembic.ini e migrations/
    cfg = Config(os.path.join(BASE_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(BASE_DIR, "migrations"))
    cfg.set_main_option("sqlalchemy.url", normalize_url(database_url))
    return cfg

def run_migrations_and_seed(settings: Settings, session_factory) -> None:
    command.upgrade(alembic_config(settings.DATABASE_URL), "head")
    with session_factory() as db:
        init_db(db, settings)
