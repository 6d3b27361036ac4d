from sqlalchemy import inspect, select

from conftest import TEST_PASSWORD
from timewise_auth.crud.user import user_crud
from timewise_auth.db.bootstrap import run_migrations_and_seed
from timewise_auth.db.session import make_engine, make_session_factory, normalize_url
from timewise_auth.models.role import DEFAULT_ROLES, Role


def _bootstrap(settings):
    engine = make_engine(settings.DATABASE_URL)
    factory = make_session_factory(engine)
    run_migrations_and_seed(settings, factory)
    return engine, factory


def test_upgrade_creates_tables_and_seeds_roles(settings):
    engine, factory = _bootstrap(settings)
    try:
        tables = set(inspect(engine).get_table_names())
        assert {"users", "roles", "user_roles", "role_permissions", "refresh_tokens", "revoked_tokens"} <= tables

        with factory() as db:
            names = [r.name for r in db.scalars(select(Role).order_by(Role.id)).all()]
        assert names == DEFAULT_ROLES
    finally:
        engine.dispose()


def test_admin_bootstrap_is_idempotent(settings):
    settings = settings.model_copy(update={"ADMIN_EMAIL": "Boss@Example.com", "ADMIN_PASSWORD": TEST_PASSWORD})
    engine, factory = _bootstrap(settings)
    try:
        run_migrations_and_seed(settings, factory)

        with factory() as db:
            admin = user_crud.get_by_email(db, "boss@example.com")
            assert admin is not None
            assert sorted(r.name for r in admin.roles) == ["admin", "superadmin"]
            assert len(user_crud.search(db)) == 1
    finally:
        engine.dispose()


def test_no_admin_without_credentials(settings):
    engine, factory = _bootstrap(settings)
    try:
        with factory() as db:
            assert user_crud.search(db) == []
    finally:
        engine.dispose()


def test_normalize_url():
    assert normalize_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_url("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_url("sqlite:///x.db") == "sqlite:///x.db"
