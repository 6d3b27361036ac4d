# timewise_auth/db/init_db.py
import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from timewise_auth.core.config import Settings
from timewise_auth.crud.user import user_crud
from timewise_auth.models.role import DEFAULT_ROLES, ROLE_ADMIN, ROLE_SUPERADMIN, Role

logger = structlog.get_logger(__name__)

def init_db(db: Session, settings: Settings | None = None) -> None:
    roles = {r.name for r in db.scalars(select(Role)).all()}
    for name in DEFAULT_ROLES:
        if name not in roles:
            db.add(Role(name=name))
    db.commit()

    # admin inicial só se vier do ambiente; nada de senha padrão
    if settings is None or not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return
    if user_crud.get_by_email(db, settings.ADMIN_EMAIL):
        return
    user_crud.create(
        db,
        name="Administrator",
        email=settings.ADMIN_EMAIL,
        password=settings.ADMIN_PASSWORD,
        roles=[ROLE_SUPERADMIN, ROLE_ADMIN],
    )
    logger.info("admin_bootstrapped", email=settings.ADMIN_EMAIL)
