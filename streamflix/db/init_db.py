"""
Database initialization: optional dump import and default plan seeding.
"""
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from streamflix.core.config import settings
from streamflix.db.session import SessionLocal
from streamflix.models.subscription import Plan
from streamflix.models.user import User
from streamflix.services.sql_dump import SqlDumpImporter

logger = logging.getLogger(__name__)

DEFAULT_PLANS = (
    ("Basic", 1, 9.99),
    ("Standard", 2, 15.49),
    ("Premium", 4, 19.99),
)


def load_dump_file(db: Session, path: str) -> bool:
    """
    Load a SQL dump into an empty database.

    Returns:
        bool: True if the dump was loaded
    """
    dump_file = Path(path)
    if not dump_file.is_file():
        logger.warning(f"SQL dump not found: {path}")
        return False
    if db.query(User).first() is not None:
        logger.info("Database already has users, skipping SQL dump import")
        return False

    logger.info(f"Importing SQL dump from {path}")
    SqlDumpImporter(db).load(dump_file.read_text(encoding="utf-8"))
    return True


def seed_default_plans(db: Session) -> int:
    """Add the default plans if there are none yet."""
    if db.query(Plan).count() > 0:
        return 0
    db.add_all(
        [
            Plan(plan_name=name, max_screens=screens, monthly_price=price)
            for name, screens, price in DEFAULT_PLANS
        ]
    )
    db.commit()
    logger.info(f"Seeded {len(DEFAULT_PLANS)} default plans")
    return len(DEFAULT_PLANS)


def init_db(db: Optional[Session] = None) -> None:
    """
    Populate a fresh database.

    Tables must already exist. A configured dump is imported first so its
    plans win over the defaults.
    """
    session = db or SessionLocal()
    try:
        if settings.SQL_DUMP_PATH:
            load_dump_file(session, settings.SQL_DUMP_PATH)
        if settings.SEED_DEFAULT_PLANS:
            seed_default_plans(session)
    finally:
        if db is None:
            session.close()
