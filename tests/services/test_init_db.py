"""
Tests for database initialization.
"""
from streamflix.db.init_db import load_dump_file, seed_default_plans
from streamflix.models.subscription import Plan
from streamflix.models.user import User


def test_seed_default_plans_once(db_session):
    assert seed_default_plans(db_session) == 3
    assert seed_default_plans(db_session) == 0
    assert {p.plan_name for p in db_session.query(Plan)} == {"Basic", "Standard", "Premium"}


def test_load_dump_file_into_empty_database(db_session, tmp_path):
    dump = tmp_path / "streamflix.sql"
    dump.write_text(
        "INSERT INTO User VALUES ('ann@x.com','Ann',NULL,'Lee',NULL,'2024-01-10');\n"
        "INSERT INTO plan VALUES ('Mini', 1, 4.99);\n",
        encoding="utf-8",
    )

    assert load_dump_file(db_session, str(dump)) is True
    assert db_session.query(User).count() == 1
    # Plans from the dump win over the defaults
    assert seed_default_plans(db_session) == 0

    # A populated database is left alone
    assert load_dump_file(db_session, str(dump)) is False


def test_missing_dump_file(db_session, tmp_path):
    assert load_dump_file(db_session, str(tmp_path / "missing.sql")) is False
