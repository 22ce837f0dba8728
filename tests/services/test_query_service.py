"""
Tests for the read views.
"""
from datetime import date

import pytest

from streamflix.core.exceptions import NotFoundError
from streamflix.models.user import UserRole
from streamflix.schemas.subscription import PaymentMethodIn
from streamflix.services.query_service import (
    LEGACY_TABLE_NAMES,
    TABLES,
    QueryService,
    mask_row,
    round_rating,
    table_name,
)


@pytest.mark.parametrize(
    "value, expected",
    [(None, 0.0), (4.0, 4.0), (4.25, 4.3), (3.333333, 3.3), (2.05, 2.1)],
)
def test_round_rating(value, expected):
    assert round_rating(value) == expected


def test_mask_row_only_touches_card_numbers():
    assert mask_row({"email": "a@x.com"}) == {"email": "a@x.com"}
    assert mask_row({"card_number": "4111111111119876"})["card_number"] == "****-****-****-9876"


def test_list_users_reports_roles_and_phones(db_session, make_user):
    make_user("old@x.com", user_type=UserRole.USER, sign_up_date=date(2023, 5, 1))
    make_user("new@x.com", sign_up_date=date(2024, 5, 1), phone_number="5550001")
    make_user("sub@x.com", user_type=UserRole.SUBSCRIBER, sign_up_date=date(2024, 1, 1))

    users = QueryService(db_session).list_users()

    assert [u.email for u in users] == ["new@x.com", "sub@x.com", "old@x.com"]
    roles = {u.email: u.user_type for u in users}
    assert roles == {
        "new@x.com": UserRole.FREE_USER,
        "sub@x.com": UserRole.SUBSCRIBER,
        "old@x.com": UserRole.USER,
    }
    assert users[0].phone_numbers == ["5550001"]
    assert users[0].trial_end_date == date(2024, 5, 31)
    assert users[2].trial_end_date is None


def test_list_plans_by_price(db_session, plans):
    assert [p.plan_name for p in QueryService(db_session).list_plans()] == ["Basic", "Standard", "Premium"]


def test_dump_table_masks_cards(db_session, make_user, make_subscription):
    make_user("a@x.com")
    make_subscription("a@x.com", payment_method=PaymentMethodIn(card_number="4111111111111111"))

    [row] = QueryService(db_session).dump_table("payment_methods")
    assert row["email"] == "a@x.com"
    assert row["card_number"] == "****-****-****-1111"


def test_dump_every_table(db_session):
    query = QueryService(db_session)
    for name in TABLES:
        assert query.dump_table(name) == []


@pytest.mark.parametrize("legacy", sorted(LEGACY_TABLE_NAMES))
def test_legacy_names_resolve_to_tables(legacy):
    assert table_name(legacy) in TABLES
    assert table_name(legacy.upper()) == table_name(legacy)


def test_dump_table_by_legacy_name(db_session, make_user, make_subscription):
    make_user("a@x.com", phone_number="111")
    make_subscription("a@x.com", payment_method=PaymentMethodIn(card_number="4111111111111111"))
    query = QueryService(db_session)

    assert query.dump_table("subscriber2") == query.dump_table("payment_methods")
    assert query.dump_table("subscriber2")[0]["card_number"] == "****-****-****-1111"
    assert query.dump_table("User2") == query.dump_table("user_phones")
    assert [row["sub_id"] for row in query.dump_table("has")] == [1]


def test_dump_unknown_table(db_session):
    with pytest.raises(NotFoundError):
        QueryService(db_session).dump_table("passwords")


def test_subscriptions_newest_first(db_session, make_user, make_subscription):
    make_user("a@x.com")
    make_user("b@x.com")
    make_subscription("a@x.com", start_date=date(2023, 6, 1))
    make_subscription("b@x.com", start_date=date(2024, 6, 1))

    assert [s.user_email for s in QueryService(db_session).list_subscriptions()] == ["b@x.com", "a@x.com"]
