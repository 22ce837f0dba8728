"""
Tests for the user service.
"""
from datetime import date, timedelta

import pytest

from streamflix.core.exceptions import ConflictError, NotFoundError, ValidationError
from streamflix.models.movie import Rating, ReviewText, WatchRecord
from streamflix.models.subscription import Subscription, SubscriptionOwnerLink, SubscriptionPlanLink
from streamflix.models.user import (
    BillingAddress,
    FreeUser,
    PaymentMethod,
    Subscriber,
    User,
    UserPhone,
    UserRole,
)
from streamflix.schemas.subscription import BillingAddressIn, PaymentMethodIn
from streamflix.schemas.user import RoleChange, UserCreate, UserUpdate
from streamflix.services.movie_service import MovieService
from streamflix.services.roles import RoleManager
from streamflix.services.user_service import UserService


def test_create_free_user_gets_default_trial(db_session, make_user):
    """A free user without a trial end date gets one 30 days after sign-up."""
    make_user("a@x.com", sign_up_date=date(2024, 3, 1))

    free_user = db_session.query(FreeUser).filter(FreeUser.email == "a@x.com").one()
    assert free_user.trial_end_date == date(2024, 3, 1) + timedelta(days=30)
    assert RoleManager(db_session).current("a@x.com") == UserRole.FREE_USER


def test_create_user_with_phone_and_subscriber_role(db_session, make_user):
    make_user("b@x.com", user_type=UserRole.SUBSCRIBER, phone_number=5551234567)

    assert db_session.query(Subscriber).filter(Subscriber.email == "b@x.com").count() == 1
    assert db_session.query(FreeUser).count() == 0
    phone = db_session.query(UserPhone).one()
    assert phone.phone_number == "5551234567"


def test_create_plain_user_has_no_specialization(db_session, make_user):
    make_user("c@x.com", user_type=UserRole.USER)

    assert RoleManager(db_session).current("c@x.com") == UserRole.USER
    assert db_session.query(Subscriber).count() == 0
    assert db_session.query(FreeUser).count() == 0


def test_create_duplicate_user_conflicts_and_leaves_original(db_session, make_user):
    make_user("a@x.com", first_name="Ann")

    with pytest.raises(ConflictError):
        make_user("a@x.com", first_name="Other", phone_number="111")

    user = db_session.query(User).one()
    assert user.first_name == "Ann"
    assert db_session.query(UserPhone).count() == 0


def test_create_user_defaults_sign_up_date_to_today(db_session):
    UserService(db_session).create_user(
        UserCreate(email="d@x.com", first_name="D", last_name="User")
    )
    assert db_session.query(User).one().sign_up_date == date.today()


def test_update_user_replaces_only_given_fields(db_session, make_user):
    make_user("a@x.com", first_name="Ann", middle_name="M", phone_number="111")

    UserService(db_session).update_user("a@x.com", UserUpdate(last_name="Smith", phone_number="222"))

    user = db_session.query(User).one()
    assert user.first_name == "Ann"
    assert user.middle_name == "M"
    assert user.last_name == "Smith"
    assert [p.phone_number for p in db_session.query(UserPhone)] == ["222"]


def test_update_user_null_phone_clears_phones(db_session, make_user):
    make_user("a@x.com", phone_number="111")

    UserService(db_session).update_user("a@x.com", UserUpdate(phone_number=None))

    assert db_session.query(UserPhone).count() == 0


def test_update_user_rejects_empty_required_name(db_session, make_user):
    make_user("a@x.com")

    with pytest.raises(ValidationError):
        UserService(db_session).update_user("a@x.com", UserUpdate(first_name=None))


def test_phone_without_digits_is_rejected(db_session, make_user):
    with pytest.raises(ValidationError):
        make_user("a@x.com", phone_number="n/a")
    assert db_session.query(User).count() == 0

    make_user("b@x.com", phone_number="111")
    with pytest.raises(ValidationError):
        UserService(db_session).update_user("b@x.com", UserUpdate(phone_number="---"))
    assert [p.phone_number for p in db_session.query(UserPhone)] == ["111"]


def test_formatted_phone_is_stored_as_digits(db_session, make_user):
    make_user("a@x.com", phone_number="(555) 123-4567")
    assert db_session.query(UserPhone).one().phone_number == "5551234567"


def test_update_user_empty_middle_name_is_stored_as_null(db_session, make_user):
    make_user("a@x.com", middle_name="M")

    UserService(db_session).update_user("a@x.com", UserUpdate(middle_name=""))

    assert db_session.query(User).one().middle_name is None


def test_update_unknown_user_not_found(db_session):
    with pytest.raises(NotFoundError):
        UserService(db_session).update_user("nobody@x.com", UserUpdate(last_name="X"))


def test_change_role_free_to_user_and_back(db_session, make_user):
    make_user("a@x.com")
    service = UserService(db_session)

    assert service.change_role("a@x.com", RoleChange(user_type=UserRole.USER)) == UserRole.USER
    assert db_session.query(FreeUser).count() == 0

    service.change_role(
        "a@x.com", RoleChange(user_type=UserRole.FREE_USER, trial_end_date=date(2030, 1, 1))
    )
    assert db_session.query(FreeUser).one().trial_end_date == date(2030, 1, 1)


def test_change_role_from_subscriber_drops_billing_and_subscriptions(
    db_session, make_user, make_subscription
):
    make_user("a@x.com")
    make_subscription(
        "a@x.com",
        billing_address=BillingAddressIn(street="1 Main", city="Town", state="CA", zip_code="90210"),
        payment_method=PaymentMethodIn(card_number="4111111111111111"),
    )

    UserService(db_session).change_role("a@x.com", RoleChange(user_type=UserRole.FREE_USER))

    assert RoleManager(db_session).current("a@x.com") == UserRole.FREE_USER
    assert db_session.query(Subscriber).count() == 0
    assert db_session.query(BillingAddress).count() == 0
    assert db_session.query(PaymentMethod).count() == 0
    assert db_session.query(Subscription).count() == 0
    assert db_session.query(SubscriptionPlanLink).count() == 0


def test_change_role_to_same_role_is_noop(db_session, make_user):
    make_user("a@x.com", user_type=UserRole.SUBSCRIBER)

    role = UserService(db_session).change_role("a@x.com", RoleChange(user_type=UserRole.SUBSCRIBER))

    assert role == UserRole.SUBSCRIBER
    assert db_session.query(Subscriber).count() == 1


def test_role_variants_are_exclusive(db_session, make_user):
    make_user("a@x.com", user_type=UserRole.SUBSCRIBER)

    with pytest.raises(ConflictError):
        RoleManager(db_session).assign("a@x.com", UserRole.FREE_USER)


def test_delete_user_removes_every_dependent_row(db_session, make_user, make_movie, make_rating, make_subscription):
    make_user("a@x.com", phone_number="111")
    make_user("b@x.com")
    movie_id = make_movie()
    make_rating(movie_id, "a@x.com", 4, review_text="good")
    make_rating(movie_id, "b@x.com", 2)
    MovieService(db_session).record_watch("a@x.com", movie_id)
    make_subscription(
        "a@x.com",
        billing_address=BillingAddressIn(street="1 Main", city="Town", state="CA", zip_code="90210"),
        payment_method=PaymentMethodIn(card_number="4111111111111111"),
    )

    counts = UserService(db_session).delete_user("a@x.com")

    assert counts["users"] == 1
    assert counts["ratings"] == 1
    assert counts["review_texts"] == 1
    assert counts["subscriptions"] == 1
    assert db_session.query(User).filter(User.email == "a@x.com").count() == 0
    assert db_session.query(Rating).filter(Rating.user_email == "a@x.com").count() == 0
    assert db_session.query(ReviewText).count() == 0
    assert db_session.query(WatchRecord).count() == 0
    assert db_session.query(Subscriber).count() == 0
    assert db_session.query(FreeUser).filter(FreeUser.email == "a@x.com").count() == 0
    assert db_session.query(UserPhone).count() == 0
    assert db_session.query(BillingAddress).count() == 0
    assert db_session.query(PaymentMethod).count() == 0
    assert db_session.query(SubscriptionOwnerLink).count() == 0
    assert db_session.query(SubscriptionPlanLink).count() == 0
    assert db_session.query(Subscription).count() == 0
    # Other users' rows survive
    assert db_session.query(Rating).count() == 1
    assert db_session.query(FreeUser).filter(FreeUser.email == "b@x.com").count() == 1


def test_delete_unknown_user_is_not_an_error(db_session):
    counts = UserService(db_session).delete_user("nobody@x.com")
    assert counts.get("users", 0) == 0
