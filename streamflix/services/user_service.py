"""
User service module.

Provides the multi-table write operations for users.
"""
import logging
import re
from datetime import date
from typing import Dict

from sqlalchemy.exc import IntegrityError

from streamflix.core.exceptions import ConflictError, ValidationError
from streamflix.models.subscription import Subscription
from streamflix.models.user import User, UserPhone, UserRole
from streamflix.schemas.user import RoleChange, UserCreate, UserUpdate
from streamflix.services.base import BaseService
from streamflix.services.cascade import CascadeDelete
from streamflix.services.roles import RoleManager

logger = logging.getLogger(__name__)

REQUIRED_NAME_FIELDS = ("first_name", "last_name")


def phone_digits(phone_number: str) -> str:
    digits = re.sub(r"\D", "", phone_number)
    if not digits:
        raise ValidationError(f"Phone number has no digits: {phone_number}")
    return digits


class UserService(BaseService):
    """
    Service for user lifecycle operations.
    """

    def create_user(self, user_data: UserCreate) -> User:
        """
        Create a user with an optional phone number and a role.

        Args:
            user_data: The user data

        Returns:
            User: The created user

        Raises:
            ConflictError: If a user with the email already exists
            ValidationError: If the phone number has no digits
            TransactionError: If the store fails mid-write
        """
        email = str(user_data.email)
        phone_number = phone_digits(user_data.phone_number) if user_data.phone_number else None

        with self.transaction("create user"):
            if self.db.query(User).filter(User.email == email).first():
                raise ConflictError(f"User already exists: {email}")

            sign_up_date = user_data.sign_up_date or date.today()
            user = User(
                email=email,
                first_name=user_data.first_name,
                middle_name=user_data.middle_name or None,
                last_name=user_data.last_name,
                birth_date=user_data.birth_date,
                sign_up_date=sign_up_date,
            )
            self.db.add(user)
            try:
                self.db.flush()
            except IntegrityError as e:
                raise ConflictError(f"User already exists: {email}") from e

            if phone_number:
                self.db.add(UserPhone(email=email, phone_number=phone_number))

            RoleManager(self.db).assign(
                email,
                user_data.user_type,
                trial_end_date=user_data.trial_end_date,
                reference_date=sign_up_date,
            )

        logger.info(f"Created user {email} as {user_data.user_type.value}")
        return user

    def update_user(self, email: str, user_data: UserUpdate) -> User:
        """
        Overwrite the fields present in ``user_data``.

        A present phone number replaces the whole phone set; null or empty
        clears it. The role is left alone, see change_role.

        Args:
            email: The user's email
            user_data: The fields to write

        Returns:
            User: The updated user

        Raises:
            NotFoundError: If the user does not exist
            ValidationError: If a required name field is set to null or the
                phone number has no digits
        """
        fields = user_data.model_dump(exclude_unset=True)

        with self.transaction("update user"):
            user = self._get_user(email)

            for name in REQUIRED_NAME_FIELDS:
                if name in fields and not fields[name]:
                    raise ValidationError(f"{name} cannot be empty")
            if "middle_name" in fields:
                fields["middle_name"] = fields["middle_name"] or None

            if "phone_number" in fields:
                phone_number = fields.pop("phone_number")
                self.db.query(UserPhone).filter(UserPhone.email == email).delete(
                    synchronize_session=False
                )
                if phone_number:
                    self.db.add(UserPhone(email=email, phone_number=phone_digits(phone_number)))

            for key, value in fields.items():
                setattr(user, key, value)

        self.db.expire(user)
        logger.info(f"Updated user {email}")
        return user

    def change_role(self, email: str, role_change: RoleChange) -> UserRole:
        """
        Switch a user's role.

        The old specialization is removed before the new one is added, both
        in one transaction. Leaving the subscriber role removes the user's
        billing addresses, payment methods and subscriptions.

        Returns:
            UserRole: The new role
        """
        target = role_change.user_type

        with self.transaction("change user role"):
            self._get_user(email)
            roles = RoleManager(self.db)
            current = roles.current(email)

            # Same role: only a new trial end date for a free user changes anything
            if current == target and (
                target != UserRole.FREE_USER or role_change.trial_end_date is None
            ):
                return current

            if current != target:
                roles.remove(email)
            roles.assign(email, target, trial_end_date=role_change.trial_end_date)

        logger.info(f"Changed role of {email} from {current.value} to {target.value}")
        return target

    def delete_user(self, email: str) -> Dict[str, int]:
        """
        Delete a user and every row that references it.

        Removal order: review texts of the user's ratings, ratings, watch
        records, payment methods, billing addresses, subscription ownership
        links, subscriber row, free user row, phones, the user. Subscriptions
        the user owned are removed afterwards along with their plan links.
        Deleting an unknown email removes nothing and is not an error.

        Args:
            email: The user's email

        Returns:
            Dict[str, int]: Rows removed per table
        """
        with self.transaction("delete user"):
            cascade = CascadeDelete(self.db)
            owned = RoleManager(self.db).owned_subscription_ids(email)
            counts = cascade.run(User, User.email == email)
            if owned:
                cascade.run(Subscription, Subscription.sub_id.in_(owned), counts)

        if counts.get("users"):
            logger.info(f"Deleted user {email}: {counts}")
        else:
            logger.info(f"Delete requested for unknown user {email}")
        return counts
