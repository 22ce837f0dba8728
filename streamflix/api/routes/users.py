"""
Users API endpoints.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from streamflix.db.session import get_db
from streamflix.schemas.base import OperationResult
from streamflix.schemas.user import RoleChange, User, UserCreate, UserUpdate
from streamflix.services.query_service import QueryService
from streamflix.services.user_service import UserService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/users",
    response_model=List[User],
    status_code=status.HTTP_200_OK,
    summary="List users",
    description="Returns all users with their role and phone numbers, newest sign-up first"
)
def list_users(db: Session = Depends(get_db)):
    return QueryService(db).list_users()


@router.post(
    "/users",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    description="Creates a user with an optional phone number as a subscriber, free user or plain user"
)
def create_user(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Create a user.

    Args:
        user_data: The user data
        db: Database session

    Returns:
        OperationResult: Confirmation message

    Raises:
        ConflictError: If the email is already registered
    """
    user = UserService(db).create_user(user_data)
    return OperationResult(message=f"User {user.email} created")


@router.put(
    "/users/{email}",
    response_model=OperationResult,
    status_code=status.HTTP_200_OK,
    summary="Update a user",
    description="Updates the name, birth date or phone number of a user"
)
def update_user(email: str, user_data: UserUpdate, db: Session = Depends(get_db)):
    """
    Update a user.

    Args:
        email: The user's email
        user_data: The fields to change
        db: Database session

    Returns:
        OperationResult: Confirmation message

    Raises:
        NotFoundError: If the user does not exist
    """
    UserService(db).update_user(email, user_data)
    return OperationResult(message=f"User {email} updated")


@router.put(
    "/users/{email}/role",
    response_model=OperationResult,
    status_code=status.HTTP_200_OK,
    summary="Change a user's role",
    description="Switches a user between subscriber, free user and plain user"
)
def change_user_role(email: str, role_change: RoleChange, db: Session = Depends(get_db)):
    role = UserService(db).change_role(email, role_change)
    return OperationResult(message=f"User {email} is now {role.value}")


@router.delete(
    "/users/{email}",
    response_model=OperationResult,
    status_code=status.HTTP_200_OK,
    summary="Delete a user",
    description="Deletes a user and every row that references it"
)
def delete_user(email: str, db: Session = Depends(get_db)):
    """
    Delete a user.

    Ratings, watch records, role rows, billing data, phones and owned
    subscriptions go with it. Unknown emails are accepted.

    Args:
        email: The user's email
        db: Database session

    Returns:
        OperationResult: Confirmation message
    """
    UserService(db).delete_user(email)
    return OperationResult(message=f"User {email} deleted")
