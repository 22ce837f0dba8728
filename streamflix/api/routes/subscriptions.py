"""
Subscriptions and plans API endpoints.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from streamflix.db.session import get_db
from streamflix.schemas.base import OperationResult
from streamflix.schemas.subscription import (
    Plan,
    Subscription,
    SubscriptionCreate,
    SubscriptionCreated,
    SubscriptionUpdate,
)
from streamflix.services.query_service import QueryService
from streamflix.services.subscription_service import SubscriptionService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/subscriptions",
    response_model=List[Subscription],
    status_code=status.HTTP_200_OK,
    summary="List subscriptions",
    description="Returns subscriptions with owner, plan, billing address and masked card"
)
def list_subscriptions(db: Session = Depends(get_db)):
    """
    List subscriptions.

    Args:
        db: Database session

    Returns:
        List[Subscription]: Subscriptions, newest start date first
    """
    return QueryService(db).list_subscriptions()


@router.post(
    "/subscriptions",
    response_model=SubscriptionCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create a subscription",
    description="Subscribes a user to a plan for one year, making the user a subscriber"
)
def create_subscription(subscription_data: SubscriptionCreate, db: Session = Depends(get_db)):
    """
    Create a subscription.

    Args:
        subscription_data: Owner, plan, optional start date, billing address and card
        db: Database session

    Returns:
        SubscriptionCreated: The new subscription id

    Raises:
        NotFoundError: If the user does not exist
        ValidationError: If the plan is unknown or the card number is invalid
        ConflictError: If the user already has an active subscription
    """
    sub_id = SubscriptionService(db).create_subscription(subscription_data)
    return SubscriptionCreated(message=f"Subscription {sub_id} created", sub_id=sub_id)


@router.put(
    "/subscriptions/{sub_id}",
    response_model=OperationResult,
    status_code=status.HTTP_200_OK,
    summary="Update a subscription",
    description="Changes plan, start date, status, billing address or card of a subscription"
)
def update_subscription(
    sub_id: int,
    subscription_data: SubscriptionUpdate,
    db: Session = Depends(get_db)
):
    SubscriptionService(db).update_subscription(sub_id, subscription_data)
    return OperationResult(message=f"Subscription {sub_id} updated")


@router.get(
    "/plans",
    response_model=List[Plan],
    status_code=status.HTTP_200_OK,
    summary="List plans"
)
def list_plans(db: Session = Depends(get_db)):
    return QueryService(db).list_plans()
