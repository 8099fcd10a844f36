from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from dashboard.dependencies import get_dashboard_service, get_identity
from dashboard.logging_config import get_logger
from dashboard.schemas import (
    EmailPage,
    ExternalAccount,
    Identity,
    ItemForUser,
    MarkAsReadRequest,
    Snapshot,
    UserData,
)
from dashboard.services.dashboard_service import DashboardService

logger = get_logger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=UserData)
def get_user(
    user_id: str,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Get a user's profile and tab list"""
    return service.user(caller, user_id)


@router.get("/{user_id}/backup", response_model=Snapshot)
def backup_user(
    user_id: str,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.backup_user(caller, user_id)


@router.post("/{user_id}/restore", status_code=status.HTTP_204_NO_CONTENT)
def restore_user(
    user_id: str,
    snapshot: Snapshot,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Rebuild tabs and widgets from a backup"""
    service.restore_user(caller, user_id, snapshot)


@router.get("/{user_id}/feeds/{feed_id}/items", response_model=List[ItemForUser])
def get_feed_items(
    user_id: str,
    feed_id: int,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.feed_items(caller, user_id, feed_id)


@router.post("/{user_id}/feeds/{feed_id}")
def mark_as_read(
    user_id: str,
    feed_id: int,
    body: MarkAsReadRequest,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Mark feed items as read"""
    service.mark_as_read(caller, user_id, feed_id, body.guids)
    return {"success": True}


@router.get("/{user_id}/accounts", response_model=List[ExternalAccount])
def get_accounts(
    user_id: str,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.associated_accounts(caller, user_id)


@router.get("/{user_id}/accounts/{account_id}", response_model=ExternalAccount)
def get_account(
    user_id: str,
    account_id: int,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.associated_account(caller, user_id, account_id)


@router.delete("/{user_id}/accounts/{account_id}")
def revoke_account(
    user_id: str,
    account_id: int,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Remove a linked account and its token"""
    return {"success": service.revoke_account(caller, user_id, account_id)}


@router.get("/{user_id}/accounts/{account_id}/emails", response_model=EmailPage)
def get_emails(
    user_id: str,
    account_id: int,
    page_token: Optional[str] = Query(None, description="Token of the page to fetch"),
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.get_emails(caller, user_id, account_id, page_token)
