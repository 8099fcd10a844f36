from typing import List

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from dashboard.config import settings
from dashboard.dependencies import get_dashboard_service, get_identity
from dashboard.logging_config import get_logger
from dashboard.schemas import Identity, PreviewRequest, PreviewResult, ProviderDescription
from dashboard.services.dashboard_service import DashboardService

logger = get_logger(__name__)
router = APIRouter(tags=["services"])


@router.get("/version")
def get_version():
    return {"version": settings.APP_VERSION}


@router.get("/services", response_model=List[ProviderDescription])
def get_services(
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """List the providers accounts can be linked with"""
    return service.services()


@router.get("/services/{provider}/register")
def register_service(
    provider: str,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """
    Starts linking an account of the given provider.
    Returns the URL of the provider's consent page.
    """
    return {"authorization_url": service.service_register(caller, provider)}


@router.get("/services/{provider}/callback")
def service_callback(
    provider: str,
    code: str = Query("", description="Authorization code from the provider"),
    state: str = Query(..., description="State sent when the flow started"),
    service: DashboardService = Depends(get_dashboard_service)
):
    """
    Handles the OAuth2 redirect of a provider.
    The state identifies the user who started the flow.
    """
    logger.info(f"Callback received from {provider}")
    user_id = service.handle_oauth2_callback(provider, state, code)

    accounts = service.associated_service_accounts(Identity(user_id=user_id), user_id, provider)
    if accounts:
        url = f"{service.settings.FRONTEND_BASE_URL}/users/{user_id}/accounts/{accounts[-1].id}"
    else:
        url = f"{service.settings.FRONTEND_BASE_URL}/services/{provider}/register"

    logger.info(f"Redirecting to {url}")
    return RedirectResponse(url=url)


@router.post("/preview", response_model=PreviewResult)
def preview(
    body: PreviewRequest,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Fetch a feed without storing it"""
    return service.preview(caller, body.url)
