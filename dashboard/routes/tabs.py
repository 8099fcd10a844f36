from typing import List

from fastapi import APIRouter, Body, Depends, status

from dashboard.dependencies import get_dashboard_service, get_identity
from dashboard.logging_config import get_logger
from dashboard.schemas import Identity, Tab, TabSummary, Widget, WidgetConfig, WidgetCreate
from dashboard.services.dashboard_service import DashboardService

logger = get_logger(__name__)
router = APIRouter(prefix="/tabs", tags=["tabs"])


@router.post("", response_model=Tab, status_code=status.HTTP_201_CREATED)
def create_tab(
    summary: TabSummary,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Create a new tab with empty columns"""
    return service.new_tab(caller, summary)


@router.get("/{tab_id}", response_model=Tab)
def get_tab(
    tab_id: int,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.tab(caller, tab_id)


@router.post("/{tab_id}", response_model=Tab)
def edit_tab(
    tab_id: int,
    summary: TabSummary,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.edit_tab(caller, tab_id, summary)


@router.delete("/{tab_id}")
def delete_tab(
    tab_id: int,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return {"success": service.delete_tab(caller, tab_id)}


@router.post("/{tab_id}/widgets", response_model=Widget, status_code=status.HTTP_201_CREATED)
def create_widget(
    tab_id: int,
    widget: WidgetCreate,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Add a feed or email widget to the first column of a tab"""
    return service.new_widget(caller, tab_id, widget.to_widget())


@router.get("/{tab_id}/widgets/{widget_id}", response_model=Widget)
def get_widget(
    tab_id: int,
    widget_id: int,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.widget(caller, tab_id, widget_id)


@router.post("/{tab_id}/widgets/{widget_id}", response_model=Widget)
def edit_widget(
    tab_id: int,
    widget_id: int,
    config: WidgetConfig,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return service.edit_widget(caller, tab_id, widget_id, config)


@router.delete("/{tab_id}/widgets/{widget_id}")
def delete_widget(
    tab_id: int,
    widget_id: int,
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    return {"success": service.delete_widget(caller, tab_id, widget_id)}


@router.post("/{tab_id}/layout", response_model=List[List[int]])
def update_layout(
    tab_id: int,
    layout: List[List[int]] = Body(...),
    caller: Identity = Depends(get_identity),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Rearrange the widgets of a tab; the layout must use every widget exactly once"""
    return service.update_layout(caller, tab_id, layout)
