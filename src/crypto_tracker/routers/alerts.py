"""Price alert routes, scoped to the calling user."""
from dependency_injector.wiring import inject
from fastapi import APIRouter, Response

from crypto_tracker.container import AlertsServiceDep
from crypto_tracker.deps import CurrentUserId
from crypto_tracker.schemas.alerts import (
    CreateAlertRequest,
    PriceAlertRead,
    ToggleAlertRequest,
    UpdateAlertRequest,
)

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.post("", response_model=PriceAlertRead, status_code=201)
@inject
async def create_alert(
    body: CreateAlertRequest,
    user_id: CurrentUserId,
    service: AlertsServiceDep,
) -> PriceAlertRead:
    """Create an active alert for the caller."""
    return await service.create_alert(user_id, body)


@router.get("", response_model=list[PriceAlertRead])
@inject
async def list_alerts(user_id: CurrentUserId, service: AlertsServiceDep) -> list[PriceAlertRead]:
    """The caller's alerts, newest first."""
    return await service.list_alerts(user_id)


@router.patch("/{alert_id}", response_model=PriceAlertRead)
@inject
async def update_alert(
    alert_id: str,
    body: UpdateAlertRequest,
    user_id: CurrentUserId,
    service: AlertsServiceDep,
) -> PriceAlertRead:
    """Change condition, target price or active flag."""
    return await service.update_alert(user_id, alert_id, body)


@router.patch("/{alert_id}/toggle", response_model=PriceAlertRead)
@inject
async def toggle_alert(
    alert_id: str,
    body: ToggleAlertRequest,
    user_id: CurrentUserId,
    service: AlertsServiceDep,
) -> PriceAlertRead:
    """Switch an alert on or off."""
    return await service.toggle_alert(user_id, alert_id, body.is_active)


@router.delete("/{alert_id}", status_code=204)
@inject
async def delete_alert(
    alert_id: str,
    user_id: CurrentUserId,
    service: AlertsServiceDep,
) -> Response:
    await service.delete_alert(user_id, alert_id)
    return Response(status_code=204)
