"""Current-user preference routes."""
from dependency_injector.wiring import inject
from fastapi import APIRouter

from crypto_tracker.container import UsersServiceDep
from crypto_tracker.deps import CurrentUserId
from crypto_tracker.schemas.alerts import NotificationSettings

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/notifications", response_model=NotificationSettings)
@inject
async def get_notification_settings(
    user_id: CurrentUserId, service: UsersServiceDep
) -> NotificationSettings:
    return await service.get_notification_settings(user_id)


@router.put("/me/notifications", response_model=NotificationSettings)
@inject
async def update_notification_settings(
    body: NotificationSettings,
    user_id: CurrentUserId,
    service: UsersServiceDep,
) -> NotificationSettings:
    """Turn price-alert emails on or off."""
    return await service.update_notification_settings(user_id, body)
