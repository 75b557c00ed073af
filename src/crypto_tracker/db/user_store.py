"""SQLModel-backed store for user contact details and preferences."""
import asyncio

from sqlalchemy.engine import Engine

from crypto_tracker.db.models import UserProfile, utcnow
from crypto_tracker.db.sessions import get_session


class SqlUserStore:
    """Local user profiles keyed by the identity provider's user id."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def get_email(self, user_id: str) -> str | None:
        profile = await asyncio.to_thread(self._get_profile_sync, user_id)
        return profile.email if profile is not None else None

    async def save_email(self, user_id: str, email: str) -> None:
        await asyncio.to_thread(self._upsert_sync, user_id, email=email)

    async def is_email_notification_enabled(self, user_id: str) -> bool:
        """Unknown users get notifications (the default preference)."""
        profile = await asyncio.to_thread(self._get_profile_sync, user_id)
        return profile.email_notifications if profile is not None else True

    async def set_email_notifications(self, user_id: str, enabled: bool) -> None:
        await asyncio.to_thread(self._upsert_sync, user_id, email_notifications=enabled)

    def _get_profile_sync(self, user_id: str) -> UserProfile | None:
        with get_session(self._engine) as session:
            return session.get(UserProfile, user_id)

    def _upsert_sync(self, user_id: str, **changes: object) -> None:
        with get_session(self._engine) as session:
            profile = session.get(UserProfile, user_id)
            if profile is None:
                profile = UserProfile(user_id=user_id)
            for field, value in changes.items():
                setattr(profile, field, value)
            profile.updated_at = utcnow()
            session.add(profile)
