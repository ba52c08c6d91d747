"""User provisioning after external identity verification."""

import logging
import uuid

from metered_api.auth.api_keys import generate_api_key, mask_api_key
from metered_api.config import get_settings
from metered_api.errors.exceptions import StorageError
from metered_api.models.user import User
from metered_api.storage.base import CredentialStore
from metered_api.storage.manager import get_storage

logger = logging.getLogger(__name__)


class UserService:
    """Creates users and issues their API keys."""

    def __init__(self, store: CredentialStore | None = None):
        self._store = store

    @property
    def credentials(self) -> CredentialStore:
        """Get credential store."""
        if self._store is None:
            self._store = get_storage().credentials
        return self._store

    async def provision_user(
        self,
        external_id: str,
        email: str,
        name: str | None = None,
        image: str | None = None,
    ) -> User:
        """
        Return the user for a verified identity, creating it on first sign-in.

        New users get a fresh API key and the configured starting credits.
        For returning users only the display name and avatar are refreshed;
        the API key and credit state are never touched here.
        """
        existing = await self.credentials.get_by_external_id(external_id)
        if existing is not None:
            if existing.name != name or existing.image != image:
                refreshed = await self.credentials.update_profile(existing.id, name, image)
                logger.info("Updated profile for user %s", existing.id)
                return refreshed or existing
            return existing

        settings = get_settings()
        user = User(
            id=f"user_{uuid.uuid4().hex[:12]}",
            api_key=generate_api_key(settings.api_key_prefix),
            email=email,
            name=name,
            image=image,
            external_id=external_id,
            credits=settings.initial_credits,
        )

        try:
            await self.credentials.create_user(user)
        except StorageError:
            # A concurrent sign-in for the same identity may have won
            winner = await self.credentials.get_by_external_id(external_id)
            if winner is None:
                raise
            return winner

        logger.info(
            "Provisioned user %s with key %s",
            user.id,
            mask_api_key(user.api_key, settings.api_key_prefix),
        )
        return user


# Singleton instance
_user_service: UserService | None = None


def get_user_service() -> UserService:
    """Get user service instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service


def reset_user_service() -> None:
    """Reset user service (for testing)."""
    global _user_service
    _user_service = None
