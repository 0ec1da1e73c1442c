"""Display identity lookup (username and avatar) for numeric user ids.

Local `users` rows are consulted first; anything missing is fetched from the
external user-info API. Lookups never raise: an unreachable API simply yields
an identity with empty fields, and callers fall back to placeholder names.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional
import requests
from dotenv import load_dotenv

from noticedesk.database.user_repository import UserRepository
from noticedesk.integrations.ttl_cache import TTLCache

load_dotenv()

logger = logging.getLogger(__name__)

USER_INFO_API_BASE = os.getenv("USER_INFO_API_BASE", "https://users.roblox.com")
THUMBNAIL_API_BASE = os.getenv("THUMBNAIL_API_BASE", "https://thumbnails.roblox.com")
USER_INFO_TIMEOUT_SEC = float(os.getenv("USER_INFO_TIMEOUT_SEC", "5"))
IDENTITY_CACHE_TTL_SEC = float(os.getenv("IDENTITY_CACHE_TTL_SEC", "300"))
IDENTITY_CACHE_MAX_ENTRIES = int(os.getenv("IDENTITY_CACHE_MAX_ENTRIES", "2048"))


@dataclass(frozen=True)
class DisplayIdentity:
    user_id: int
    username: Optional[str] = None
    picture: Optional[str] = None


def build_identity_cache() -> TTLCache:
    """Cache configured from the environment."""
    return TTLCache(ttl_seconds=IDENTITY_CACHE_TTL_SEC, max_entries=IDENTITY_CACHE_MAX_ENTRIES)


class UserInfoClient:
    """Client for the external user-info and avatar-thumbnail APIs."""

    def __init__(
        self,
        users_api_base: Optional[str] = None,
        thumbnails_api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.users_api_base = (users_api_base or USER_INFO_API_BASE).rstrip("/")
        self.thumbnails_api_base = (thumbnails_api_base or THUMBNAIL_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else USER_INFO_TIMEOUT_SEC
        self.session = session or requests.Session()

    def fetch_username(self, user_id: int) -> Optional[str]:
        """Return the username for `user_id`, or None if it can't be fetched."""
        url = f"{self.users_api_base}/v1/users/{user_id}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json().get("name")
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Username lookup failed for {user_id}: {type(e).__name__}: {e}")
            return None

    def fetch_thumbnail(self, user_id: int) -> Optional[str]:
        """Return an avatar headshot URL for `user_id`, or None."""
        url = f"{self.thumbnails_api_base}/v1/users/avatar-headshot"
        params = {"userIds": str(user_id), "size": "150x150", "format": "Png"}
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json().get("data") or []
            return data[0].get("imageUrl") if data else None
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.warning(f"Thumbnail lookup failed for {user_id}: {type(e).__name__}: {e}")
            return None


class IdentityResolver:
    """Resolve display identities through local storage, the external API, and a TTL cache."""

    def __init__(
        self,
        users: UserRepository,
        cache: TTLCache,
        client: Optional[UserInfoClient] = None,
    ):
        self.users = users
        self.cache = cache
        self.client = client

    def resolve(self, user_id: int) -> DisplayIdentity:
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached

        username = None
        picture = None
        try:
            local = self.users.get(user_id)
        except Exception as e:
            logger.warning(f"Local user lookup failed for {user_id}: {type(e).__name__}: {e}")
            local = None
        if local:
            username, picture = local.username, local.picture

        if self.client is not None:
            if not username:
                username = self.client.fetch_username(user_id)
            if not picture:
                picture = self.client.fetch_thumbnail(user_id)

        identity = DisplayIdentity(user_id=user_id, username=username, picture=picture)
        self.cache.set(user_id, identity)
        return identity

    def invalidate(self, user_id: int) -> None:
        self.cache.invalidate(user_id)
