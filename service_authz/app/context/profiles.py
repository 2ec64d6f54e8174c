"""
Caller profile lookup used by the enhancement pipeline.
"""

from typing import Dict, Iterable, Optional, Protocol

from shared.errors import AuthenticationError
from shared.logging import get_logger
from .models import UserProfile


class UserProfileProvider(Protocol):
    """Anything able to load a caller profile from a token subject."""

    async def get_user_from_subject(self, subject: str) -> UserProfile:
        ...


class InMemoryUserProfileStore:
    """Profile provider backed by a dictionary keyed on token subject."""

    def __init__(self, profiles: Optional[Iterable[UserProfile]] = None):
        self.logger = get_logger("authz.profiles")
        self._profiles: Dict[str, UserProfile] = {}
        for profile in profiles or ():
            self.add_profile(profile)

    def add_profile(self, profile: UserProfile) -> None:
        self._profiles[profile.authz_sub] = profile

    def remove_profile(self, subject: str) -> bool:
        return self._profiles.pop(subject, None) is not None

    async def get_user_from_subject(self, subject: str) -> UserProfile:
        profile = self._profiles.get(subject)
        if profile is None:
            self.logger.warning("No profile for token subject", subject=subject)
            raise AuthenticationError("Unknown token subject", details={"subject": subject})

        return profile

    def __len__(self) -> int:
        return len(self._profiles)
