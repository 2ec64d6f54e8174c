"""
Shared fixtures for Authz service tests.
"""

import pytest

from service_authz.app.context.models import AuthzToken, UserProfile
from service_authz.app.context.profiles import InMemoryUserProfileStore


@pytest.fixture
def user_profile():
    """Caller profile with one team in one company."""
    return UserProfile(
        id="user-1",
        authz_sub="auth0|user-1",
        first_name="Ada",
        role="analyst",
        team_ids=("team-1",),
        company_ids=("company-1",),
    )


@pytest.fixture
def profile_store(user_profile):
    """In-memory profile store holding the caller profile."""
    return InMemoryUserProfileStore([user_profile])


@pytest.fixture
def token_claims():
    """Raw claims of a verified token."""
    return {
        "iss": "https://auth.example.com/",
        "sub": "auth0|user-1",
        "aud": ["https://api.example.com"],
        "iat": 1700000000,
        "exp": 1700003600,
        "azp": "client-1",
        "scope": "openid profile",
        "permissions": [
            "KEY_RESULT:READ:COMPANY",
            "KEY_RESULT:READ:TEAM",
            "KEY_RESULT:UPDATE:OWNS",
            "KEY_RESULT_COMMENT:CREATE:TEAM",
            "KEY_RESULT_COMMENT:READ:COMPANY",
            "KEY_RESULT_COMMENT:DELETE:OWNS",
            "USER:READ:COMPANY",
        ],
    }


@pytest.fixture
def token(token_claims):
    """Verified token model."""
    return AuthzToken.model_validate(token_claims)
