import pytest
from cryptography.fernet import Fernet

from pulse.auth.verify import auth_dependency
from pulse.config import settings
from tests.fakes import USER_EMAIL, USER_ID, FakeTokenService, InMemoryRelationshipStore


@pytest.fixture(autouse=True)
def encryption_key(monkeypatch):
    monkeypatch.setattr(settings, "ENCRYPTION_KEY", Fernet.generate_key().decode())


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": USER_ID, "email": USER_EMAIL}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


@pytest.fixture
def relationship_store():
    return InMemoryRelationshipStore()


@pytest.fixture
def token_service():
    return FakeTokenService()
