"""Shared test fixtures and configuration for backend tests.

Every test runs against its own DuckDB file and upload directory under
pytest's tmp_path, with fresh service singletons and an empty refresh-token
registry.
"""
import pytest
from fastapi.testclient import TestClient

from filekeeper.auth.registry import (
    InMemoryRefreshTokenRegistry,
    get_refresh_registry,
    set_refresh_registry,
)
from filekeeper.auth.service import UserStore
from filekeeper.auth.tokens import TokenService
from filekeeper.config import AppConfig, set_config
from filekeeper.database import Database
from filekeeper.files.service import FileMetadataStore
from filekeeper.files.storage import BlobStorage
from filekeeper.main import app

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


def _reset_singletons() -> None:
    UserStore.reset_instance()
    FileMetadataStore.reset_instance()
    BlobStorage.reset_instance()
    Database.reset_instance()


@pytest.fixture(autouse=True)
def app_config(tmp_path):
    """Install an isolated config for the duration of a test."""
    config = AppConfig()
    config.database.path = str(tmp_path / "filekeeper.duckdb")
    config.files.upload_dir = str(tmp_path / "uploads")
    config.auth.bcrypt_rounds = 4
    config.secrets.jwt.access_secret = ACCESS_SECRET
    config.secrets.jwt.refresh_secret = REFRESH_SECRET

    set_config(config)
    _reset_singletons()
    set_refresh_registry(InMemoryRefreshTokenRegistry())

    yield config

    _reset_singletons()
    set_refresh_registry(None)
    set_config(None)


@pytest.fixture
def registry():
    """The in-memory refresh-token registry installed for this test."""
    return get_refresh_registry()


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app."""
    return TestClient(app)


@pytest.fixture
def token_service(app_config) -> TokenService:
    return TokenService.from_config(app_config)


@pytest.fixture
def auth_headers(token_service):
    """Bearer headers carrying a valid access token for user 1."""
    return {"Authorization": f"Bearer {token_service.issue_access(1)}"}


@pytest.fixture
def upload_dir(app_config):
    return app_config.files.upload_dir
