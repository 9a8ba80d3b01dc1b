import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from gatekeep.app import create_app
from gatekeep.config import Settings
from gatekeep.infra.account_repo import AccountRepo
from gatekeep.infra.db import init_db
from gatekeep.infra.session_repo import SessionRepo
from gatekeep.services.account_service import AccountService
from gatekeep.services.session_service import SessionManager


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file under tmp_path."""
    return Settings(
        secret_key="test-secret-key",
        db_path=tmp_path / "data" / "app.db",
        log_level="WARNING",
    )


@pytest.fixture()
def account_repo(settings: Settings) -> AccountRepo:
    init_db(settings.db_path)
    return AccountRepo(settings.db_path)


@pytest.fixture()
def session_repo(settings: Settings, account_repo: AccountRepo) -> SessionRepo:
    return SessionRepo(settings.db_path)


@pytest.fixture()
def account_service(account_repo: AccountRepo) -> AccountService:
    return AccountService(account_repo)


@pytest.fixture()
def session_manager(session_repo: SessionRepo, account_repo: AccountRepo) -> SessionManager:
    return SessionManager(session_repo, account_repo)


@pytest.fixture()
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)
