# tests/conftest.py
import os
import sys
import tempfile
import time
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# ВАЖНО: Установить переменные окружения ДО импорта модулей приложения
os.environ["RATE_LIMIT_ENABLED"] = "false"  # Отключаем rate limiting для тестов
os.environ["DATABASE_URL"] = "sqlite:///./test.db"  # Локальная файловая SQLite для тестов
os.environ.setdefault("AUDIT_LOG_PATH", str(Path(tempfile.gettempdir()) / "ecohabits-audit.log"))

ROOT = Path(__file__).resolve().parents[1]  # корень репозитория
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Пересоздание схемы БД перед тестами
from ecohabits import models  # noqa: E402, F401
from ecohabits.database import Base, SessionLocal, engine  # noqa: E402
from ecohabits.models import CallerContext  # noqa: E402

Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)


@pytest.fixture(scope="session")
def test_client():
    """Создать тестовый клиент FastAPI"""
    from ecohabits.main import app

    return TestClient(app)


@pytest.fixture(scope="function")
def db_session():
    """Сессия БД для тестов уровня действий"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def caller():
    """Контекст нового пользователя (уникальный для каждого теста)"""
    return CallerContext(user_id=str(uuid.uuid4()))


@pytest.fixture(scope="function")
def other_caller():
    """Контекст второго пользователя"""
    return CallerContext(user_id=str(uuid.uuid4()))


def _unique_credentials():
    timestamp = str(int(time.time() * 1000000))  # микросекунды для уникальности
    return {
        "username": f"testuser_{timestamp}_{uuid.uuid4().hex[:6]}",
        "password": "TestPassword123!",
    }


def _login_headers(client, credentials):
    register_response = client.post("/register", json=credentials)
    if register_response.status_code not in [201, 409]:
        raise Exception(f"Registration failed: {register_response.json()}")

    login_response = client.post(
        "/login",
        data={  # OAuth2 требует form data, не JSON
            "username": credentials["username"],
            "password": credentials["password"],
        },
    )
    assert login_response.status_code == 200, f"Login failed: {login_response.json()}"

    return {"Authorization": f"Bearer {login_response.json()['access_token']}"}


@pytest.fixture(scope="function")
def test_user_credentials():
    """Тестовые учетные данные пользователя (уникальные для каждого теста)"""
    return _unique_credentials()


@pytest.fixture(scope="function")
def authenticated_client(test_client, test_user_credentials):
    """Создать аутентифицированного клиента с JWT токеном"""
    headers = _login_headers(test_client, test_user_credentials)

    test_client.headers = {**test_client.headers, **headers}

    yield test_client

    # Очистка: удаляем заголовок авторизации
    if "Authorization" in test_client.headers:
        del test_client.headers["Authorization"]


@pytest.fixture(scope="function")
def other_user_headers(test_client):
    """Заголовки авторизации второго пользователя"""
    return _login_headers(test_client, _unique_credentials())
