"""
Конфигурация Eco Habit Tracker
Все параметры читаются из переменных окружения один раз при импорте
"""

import os


def _env_bool(name: str, default: bool) -> bool:
    """Прочитать булев флаг из окружения (1/true/yes/on)"""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> set[str]:
    """Прочитать список значений через запятую"""
    raw = os.getenv(name, default)
    return {item.strip().upper() for item in raw.split(",") if item.strip()}


# База данных
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./eco_habits.db")

# JWT аутентификация
AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUTH_JWT_EXPIRATION_MINUTES = int(os.getenv("AUTH_JWT_EXPIRATION_MINUTES", "60"))

# Аудит-логирование
AUDIT_LOG_ENABLED = _env_bool("AUDIT_LOG_ENABLED", True)
AUDIT_LOG_ACTIONS = _env_list("AUDIT_LOG_ACTIONS", "CREATE,UPDATE,ARCHIVE")
AUDIT_LOG_PATH = os.getenv("AUDIT_LOG_PATH", "audit.log")

# Формат ошибок: RFC 7807 или старый {"error": {...}}
USE_RFC7807_ERRORS = _env_bool("USE_RFC7807_ERRORS", True)

# Ограничение частоты запросов
RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", True)
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "100"))

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
