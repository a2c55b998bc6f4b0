"""
Модуль аудит-логирования для Eco Habit Tracker
Логирует изменения привычек и записей (CREATE, UPDATE, ARCHIVE) с user_id и correlation_id
"""

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Optional

from ecohabits.config import AUDIT_LOG_ACTIONS, AUDIT_LOG_ENABLED, AUDIT_LOG_PATH

audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)
audit_logger.propagate = False

# Формат логов: JSON для удобства парсинга
formatter = logging.Formatter(
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "message": %(message)s}'
)

_audit_dir = os.path.dirname(AUDIT_LOG_PATH)
if _audit_dir:
    os.makedirs(_audit_dir, exist_ok=True)
file_handler = logging.FileHandler(AUDIT_LOG_PATH)
file_handler.setFormatter(formatter)
audit_logger.addHandler(file_handler)

console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
audit_logger.addHandler(console_handler)


def log_audit_event(
    action: str,
    resource_type: str,
    resource_id: Optional[str],
    user_id: Optional[str],
    correlation_id: Optional[str] = None,
    details: Optional[dict] = None,
    status: str = "success",
) -> None:
    """
    Логирование аудит-события

    Args:
        action: Тип действия (CREATE, UPDATE, ARCHIVE)
        resource_type: Тип ресурса (eco_habit, eco_habit_log, user)
        resource_id: ID ресурса
        user_id: ID пользователя, выполнившего действие
        correlation_id: ID для корреляции запросов
        details: Дополнительные детали операции
        status: Статус операции (success, failure)
    """
    if not AUDIT_LOG_ENABLED:
        return

    if action not in AUDIT_LOG_ACTIONS:
        return

    audit_data = {
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "user_id": user_id,
        "correlation_id": correlation_id or str(uuid.uuid4()),
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if details:
        audit_data["details"] = details

    audit_logger.info(json.dumps(audit_data, default=str))


def log_create(
    resource_type: str, resource_id: str, user_id: str, details: Optional[dict] = None
) -> None:
    """Логирование создания ресурса"""
    log_audit_event("CREATE", resource_type, resource_id, user_id, details=details)


def log_update(
    resource_type: str, resource_id: str, user_id: str, details: Optional[dict] = None
) -> None:
    """Логирование обновления ресурса"""
    log_audit_event("UPDATE", resource_type, resource_id, user_id, details=details)


def log_archive(resource_type: str, resource_id: str, user_id: str) -> None:
    """Логирование архивации (мягкого удаления)"""
    log_audit_event("ARCHIVE", resource_type, resource_id, user_id)


def log_failed_operation(
    action: str,
    resource_type: str,
    user_id: Optional[str],
    error: str,
    correlation_id: Optional[str] = None,
) -> None:
    """Логирование неудачной операции"""
    log_audit_event(
        action=action,
        resource_type=resource_type,
        resource_id=None,
        user_id=user_id,
        correlation_id=correlation_id,
        details={"error": error},
        status="failure",
    )
