"""
Ошибки действий и обработчики с поддержкой RFC 7807 Problem Details
Маскирование внутренних деталей, correlation_id, карта типов ошибок
"""

import logging
import re
import uuid
from enum import Enum
from typing import Optional, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ecohabits.config import ENVIRONMENT, USE_RFC7807_ERRORS

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Машиночитаемый вид ошибки"""

    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"


STATUS_BY_KIND = {
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: 422,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ActionError(Exception):
    """Типизированная ошибка действия"""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        issues: Optional[list[dict]] = None,
        correlation_id: Optional[str] = None,
    ):
        self.kind = ErrorKind(kind)
        self.message = message
        self.issues = issues or []
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


def unauthorized(message: str = "You must be signed in to perform this action.") -> ActionError:
    return ActionError(ErrorKind.UNAUTHORIZED, message)


def not_found(message: str) -> ActionError:
    return ActionError(ErrorKind.NOT_FOUND, message)


def _issues_from(exc: Union[ValidationError, RequestValidationError]) -> list[dict]:
    issues = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        issues.append({"field": field, "message": error["msg"], "type": error["type"]})
    return issues


def validation_error(exc: ValidationError) -> ActionError:
    """Преобразовать ошибку Pydantic в ActionError(VALIDATION)"""
    issues = _issues_from(exc)
    message = issues[0]["message"] if issues else "Input validation failed"
    return ActionError(ErrorKind.VALIDATION, message, issues=issues)


# Карта типов ошибок для RFC 7807
ERROR_TYPE_MAP = {
    ErrorKind.VALIDATION: {
        "type": "https://api.ecohabits.dev/errors/validation",
        "title": "Validation Error",
        "description": "Входные данные не прошли валидацию",
    },
    ErrorKind.NOT_FOUND: {
        "type": "https://api.ecohabits.dev/errors/not-found",
        "title": "Resource Not Found",
        "description": "Запрошенный ресурс не найден",
    },
    ErrorKind.CONFLICT: {
        "type": "https://api.ecohabits.dev/errors/conflict",
        "title": "Resource Conflict",
        "description": "Конфликт при создании/обновлении ресурса",
    },
    ErrorKind.UNAUTHORIZED: {
        "type": "https://api.ecohabits.dev/errors/unauthorized",
        "title": "Unauthorized",
        "description": "Требуется аутентификация",
    },
    ErrorKind.INTERNAL: {
        "type": "https://api.ecohabits.dev/errors/internal",
        "title": "Internal Server Error",
        "description": "Внутренняя ошибка сервера",
    },
}


def create_error_response(
    request: Request,
    kind: ErrorKind,
    detail: str,
    correlation_id: Optional[str] = None,
    issues: Optional[list[dict]] = None,
) -> JSONResponse:
    """
    Создание ответа об ошибке в формате RFC 7807

    Args:
        request: HTTP запрос
        kind: Вид ошибки из ERROR_TYPE_MAP
        detail: Детальное описание ошибки
        correlation_id: ID для корреляции в логах
        issues: Список ошибок валидации по полям

    Returns:
        JSONResponse с телом в формате RFC 7807
    """
    status_code = STATUS_BY_KIND[kind]
    error_info = ERROR_TYPE_MAP[kind]

    # Не раскрываем внутренние детали
    if status_code >= 500:
        detail = error_info["description"]

    problem_detail = {
        "type": error_info["type"],
        "title": error_info["title"],
        "status": status_code,
        "detail": detail,
        "instance": str(request.url.path),
        "correlation_id": correlation_id or str(uuid.uuid4()),
    }
    if issues:
        problem_detail["errors"] = issues

    return JSONResponse(status_code=status_code, content=problem_detail)


def _legacy_error_response(kind: ErrorKind, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND[kind],
        content={"error": {"code": kind.value, "message": message}},
    )


async def action_error_handler(request: Request, exc: ActionError) -> JSONResponse:
    """Обработчик ActionError с поддержкой обоих форматов"""
    if not USE_RFC7807_ERRORS:
        return _legacy_error_response(exc.kind, exc.message)

    return create_error_response(
        request=request,
        kind=exc.kind,
        detail=exc.message,
        correlation_id=exc.correlation_id,
        issues=exc.issues,
    )


async def validation_error_handler(
    request: Request, exc: Union[ValidationError, RequestValidationError]
) -> JSONResponse:
    """Ошибки валидации FastAPI на уровне транспорта (тело запроса не JSON-объект и т.п.)"""
    issues = _issues_from(exc)

    if not USE_RFC7807_ERRORS:
        return _legacy_error_response(ErrorKind.VALIDATION, issues[0]["message"])

    return create_error_response(
        request=request,
        kind=ErrorKind.VALIDATION,
        detail="Request validation failed",
        issues=issues,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Обработчик неожиданных исключений

    Маскирует детали внутренних ошибок, логирует с correlation_id
    """
    correlation_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception: %s: %s",
        type(exc).__name__,
        mask_pii_in_logs(str(exc)),
        extra={"correlation_id": correlation_id, "path": request.url.path},
    )

    if ENVIRONMENT == "production":
        detail = "Внутренняя ошибка сервера. Обратитесь к администратору."
    else:
        detail = f"Internal error: {type(exc).__name__}: {exc}"

    if not USE_RFC7807_ERRORS:
        return _legacy_error_response(ErrorKind.INTERNAL, detail)

    return create_error_response(
        request=request,
        kind=ErrorKind.INTERNAL,
        detail=detail,
        correlation_id=correlation_id,
    )


def mask_pii_in_logs(data: str) -> str:
    """
    Маскирование PII в логах

    Заменяет email, телефоны, токены на ***
    """
    data = re.sub(
        r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b",
        "***@***.***",
        data,
    )
    data = re.sub(r"\b\+?\d{10,15}\b", "***PHONE***", data)
    data = re.sub(r"\b[A-Za-z0-9_-]{20,}\.[A-Za-z0-9_-]{20,}\b", "***TOKEN***", data)
    data = re.sub(r"\b[A-Za-z0-9]{32,}\b", "***API_KEY***", data)
    return data
