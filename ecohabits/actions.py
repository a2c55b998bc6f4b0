"""
Действия Eco Habit Tracker
Единая точка входа: аутентификация, валидация ввода, проверка владельца,
конверт ответа {"success": True, "data": ...}
"""

import logging
import uuid
from typing import Any, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from ecohabits import audit, habit_log_store, habit_store
from ecohabits.errors import not_found, unauthorized, validation_error
from ecohabits.metrics import track_habit_archived, track_habit_created, track_habit_logged
from ecohabits.models import (
    CallerContext,
    EcoHabit,
    HabitArchive,
    HabitCreate,
    HabitListQuery,
    HabitLogListQuery,
    HabitLogResponse,
    HabitLogUpsert,
    HabitResponse,
    HabitUpdate,
)

logger = logging.getLogger(__name__)

Payload = Optional[Union[dict[str, Any], BaseModel]]
M = TypeVar("M", bound=BaseModel)


def new_id() -> str:
    return str(uuid.uuid4())


def require_user(context: Optional[CallerContext]) -> str:
    """
    Идентификатор вызывающего пользователя

    Raises:
        ActionError: UNAUTHORIZED, если в контексте нет пользователя
    """
    if context is None or not context.user_id:
        raise unauthorized()
    return context.user_id


def _parse(model: Type[M], payload: Payload) -> M:
    try:
        return model.model_validate(payload if payload is not None else {})
    except ValidationError as exc:
        raise validation_error(exc) from exc


def _owned_habit(db: Session, habit_id: str, user_id: str, action: str) -> EcoHabit:
    """Привычка, перечитанная с фильтром по владельцу"""
    habit = habit_store.get_habit(db, habit_id, user_id)
    if habit is None:
        audit.log_failed_operation(action, "eco_habit", user_id, f"habit {habit_id} not found")
        raise not_found("Habit not found.")
    return habit


def _success(data: dict[str, Any]) -> dict[str, Any]:
    return {"success": True, "data": data}


def create_habit(db: Session, context: Optional[CallerContext], payload: Payload) -> dict:
    """Создать привычку → {"habitId"}"""
    user_id = require_user(context)
    data = _parse(HabitCreate, payload)

    habit_id = new_id()
    habit_store.create_habit(db, habit_id, user_id, data.model_dump())

    track_habit_created()
    audit.log_create("eco_habit", habit_id, user_id, details={"name": data.name})
    logger.info("Habit %s created", habit_id)

    return _success({"habitId": habit_id})


def update_habit(db: Session, context: Optional[CallerContext], payload: Payload) -> dict:
    """
    Частичное обновление привычки → {"habitId"}

    Пустой набор изменений отклоняется валидацией до обращения к хранилищу
    """
    user_id = require_user(context)
    data = _parse(HabitUpdate, payload)
    changes = data.changes()

    _owned_habit(db, data.id, user_id, "UPDATE")
    habit_store.update_habit(db, data.id, user_id, changes)

    audit.log_update(
        "eco_habit", data.id, user_id, details={"updated_fields": sorted(changes)}
    )

    return _success({"habitId": data.id})


def archive_habit(db: Session, context: Optional[CallerContext], payload: Payload) -> dict:
    """Архивировать привычку (is_active=False) → {"habitId"}"""
    user_id = require_user(context)
    data = _parse(HabitArchive, payload)

    _owned_habit(db, data.id, user_id, "ARCHIVE")
    habit_store.archive_habit(db, data.id, user_id)

    track_habit_archived()
    audit.log_archive("eco_habit", data.id, user_id)
    logger.info("Habit %s archived", data.id)

    return _success({"habitId": data.id})


def list_my_habits(db: Session, context: Optional[CallerContext], payload: Payload = None) -> dict:
    """Привычки вызывающего → {"items", "total"}"""
    user_id = require_user(context)
    data = _parse(HabitListQuery, payload)

    habits = habit_store.list_habits(db, user_id, include_inactive=data.include_inactive)
    items = [HabitResponse.model_validate(h).model_dump(by_alias=True) for h in habits]

    return _success({"items": items, "total": len(items)})


def upsert_habit_log(db: Session, context: Optional[CallerContext], payload: Payload) -> dict:
    """
    Создать или обновить запись о выполнении → {"logId", "mode"}

    Ветвление только по наличию id записи: без id всегда создается новая запись.
    Привычка из habitId проверяется на владельца в обоих случаях.
    """
    user_id = require_user(context)
    data = _parse(HabitLogUpsert, payload)

    _owned_habit(db, data.habit_id, user_id, "UPDATE" if data.id else "CREATE")

    if data.id:
        habit_log_store.update_log(
            db,
            data.id,
            user_id,
            habit_id=data.habit_id,
            log_date=data.log_date,
            quantity=data.quantity,
            notes=data.notes,
        )
        track_habit_logged("updated")
        audit.log_update("eco_habit_log", data.id, user_id, details={"habit_id": data.habit_id})
        return _success({"logId": data.id, "mode": "updated"})

    log_id = new_id()
    habit_log_store.create_log(
        db,
        log_id,
        data.habit_id,
        user_id,
        log_date=data.log_date,
        quantity=data.quantity,
        notes=data.notes,
    )
    track_habit_logged("created")
    audit.log_create("eco_habit_log", log_id, user_id, details={"habit_id": data.habit_id})

    return _success({"logId": log_id, "mode": "created"})


def list_habit_logs(db: Session, context: Optional[CallerContext], payload: Payload = None) -> dict:
    """Записи вызывающего, опционально по одной привычке → {"items", "total"}"""
    user_id = require_user(context)
    data = _parse(HabitLogListQuery, payload)
    habit_id = data.habit_id or None

    if habit_id:
        _owned_habit(db, habit_id, user_id, "READ")

    logs = habit_log_store.list_logs(db, user_id, habit_id=habit_id)
    items = [HabitLogResponse.model_validate(log).model_dump(by_alias=True) for log in logs]

    return _success({"items": items, "total": len(items)})


ACTIONS = {
    "createHabit": create_habit,
    "updateHabit": update_habit,
    "archiveHabit": archive_habit,
    "listMyHabits": list_my_habits,
    "upsertHabitLog": upsert_habit_log,
    "listHabitLogs": list_habit_logs,
}
