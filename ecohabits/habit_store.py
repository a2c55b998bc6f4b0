"""
Хранилище эко-привычек
Все запросы ограничены владельцем (user_id)
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from ecohabits.errors import not_found
from ecohabits.models import EcoHabit


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_habit(db: Session, habit_id: str, user_id: str, fields: dict[str, Any]) -> EcoHabit:
    """
    Создать привычку

    Args:
        db: Сессия базы данных
        habit_id: Сгенерированный ID привычки
        user_id: ID владельца
        fields: Значения полей привычки (name, description, ...)

    Returns:
        Созданная привычка (is_active=True, created_at == updated_at)
    """
    timestamp = _now()
    habit = EcoHabit(
        id=habit_id,
        user_id=user_id,
        **fields,
        is_active=True,
        created_at=timestamp,
        updated_at=timestamp,
    )
    db.add(habit)
    db.commit()
    db.refresh(habit)
    return habit


def get_habit(db: Session, habit_id: str, user_id: str) -> Optional[EcoHabit]:
    """Получить привычку, только если она принадлежит пользователю"""
    return (
        db.query(EcoHabit)
        .filter(EcoHabit.id == habit_id, EcoHabit.user_id == user_id)
        .first()
    )


def _get_owned_or_raise(db: Session, habit_id: str, user_id: str) -> EcoHabit:
    habit = get_habit(db, habit_id, user_id)
    if habit is None:
        raise not_found("Habit not found.")
    return habit


def apply_habit_changes(habit: EcoHabit, changes: dict[str, Any]) -> EcoHabit:
    """Перенести в привычку только переданные поля"""
    for field, value in changes.items():
        setattr(habit, field, value)
    return habit


def update_habit(db: Session, habit_id: str, user_id: str, changes: dict[str, Any]) -> EcoHabit:
    """
    Частичное обновление привычки

    Raises:
        ActionError: NOT_FOUND, если привычки нет или она чужая
    """
    habit = _get_owned_or_raise(db, habit_id, user_id)
    apply_habit_changes(habit, changes)
    habit.updated_at = _now()
    db.commit()
    db.refresh(habit)
    return habit


def archive_habit(db: Session, habit_id: str, user_id: str) -> EcoHabit:
    """Мягкое удаление: is_active=False"""
    habit = _get_owned_or_raise(db, habit_id, user_id)
    habit.is_active = False
    habit.updated_at = _now()
    db.commit()
    db.refresh(habit)
    return habit


def list_habits(db: Session, user_id: str, include_inactive: bool = False) -> list[EcoHabit]:
    """Привычки пользователя; архивные только при include_inactive"""
    query = db.query(EcoHabit).filter(EcoHabit.user_id == user_id)

    if not include_inactive:
        query = query.filter(EcoHabit.is_active.is_(True))

    return query.order_by(EcoHabit.created_at).all()
