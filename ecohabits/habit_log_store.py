"""
Хранилище записей о выполнении эко-привычек
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ecohabits.errors import not_found
from ecohabits.models import EcoHabitLog


def create_log(
    db: Session,
    log_id: str,
    habit_id: str,
    user_id: str,
    log_date: Optional[datetime] = None,
    quantity: Optional[float] = None,
    notes: Optional[str] = None,
) -> EcoHabitLog:
    """Создать запись; log_date по умолчанию равен моменту создания"""
    now = datetime.now(timezone.utc)
    log = EcoHabitLog(
        id=log_id,
        habit_id=habit_id,
        user_id=user_id,
        log_date=log_date or now,
        quantity=quantity,
        notes=notes,
        created_at=now,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def get_log(db: Session, log_id: str, user_id: str) -> Optional[EcoHabitLog]:
    return (
        db.query(EcoHabitLog)
        .filter(EcoHabitLog.id == log_id, EcoHabitLog.user_id == user_id)
        .first()
    )


def update_log(
    db: Session,
    log_id: str,
    user_id: str,
    habit_id: str,
    log_date: Optional[datetime] = None,
    quantity: Optional[float] = None,
    notes: Optional[str] = None,
) -> EcoHabitLog:
    """
    Перезаписать запись о выполнении

    habit_id, quantity и notes перезаписываются как есть,
    log_date сохраняет прежнее значение, если не передан.

    Raises:
        ActionError: NOT_FOUND, если записи нет или она чужая
    """
    log = get_log(db, log_id, user_id)
    if log is None:
        raise not_found("Habit log not found.")

    log.habit_id = habit_id
    log.log_date = log_date or log.log_date
    log.quantity = quantity
    log.notes = notes

    db.commit()
    db.refresh(log)
    return log


def list_logs(db: Session, user_id: str, habit_id: Optional[str] = None) -> list[EcoHabitLog]:
    query = db.query(EcoHabitLog).filter(EcoHabitLog.user_id == user_id)

    if habit_id is not None:
        query = query.filter(EcoHabitLog.habit_id == habit_id)

    return query.order_by(EcoHabitLog.log_date).all()
