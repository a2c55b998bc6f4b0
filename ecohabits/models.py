"""
Модели данных Eco Habit Tracker
ORM-таблицы (SQLAlchemy) и модели входных/выходных данных с валидацией (Pydantic)
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text

from ecohabits.database import Base

# === ORM ===


class User(Base):
    """Учетная запись пользователя (коллаборатор аутентификации)"""

    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class EcoHabit(Base):
    """Эко-привычка пользователя"""

    __tablename__ = "eco_habits"

    id = Column(String, primary_key=True)
    user_id = Column(String, index=True, nullable=False)

    name = Column(Text, nullable=False)  # "Use reusable bottle"
    description = Column(Text, nullable=True)
    category = Column(Text, nullable=True)  # "transport", "energy", "waste", "water"
    frequency = Column(Text, nullable=True)  # "daily", "weekly", "monthly"

    target_per_period = Column(Float, nullable=True)

    # Оценка влияния на одно выполнение, напр. 0.2 "kg_co2"
    impact_per_unit = Column(Float, nullable=True)
    impact_unit = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


class EcoHabitLog(Base):
    """Запись о выполнении эко-привычки"""

    __tablename__ = "eco_habit_logs"

    id = Column(String, primary_key=True)
    habit_id = Column(String, ForeignKey("eco_habits.id"), index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)

    log_date = Column(DateTime, nullable=False)
    quantity = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False)


# === Pydantic ===


class CamelModel(BaseModel):
    """Базовая модель: camelCase на входе/выходе, snake_case в коде"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CallerContext(BaseModel):
    """Контекст вызова: идентификатор аутентифицированного пользователя"""

    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None


def _require_text(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError("Name cannot be empty")
    return v


class HabitCreate(CamelModel):
    """Модель для создания новой привычки"""

    name: str = Field(..., min_length=1, description="Название привычки")
    description: Optional[str] = None
    category: Optional[str] = None
    frequency: Optional[str] = Field(default=None, description="daily / weekly / monthly")
    target_per_period: Optional[float] = Field(default=None, gt=0)
    impact_per_unit: Optional[float] = None
    impact_unit: Optional[str] = Field(default=None, description="kg_co2, liters_water, ...")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _require_text(v)


HABIT_FIELDS = (
    "name",
    "description",
    "category",
    "frequency",
    "target_per_period",
    "impact_per_unit",
    "impact_unit",
)


class HabitUpdate(CamelModel):
    """
    Частичное обновление привычки

    Поля со значением None считаются не переданными и не меняются
    """

    id: str
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    frequency: Optional[str] = None
    target_per_period: Optional[float] = Field(default=None, gt=0)
    impact_per_unit: Optional[float] = None
    impact_unit: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _require_text(v)

    @model_validator(mode="after")
    def require_any_field(self) -> "HabitUpdate":
        if not self.changes():
            raise ValueError("At least one field must be provided to update.")
        return self

    def changes(self) -> dict[str, Any]:
        """Только реально переданные поля"""
        return {
            field: getattr(self, field)
            for field in HABIT_FIELDS
            if getattr(self, field) is not None
        }


class HabitArchive(CamelModel):
    id: str


class HabitListQuery(CamelModel):
    include_inactive: bool = False


class HabitLogUpsert(CamelModel):
    """Создание (без id) или обновление (с id) записи о выполнении"""

    id: Optional[str] = None
    habit_id: str
    log_date: Optional[datetime] = None
    quantity: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None

    @field_validator("log_date")
    @classmethod
    def normalize_log_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Даты со смещением приводятся к UTC; в БД хранится UTC без tzinfo"""
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class HabitLogListQuery(CamelModel):
    habit_id: Optional[str] = None


class HabitResponse(CamelModel):
    """Привычка в ответе действия"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    frequency: Optional[str] = None
    target_per_period: Optional[float] = None
    impact_per_unit: Optional[float] = None
    impact_unit: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class HabitLogResponse(CamelModel):
    """Запись о выполнении в ответе действия"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    habit_id: str
    user_id: str
    log_date: datetime
    quantity: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime


class UserCreate(BaseModel):
    """Регистрация пользователя"""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8, max_length=128)


class UserResponse(BaseModel):
    id: str
    username: str
    is_active: bool
