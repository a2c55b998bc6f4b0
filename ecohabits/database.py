"""
Подключение к базе данных (SQLAlchemy)
"""

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ecohabits.config import DATABASE_URL

# SQLite требует отключить проверку потока для работы с FastAPI
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Dependency: одна сессия на запрос, всегда закрывается"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
