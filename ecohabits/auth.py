"""
Модуль аутентификации для Eco Habit Tracker
JWT-токены и argon2-хеширование; отдает действиям контекст вызывающего
"""

import logging
import os
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ecohabits.config import AUTH_JWT_ALGORITHM, AUTH_JWT_EXPIRATION_MINUTES
from ecohabits.database import get_db
from ecohabits.errors import unauthorized
from ecohabits.models import CallerContext, User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

# auto_error=False: без токена запрос доходит до действия, которое вернет UNAUTHORIZED
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)

SECRET_KEY = os.getenv("AUTH_JWT_SECRET_KEY") or ""
if not SECRET_KEY:
    SECRET_KEY = secrets.token_urlsafe(32)
    logger.warning("Using generated secret key. Set AUTH_JWT_SECRET_KEY in production!")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Создание JWT токена

    Args:
        data: Данные для включения в токен
        expires_delta: Время жизни токена

    Returns:
        JWT токен
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=AUTH_JWT_EXPIRATION_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=AUTH_JWT_ALGORITHM)


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    """User, если пара логин/пароль верна, иначе None"""
    user = get_user_by_username(db, username)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_user(db: Session, username: str, password: str) -> User:
    db_user = User(
        id=str(uuid.uuid4()),
        username=username,
        hashed_password=get_password_hash(password),
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


async def get_current_user(
    db: Session = Depends(get_db),  # noqa: B008
    token: Optional[str] = Depends(oauth2_scheme),  # noqa: B008
) -> Optional[User]:
    """
    Dependency: пользователь из JWT токена

    Returns:
        User или None, если токен не передан

    Raises:
        ActionError: UNAUTHORIZED, если токен невалиден или пользователь не найден/неактивен
    """
    if token is None:
        return None

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[AUTH_JWT_ALGORITHM])
    except JWTError as e:
        raise unauthorized("Could not validate credentials") from e

    username = payload.get("sub")
    if username is None:
        raise unauthorized("Could not validate credentials")

    user = get_user_by_username(db, username=username)
    if user is None or not user.is_active:
        raise unauthorized("Could not validate credentials")

    return user


async def get_caller_context(
    current_user: Optional[User] = Depends(get_current_user),  # noqa: B008
) -> CallerContext:
    """Dependency: явный контекст вызова для действий"""
    return CallerContext(user_id=current_user.id if current_user else None)
