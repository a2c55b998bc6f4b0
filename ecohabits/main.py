import logging
from typing import Any, Callable, Optional

from fastapi import Body, Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

# Действия (создание/обновление/архивация привычек, записи о выполнении)
from ecohabits.actions import ACTIONS
from ecohabits.audit import log_create

# Аутентификация
from ecohabits.auth import (
    authenticate_user,
    create_access_token,
    create_user,
    get_caller_context,
    get_current_user,
    get_user_by_username,
)
from ecohabits.config import LOG_LEVEL, RATE_LIMIT_ENABLED, RATE_LIMIT_PER_MINUTE
from ecohabits.database import get_db

# Обработчики ошибок RFC 7807
from ecohabits.errors import (
    ActionError,
    ErrorKind,
    action_error_handler,
    generic_exception_handler,
    unauthorized,
    validation_error_handler,
)

# Prometheus метрики
from ecohabits.metrics import (
    PrometheusMiddleware,
    metrics_endpoint,
    track_auth_failure,
    track_auth_request,
    track_user_registered,
)
from ecohabits.models import CallerContext, User, UserCreate, UserResponse
from ecohabits.security import RateLimitMiddleware, SecurityHeadersMiddleware

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Eco Habit Tracker API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_exception_handler(ActionError, action_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, generic_exception_handler)

if RATE_LIMIT_ENABLED:
    app.add_middleware(RateLimitMiddleware, requests_per_minute=RATE_LIMIT_PER_MINUTE)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(PrometheusMiddleware)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint"""
    return metrics_endpoint()


# === Authentication Endpoints ===


@app.post("/register", response_model=UserResponse, status_code=201)
def register(user_data: UserCreate, db: Session = Depends(get_db)):  # noqa: B008
    """Регистрация нового пользователя"""
    if get_user_by_username(db, user_data.username):
        track_auth_failure("user_exists")
        track_auth_request("register", False)
        raise ActionError(ErrorKind.CONFLICT, "User with this username already exists")

    user = create_user(db, user_data.username, user_data.password)

    track_user_registered()
    track_auth_request("register", True)
    log_create("user", user.id, user.id, details={"username": user.username})

    return UserResponse(id=user.id, username=user.username, is_active=user.is_active)


@app.post("/login")
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),  # noqa: B008
    db: Session = Depends(get_db),  # noqa: B008
):
    """Вход пользователя и получение JWT токена"""
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user:
        track_auth_failure("invalid_credentials")
        track_auth_request("login", False)
        raise unauthorized("Incorrect username or password")

    track_auth_request("login", True)
    access_token = create_access_token(data={"sub": user.username})

    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: Optional[User] = Depends(get_current_user),  # noqa: B008
):
    if current_user is None:
        raise unauthorized()

    return UserResponse(
        id=current_user.id,
        username=current_user.username,
        is_active=current_user.is_active,
    )


# === Actions ===


def _action_endpoint(handler: Callable[..., dict]) -> Callable[..., dict]:
    """POST /_actions/<name>: JSON-тело передается действию как есть"""

    def endpoint(
        payload: Optional[dict[str, Any]] = Body(default=None),  # noqa: B008
        db: Session = Depends(get_db),  # noqa: B008
        context: CallerContext = Depends(get_caller_context),  # noqa: B008
    ) -> dict:
        return handler(db, context, payload)

    endpoint.__doc__ = handler.__doc__
    return endpoint


for _name, _handler in ACTIONS.items():
    app.add_api_route(
        f"/_actions/{_name}",
        _action_endpoint(_handler),
        methods=["POST"],
        name=_name,
    )
