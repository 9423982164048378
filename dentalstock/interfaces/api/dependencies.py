"""FastAPI dependency utilities."""

from collections.abc import Callable
from hashlib import sha256

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from dentalstock.application.use_cases.notifications import (
    DailyDigestService,
    DigestScheduler,
    NotificationDispatcher,
)
from dentalstock.config import Settings, get_settings
from dentalstock.domain.entities import NotificationSettings, User
from dentalstock.domain.errors import SettingsValidationError
from dentalstock.infrastructure.database import get_db
from dentalstock.infrastructure.notifications import LineMessagingClient, WebPushSender
from dentalstock.infrastructure.repositories import SettingsRepository, UserRepository
from dentalstock.infrastructure.security import decode_access_token, secrets_match

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")

LineClientFactory = Callable[[str], LineMessagingClient]


def password_signature(user: User) -> str:
    return sha256(f"{user.password}:{int(user.is_active)}".encode()).hexdigest()


def _credentials_error(detail: str = "Invalid credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_current_user(token: str, db: Session) -> User:
    """Resolve the authenticated user for the provided token."""

    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _credentials_error() from exc

    email: str | None = payload.get("sub")
    signature_claim = payload.get("pwd_sig")
    if email is None or not isinstance(signature_claim, str):
        raise _credentials_error()

    user = UserRepository(db).get_by_email(email)
    if user is None:
        raise _credentials_error("User not found")

    # Password or activation changes invalidate previously issued tokens.
    if signature_claim != password_signature(user):
        raise _credentials_error()

    return user


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Return the authenticated user from the provided token."""

    return resolve_current_user(token, db)


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Ensure the authenticated user is active."""

    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )
    return current_user


def require_admin(current_user: User = Depends(get_current_active_user)) -> User:
    """Ensure the authenticated user has administrator privileges."""

    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )
    return current_user


def require_cron_secret(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Accept the shared cron secret from a bearer header or a ``secret`` query parameter."""

    if not settings.cron_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="CRON_SECRET is not configured",
        )

    authorization = request.headers.get("authorization") or ""
    scheme, _, header_secret = authorization.partition(" ")
    candidates = []
    if scheme.lower() == "bearer" and header_secret:
        candidates.append(header_secret.strip())
    query_secret = request.query_params.get("secret")
    if query_secret:
        candidates.append(query_secret)

    if not any(secrets_match(candidate, settings.cron_secret) for candidate in candidates):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_notification_settings(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> NotificationSettings:
    """Return the validated configuration snapshot for this request."""

    try:
        return SettingsRepository(db).load_notification_settings(settings)
    except SettingsValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc


def get_push_sender(
    notification_settings: NotificationSettings = Depends(get_notification_settings),
    settings: Settings = Depends(get_settings),
) -> WebPushSender | None:
    if not notification_settings.push_configured:
        return None
    return WebPushSender(
        vapid_private_key=notification_settings.vapid_private_key,
        vapid_subject=notification_settings.vapid_subject,
        timeout=settings.delivery_timeout_seconds,
    )


def get_line_client_factory(settings: Settings = Depends(get_settings)) -> LineClientFactory:
    def factory(access_token: str) -> LineMessagingClient:
        return LineMessagingClient(
            access_token,
            base_url=settings.line_api_base_url,
            timeout=settings.delivery_timeout_seconds,
        )

    return factory


def get_line_client(
    notification_settings: NotificationSettings = Depends(get_notification_settings),
    factory: LineClientFactory = Depends(get_line_client_factory),
) -> LineMessagingClient | None:
    if not notification_settings.line_configured:
        return None
    return factory(notification_settings.line_channel_access_token)


def get_dispatcher(
    db: Session = Depends(get_db),
    push_sender: WebPushSender | None = Depends(get_push_sender),
    line_client: LineMessagingClient | None = Depends(get_line_client),
    settings: Settings = Depends(get_settings),
) -> NotificationDispatcher:
    return NotificationDispatcher(
        db,
        push_sender=push_sender,
        line_sender=line_client,
        timeout=settings.delivery_timeout_seconds,
    )


def get_digest_scheduler(
    db: Session = Depends(get_db),
    notification_settings: NotificationSettings = Depends(get_notification_settings),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> DigestScheduler:
    digest_service = DailyDigestService(db, dispatcher, notification_settings)
    return DigestScheduler(db, notification_settings, digest_service)
