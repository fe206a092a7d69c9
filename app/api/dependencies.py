"""Shared FastAPI dependencies: caller identity and engine collaborators.

Every engine collaborator is injected, so tests swap any of them through
``app.dependency_overrides`` without touching module globals.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.core.config import SETTINGS
from app.core.logging import user_id_var
from app.db import engine as db_engine
from app.models.principal import Principal
from app.repos.store import Store, memory_store, pg_store
from app.services import token_service
from app.services.certificate_renderer import (
    CertificateRenderer,
    ReportLabCertificateRenderer,
)
from app.services.certificate_service import CertificateIssuer
from app.services.notification_service import NotificationService, NotificationSink
from app.services.task_queue import TaskQueue, task_queue

logger = logging.getLogger(__name__)

# Tokens come from the external identity provider; tokenUrl only feeds the docs UI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


async def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller as a Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
        name=claims.get("name") or "",
    )
    user_id_var.set(principal.user_id)
    logger.debug("Token validated for user=%s roles=%s", principal.user_id, principal.roles)
    return principal


def require_any_role(roles: set[str]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role({"admin", "instructor"}))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s has none of roles=%s", principal.user_id, roles
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


async def get_store() -> AsyncGenerator[Store, None]:
    """One Store per request.

    With a database, the repos share a single AsyncSession that commits
    when the handler returns and rolls back if it raises, so an enrollment
    update and the certificate it triggers persist together.
    Callbacks registered with ``Store.on_commit`` run after the commit.
    """
    if db_engine.async_session_factory is None:
        store = memory_store.scoped()
        yield store
    else:
        async with db_engine.session_scope() as session:
            store = pg_store(session)
            yield store
    # Not reached when the handler raised: the work was rolled back.
    await store.run_post_commit()


_renderer = ReportLabCertificateRenderer(
    SETTINGS.certificate_dir,
    SETTINGS.certificate_base_url,
    SETTINGS.app_base_url,
)


def get_renderer() -> CertificateRenderer:
    return _renderer


def get_task_queue() -> TaskQueue:
    return task_queue


def get_notifier(store: Annotated[Store, Depends(get_store)]) -> NotificationSink:
    return NotificationService(store.notifications)


def get_issuer(
    store: Annotated[Store, Depends(get_store)],
    renderer: Annotated[CertificateRenderer, Depends(get_renderer)],
    notifier: Annotated[NotificationSink, Depends(get_notifier)],
    queue: Annotated[TaskQueue, Depends(get_task_queue)],
) -> CertificateIssuer:
    return CertificateIssuer(
        store.certificates,
        renderer,
        notifier,
        queue,
        organization_name=SETTINGS.organization_name,
        on_commit=store.on_commit,
    )


StoreDep = Annotated[Store, Depends(get_store)]
NotifierDep = Annotated[NotificationSink, Depends(get_notifier)]
IssuerDep = Annotated[CertificateIssuer, Depends(get_issuer)]
UserDep = Annotated[Principal, Depends(require_user)]
