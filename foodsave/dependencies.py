"""Shared FastAPI dependencies."""

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from .chat.events import EventPublisher
from .database.base import get_db
from .errors import Unauthorized
from .integrations.cache import CacheService
from .stakeholders.schemas import StakeholderIdentity
from .stakeholders.service import resolve_identity
from .tasks.digest import EmailDigestPoller


def get_cache(request: Request) -> CacheService:
    """Get the cache service from app state."""
    return request.app.state.cache


def get_events(request: Request) -> EventPublisher:
    return request.app.state.events


def get_digest_poller(request: Request) -> EmailDigestPoller:
    return request.app.state.digest_poller


async def get_caller_email(request: Request, email: str | None = Query(None)) -> str:
    """The caller identifies itself with ``email``, in the query string or the JSON body."""
    if email:
        return email
    if "application/json" in request.headers.get("content-type", ""):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("email"), str) and body["email"]:
            return body["email"]
    raise Unauthorized("Missing email for authentication")


def get_current_stakeholder(
    email: str = Depends(get_caller_email),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
) -> StakeholderIdentity:
    """Resolve the caller's email to a stakeholder, or reject the request."""
    identity = resolve_identity(db, email, cache)
    if identity is None:
        raise Unauthorized()
    return identity
