"""
Route protection.

``evaluate_route`` is the whole policy; the dependencies below apply it to
every request for a protected route.
"""
from typing import Optional

from fastapi import Depends, Request

from music_catalog.dependencies import get_session_snapshot
from music_catalog.logger import get_logger
from music_catalog.models import Principal, SessionSnapshot

logger = get_logger("guard")

LOGIN_PATH = "/login"
HOME_PATH = "/"


class GuardDecision:
    """Either allow the request or redirect it elsewhere."""

    def __init__(self, allowed: bool, location: Optional[str] = None, redirect_from: Optional[str] = None):
        self.allowed = allowed
        self.location = location
        # Where the visitor was headed; carried along but not used for a
        # redirect back after login.
        self.redirect_from = redirect_from

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls(True)

    @classmethod
    def redirect(cls, location: str, redirect_from: Optional[str] = None) -> "GuardDecision":
        return cls(False, location, redirect_from)

    def __repr__(self):
        if self.allowed:
            return "GuardDecision(allow)"
        return f"GuardDecision(redirect={self.location!r}, from={self.redirect_from!r})"


def evaluate_route(
    current_user: Optional[Principal],
    is_admin: bool,
    admin_only: bool = False,
    location: Optional[str] = None
) -> GuardDecision:
    if current_user is None:
        return GuardDecision.redirect(LOGIN_PATH, redirect_from=location)
    if admin_only and not is_admin:
        return GuardDecision.redirect(HOME_PATH)
    return GuardDecision.allow()


class RedirectRequired(Exception):
    """Raised by a guard dependency to turn the request into a redirect."""

    def __init__(self, decision: GuardDecision):
        self.decision = decision
        super().__init__(decision.location)


def _requested_location(request: Request) -> str:
    location = request.url.path
    if request.url.query:
        location = f"{location}?{request.url.query}"
    return location


def protect(admin_only: bool = False):
    """Dependency factory enforcing ``evaluate_route`` for a route or router."""

    def _guard(request: Request, session: SessionSnapshot = Depends(get_session_snapshot)) -> SessionSnapshot:
        decision = evaluate_route(
            session.current_user,
            session.is_admin,
            admin_only=admin_only,
            location=_requested_location(request),
        )
        if not decision.allowed:
            logger.info(f"Redirecting {request.url.path} to {decision.location}")
            raise RedirectRequired(decision)
        return session

    return _guard


require_admin = protect(admin_only=True)
