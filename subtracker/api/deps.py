"""
FastAPI dependencies (DB session, clock, dismissed alerts)
"""
from datetime import date

from fastapi import HTTPException, Request

from subtracker.application.alerts import AlertKey, DismissedAlerts
from subtracker.application.categories import CategoryNotFoundError
from subtracker.application.household import MemberNotFoundError
from subtracker.application.settings import InvalidPinError
from subtracker.application.subscriptions import SubscriptionNotFoundError
from subtracker.infrastructure.db.session import get_db as _get_db

# Re-export get_db for convenience
get_db = _get_db

DISMISSED_SESSION_KEY = "dismissed_alerts"

_NOT_FOUND = (SubscriptionNotFoundError, MemberNotFoundError, CategoryNotFoundError)


def get_today() -> date:
    """Local calendar date; overridden in tests to pin the clock."""
    return date.today()


def get_dismissed(request: Request) -> DismissedAlerts:
    """
    Dismissed alerts for this browser session.

    Stored as "id:YYYY-MM-DD:days" tokens in the signed session cookie;
    unparseable tokens are ignored.
    """
    dismissed = DismissedAlerts()
    for token in request.session.get(DISMISSED_SESSION_KEY, []):
        try:
            dismissed.dismiss(AlertKey.from_token(token))
        except ValueError:
            continue
    return dismissed


def save_dismissed(request: Request, dismissed: DismissedAlerts) -> None:
    request.session[DISMISSED_SESSION_KEY] = dismissed.tokens()


def http_error(exc: ValueError) -> HTTPException:
    """Map use-case errors: missing records -> 404, wrong PIN -> 403, the rest -> 400."""
    if isinstance(exc, _NOT_FOUND):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidPinError):
        return HTTPException(status_code=403, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
