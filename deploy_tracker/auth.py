# deploy_tracker/auth.py
"""Identity and access checks.

Login itself is handled outside this service. An :class:`IdentityProvider`
only answers "who is calling", and :func:`is_authorized` decides whether
that caller may see the stats pages.
"""
from typing import Iterable, Optional, Protocol

from fastapi import Request

from deploy_tracker.models import Identity

USER_HEADER = "X-Forwarded-User"
EMAIL_HEADER = "X-Forwarded-Email"


class IdentityProvider(Protocol):
    def identify(self, request: Request) -> Optional[Identity]:
        ...


class LocalIdentityProvider:
    """Local development: every caller is the local developer."""

    def identify(self, request: Request) -> Optional[Identity]:
        return Identity(user="local", emails=[])


class ProxyHeaderIdentityProvider:
    """Trusts the identity headers set by an authenticating reverse proxy."""

    def __init__(self, user_header: str = USER_HEADER, email_header: str = EMAIL_HEADER):
        self.user_header = user_header
        self.email_header = email_header

    def identify(self, request: Request) -> Optional[Identity]:
        emails = [e.strip() for e in request.headers.get(self.email_header, "").split(",") if e.strip()]
        user = request.headers.get(self.user_header) or (emails[0] if emails else None)
        if not user:
            return None
        return Identity(user=user, emails=emails)


def is_authorized(emails: Iterable[str], suffix: str) -> bool:
    suffix = suffix.lower()
    return any(email.lower().endswith(suffix) for email in emails)
