"""Caller identity for chatmeter routes."""

from chatmeter.auth.dependencies import RequireUser, require_user

__all__ = [
    "RequireUser",
    "require_user",
]
