"""Authenticated user context propagation via Python contextvars.

The identity provider authenticates the user outside this package. Whatever
entry point receives the authenticated claims binds a UserContext here, and
any code in the call stack (e.g. interaction logging, which records the
author) reads it back via get_current_user().
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass


class MissingIdentityError(RuntimeError):
    """Raised when an operation needs the current user but none is bound."""


# ── User Context ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class UserContext:
    """Immutable identity of the authenticated user."""

    user_id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    poste: str = "Collaborateur"

    @property
    def is_admin(self) -> bool:
        return self.poste == "Admin"

    @property
    def display_name(self) -> str:
        """Full name when known, else the local part of the email, else the id."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        if self.email:
            return self.email.split("@")[0]
        return self.user_id


_user_context: contextvars.ContextVar[UserContext] = contextvars.ContextVar("user_context")


def get_current_user() -> UserContext:
    """Get the authenticated user for the current context.

    Raises MissingIdentityError if no user context has been set.
    """
    try:
        return _user_context.get()
    except LookupError:
        raise MissingIdentityError("No user context set; caller is not authenticated")


def set_user_context(ctx: UserContext) -> contextvars.Token[UserContext]:
    """Set the user context. Returns a token for reset."""
    return _user_context.set(ctx)


def reset_user_context(token: contextvars.Token[UserContext]) -> None:
    _user_context.reset(token)


@contextmanager
def authenticated_as(ctx: UserContext) -> Iterator[UserContext]:
    """Bind ``ctx`` as the current user for the duration of the block."""
    token = set_user_context(ctx)
    try:
        yield ctx
    finally:
        reset_user_context(token)
