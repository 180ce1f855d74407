from __future__ import annotations

import logging
from typing import Optional

from accountease.domain.errors import InvalidArgumentError, NotAuthenticatedError

log = logging.getLogger(__name__)


class AuthSession:
    """Identity of the signed-in owner.

    Authentication itself is delegated to the hosted identity provider; this
    object only holds the resulting owner id (and, for the hosted store, the
    bearer token that goes with it).
    """

    def __init__(self, owner_id: Optional[str] = None, token: Optional[str] = None):
        self._owner_id = owner_id
        self._token = token

    def sign_in(self, owner_id: str, token: Optional[str] = None) -> None:
        owner_id = (owner_id or "").strip()
        if not owner_id:
            raise InvalidArgumentError("Owner id is required.")
        self._owner_id = owner_id
        self._token = token
        log.info("session_signed_in owner=%s", owner_id)

    def sign_out(self) -> None:
        log.info("session_signed_out owner=%s", self._owner_id)
        self._owner_id = None
        self._token = None

    def current_owner_id(self) -> Optional[str]:
        return self._owner_id

    def current_token(self) -> Optional[str]:
        return self._token


def require_owner(identity) -> str:
    owner_id = identity.current_owner_id()
    if not owner_id:
        raise NotAuthenticatedError("User not authenticated.")
    return str(owner_id)
