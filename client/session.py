import logging
from typing import Callable, FrozenSet, List, Optional

from core.roles import Capability, capabilities

logger = logging.getLogger(__name__)


class Session:
    """
    Who is signed in on this client. Passed to the API client explicitly;
    nothing about the login lives in module globals.
    """

    def __init__(self, token: Optional[str] = None, user: Optional[dict] = None):
        self.token = token
        self.user = user
        self._logout_listeners: List[Callable[["Session"], None]] = []

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def user_id(self) -> Optional[int]:
        return self.user.get("id") if self.user else None

    @property
    def role(self) -> Optional[str]:
        return self.user.get("role") if self.user else None

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return capabilities(self.role) if self.role else frozenset()

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def login(self, token: str, user: dict) -> None:
        self.token = token
        self.user = user
        logger.info("Signed in as %s (%s)", user.get("username"), user.get("role"))

    def logout(self) -> None:
        if not self.token and not self.user:
            return
        self.token = None
        self.user = None
        logger.info("Signed out")
        for listener in list(self._logout_listeners):
            listener(self)

    def on_logout(self, listener: Callable[["Session"], None]) -> None:
        self._logout_listeners.append(listener)
