from dataclasses import dataclass
from typing import Any

from .errors import Authorization


@dataclass
class AuthStatus:
    """
    Externally visible authorization status.

    Written only by the RecoveryCoordinator; the presentation layer reads it
    through the ``render_status`` callback.
    """

    authorization: Authorization = Authorization.UNAUTHENTICATED
    popup_active: bool = False

    def update(
        self,
        *,
        authorization: Authorization | None = None,
        popup_active: bool | None = None,
    ) -> None:
        if authorization is not None:
            self.authorization = authorization
        if popup_active is not None:
            self.popup_active = popup_active

    def snapshot(self) -> dict[str, Any]:
        return {
            "authorization": int(self.authorization),
            "popup_active": int(self.popup_active),
        }
