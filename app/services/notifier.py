"""Out-of-band account notifications."""

import logging
from typing import Protocol

logger = logging.getLogger("kairo_anchor")


class Notifier(Protocol):
    """Delivers activation and reset links. Implementations raise NotificationError on failure."""

    def send_activation(self, email: str, token: str) -> None: ...

    def send_password_reset(self, email: str, token: str) -> None: ...


class LoggingNotifier:
    """Writes activation and reset links to the server log instead of sending email."""

    def __init__(self, base_url: str, reset_expire_minutes: int = 60) -> None:
        self.base_url = base_url.rstrip("/")
        self.reset_expire_minutes = reset_expire_minutes

    def send_activation(self, email: str, token: str) -> None:
        link = f"{self.base_url}/api/v1/auth/activate?token={token}"
        logger.info("ACTIVATION EMAIL to %s: %s", email, link)

    def send_password_reset(self, email: str, token: str) -> None:
        link = f"{self.base_url}/api/v1/auth/change-password?token={token}"
        logger.info("PASSWORD RESET EMAIL to %s: %s (expires in %d minutes)", email, link, self.reset_expire_minutes)
