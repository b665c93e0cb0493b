"""Alerts with severity levels, delivered over Telegram.

Usage::

    from utils.alert import Alert, AlertSeverity, send_alert

    # Accounts found underwater, sent with notification sound
    send_alert(Alert(AlertSeverity.HIGH, "3 accounts underwater", "shortfall"))

Severity guide:
    HIGH      - Underwater accounts (loud)
    CRITICAL  - An underwater account at or above the critical shortfall (loud)

Delivery failures are logged and swallowed: a broken alert channel must not
abort a scan cycle.
"""

from dataclasses import dataclass
from enum import Enum

from utils.logging import get_logger
from utils.telegram import TelegramError, send_telegram_message

logger = get_logger("utils.alert")

_SEVERITY_EMOJI = {
    "HIGH": "🚨",
    "CRITICAL": "🔴",
}

_SEVERITY_SILENT_DEFAULT = {
    "HIGH": False,
    "CRITICAL": False,
}


class AlertSeverity(Enum):
    """Alert severity levels."""

    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class Alert:
    """Immutable alert with severity, message and protocol."""

    severity: AlertSeverity
    message: str
    protocol: str


def send_alert(
    alert: Alert,
    *,
    silent: bool | None = None,
    plain_text: bool = False,
) -> bool:
    """Send an alert via Telegram with an emoji prefix and severity-based defaults.

    Args:
        alert: The Alert to send.
        silent: Override notification silencing. None uses the severity default.
        plain_text: If True, send without Markdown formatting.

    Returns:
        True when the message was handed to Telegram.
    """
    emoji = _SEVERITY_EMOJI[alert.severity.value]
    message = f"{emoji} {alert.message}"

    if silent is None:
        silent = _SEVERITY_SILENT_DEFAULT[alert.severity.value]

    try:
        send_telegram_message(message, alert.protocol, silent, plain_text)
    except TelegramError:
        logger.exception("Failed to deliver %s alert for %s", alert.severity.value, alert.protocol)
        return False
    return True
