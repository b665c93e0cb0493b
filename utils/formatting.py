"""Common formatting helpers for log and alert output."""

from utils.config import ConfigError

# Precisions used by the underlying tokens of the monitored markets
SUPPORTED_DECIMALS = {
    6: 10**6,
    8: 10**8,
    9: 10**9,
    18: 10**18,
}


class UnsupportedDecimalsError(ConfigError):
    """Raised when a token uses a precision the formatter does not know."""


def format_balance(raw: int, decimals: int) -> str:
    """Render a raw token amount in whole units.

    The fractional part is truncated: 1.9 tokens render as "1".
    """
    divider = SUPPORTED_DECIMALS.get(decimals)
    if divider is None:
        raise UnsupportedDecimalsError(f"no support for {decimals} decimals")
    return str(raw // divider)


def shorten_address(address: str) -> str:
    """0x1234...abcd style address for compact alert text."""
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"
