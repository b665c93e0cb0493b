from dataclasses import dataclass

from web3 import Web3

from utils.chains import EXPLORER_URLS, Chain
from utils.config import Config, ConfigError

PROTOCOL = "shortfall"

SCAN_TRIGGERS = ("blocks", "timer")


def _require_address(key: str) -> str:
    value = Config.require_env(key)
    if not Web3.is_address(value):
        raise ConfigError(f"{key} is not a valid address: {value}")
    return Web3.to_checksum_address(value)


@dataclass(frozen=True)
class ScannerConfig:
    chain: Chain
    comptroller_address: str
    multicall_address: str
    borrower_cache_interval: float
    scan_trigger: str = "blocks"
    scan_interval: float = 60.0
    block_poll_interval: float = 2.0
    multicall_chunk_size: int = 0
    explorer_url: str = ""
    enable_notifications: bool = False
    # Whole USD; 0 disables critical alerts
    critical_shortfall: int = 0

    @classmethod
    def from_env(cls) -> "ScannerConfig":
        """Build the configuration from environment variables.

        Raises:
            ConfigError: If a required value is missing or malformed
        """
        try:
            chain = Chain.from_name(Config.get_env("CHAIN", "polygon"))
        except ValueError as e:
            raise ConfigError(str(e)) from e

        scan_trigger = Config.get_env("SCAN_TRIGGER", "blocks").lower()
        if scan_trigger not in SCAN_TRIGGERS:
            raise ConfigError(f"SCAN_TRIGGER must be one of {', '.join(SCAN_TRIGGERS)}, got {scan_trigger}")

        chunk_size = Config.get_env("MULTICALL_CHUNK_SIZE", "0")
        if not chunk_size.isdecimal():
            raise ConfigError(f"MULTICALL_CHUNK_SIZE must be a non-negative integer, got {chunk_size}")

        critical = Config.get_env(f"{PROTOCOL.upper()}_CRITICAL_THRESHOLD", "0")
        if not critical.isdecimal():
            raise ConfigError(f"{PROTOCOL.upper()}_CRITICAL_THRESHOLD must be a non-negative integer, got {critical}")

        explorer_url = Config.get_env("BLOCKCHAIN_EXPLORER_URL") or EXPLORER_URLS.get(chain, "")

        return cls(
            chain=chain,
            comptroller_address=_require_address("COMPTROLLER_ADDRESS"),
            multicall_address=_require_address("MULTICALL_ADDRESS"),
            borrower_cache_interval=Config.get_env_duration("BORROWER_CACHE_INTERVAL"),
            scan_trigger=scan_trigger,
            scan_interval=Config.get_env_duration("SCAN_INTERVAL", "1m"),
            block_poll_interval=Config.get_env_duration("BLOCK_POLL_INTERVAL", "2s"),
            multicall_chunk_size=int(chunk_size),
            explorer_url=explorer_url.rstrip("/"),
            enable_notifications=Config.get_env_bool(f"{PROTOCOL.upper()}_ENABLE_NOTIFICATIONS", False),
            critical_shortfall=int(critical),
        )
