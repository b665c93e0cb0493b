import argparse
import logging
import sys

from web3.exceptions import ProviderConnectionError

from shortfall.config import ScannerConfig
from shortfall.markets import MarketLoadError
from shortfall.monitor import Monitor
from utils.config import ConfigError
from utils.logging import get_logger

logger = get_logger("shortfall")


def set_log_level(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    for name, item in logging.root.manager.loggerDict.items():
        if isinstance(item, logging.Logger) and name.split(".")[0] in ("shortfall", "utils"):
            item.setLevel(level)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Find and rank underwater accounts of a comptroller.")
    parser.add_argument("--once", action="store_true", help="Prime the borrower cache, scan once and exit")
    parser.add_argument("--log-level", type=str, default=None, help="Override LOG_LEVEL (DEBUG, INFO, ...)")
    args = parser.parse_args(argv)

    if args.log_level:
        set_log_level(args.log_level)

    try:
        config = ScannerConfig.from_env()
    except ConfigError as e:
        logger.error("Invalid config: %s", e)
        return 2

    try:
        monitor = Monitor.from_config(config)
    except (ConfigError, MarketLoadError, ProviderConnectionError) as e:
        logger.error("Startup failed: %s", e)
        return 1

    if args.once:
        monitor.run_once()
    else:
        monitor.run_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
