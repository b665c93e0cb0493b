import threading
from typing import Optional

from shortfall.borrowers import Borrower, BorrowerCache
from shortfall.config import PROTOCOL, ScannerConfig
from shortfall.contracts import ERC20, Comptroller, CToken
from shortfall.markets import MarketCatalog
from shortfall.multicall import BatchCaller
from shortfall.resolver import AssetResolver, Report, ResolveError
from shortfall.scanner import ShortfallScanner
from shortfall.scheduler import BlockWatcher, PeriodicTask
from utils.alert import Alert, AlertSeverity, send_alert
from utils.config import ConfigError
from utils.formatting import format_balance, shorten_address
from utils.logging import get_logger
from utils.web3_wrapper import ChainManager, Web3Client

logger = get_logger("shortfall.monitor")

# Accounts listed in a single alert message
MAX_ALERT_ACCOUNTS = 10


class Monitor:
    """Owns the borrower cache, the scan pipeline and the loops driving them."""

    def __init__(
        self,
        config: ScannerConfig,
        client: Web3Client,
        cache: BorrowerCache,
        scanner: ShortfallScanner,
        resolver: AssetResolver,
    ):
        self.config = config
        self.client = client
        self.cache = cache
        self.scanner = scanner
        self.resolver = resolver
        self._scan_lock = threading.Lock()
        self._stopped = threading.Event()
        self._refresh_task: Optional[PeriodicTask] = None
        self._scan_trigger = None

    @classmethod
    def from_config(cls, config: ScannerConfig) -> "Monitor":
        client = ChainManager.get_client(config.chain)
        chain_id = client.execute(lambda: client.eth.chain_id)
        if chain_id != config.chain.chain_id:
            raise ConfigError(f"Node reports chain id {chain_id}, expected {config.chain.chain_id} for {config.chain.name}")
        logger.info("Connected to %s (chain id %d)", config.chain.network_name, chain_id)

        comptroller = Comptroller(client, config.comptroller_address)
        batch_caller = BatchCaller(client, config.multicall_address, config.multicall_chunk_size)

        catalog = MarketCatalog.load(
            comptroller,
            ctoken_factory=lambda address: CToken(client, address),
            erc20_factory=lambda address: ERC20(client, address),
        )
        catalog.describe(batch_caller, comptroller.oracle(), config.explorer_url)

        return cls(
            config=config,
            client=client,
            cache=BorrowerCache(comptroller, batch_caller),
            scanner=ShortfallScanner(batch_caller, comptroller.address),
            resolver=AssetResolver(catalog),
        )

    def shortfall_check(self) -> list[Report]:
        """Run one scan cycle unless another one is still in flight."""
        if not self._scan_lock.acquire(blocking=False):
            logger.warning("Previous shortfall check still running; skipping")
            return []
        try:
            return self._shortfall_check()
        finally:
            self._scan_lock.release()

    def _shortfall_check(self) -> list[Report]:
        logger.info("Starting shortfall checks...")
        if not self.cache.primed:
            # Reporting nothing here would look like an all-clear
            logger.info("Borrower cache not primed yet; aborting shortfall check")
            return []
        borrowers = self.cache.read()
        logger.info("Number of borrowers: %d", len(borrowers))
        if not borrowers:
            logger.info("No borrowers; nothing to check")
            return []

        try:
            underwater = self.scanner.scan(borrowers)
        except Exception:
            logger.exception("Failed shortfall check")
            return []

        reports = []
        for account in underwater:
            logger.info("Account %s is underwater by %d", account.address, account.shortfall)
            try:
                report = self.resolver.resolve(account.address, account.markets, account.shortfall)
                lines = report.lines()
            except (ResolveError, ConfigError):
                logger.exception("Failed to resolve assets for account %s", account.address)
                continue
            for line in lines:
                logger.info(line)
            reports.append(report)

        if underwater and self.config.enable_notifications:
            self.alert(underwater)

        logger.info("Shortfall check complete.")
        return reports

    def alert(self, underwater: list[Borrower]) -> bool:
        lines = [f"*{len(underwater)} accounts underwater*"]
        for account in underwater[:MAX_ALERT_ACCOUNTS]:
            link = f"{self.config.explorer_url}/address/{account.address}"
            lines.append(f"[{shorten_address(account.address)}]({link}): shortfall ${format_balance(account.shortfall, 18)}")
        if len(underwater) > MAX_ALERT_ACCOUNTS:
            lines.append(f"...and {len(underwater) - MAX_ALERT_ACCOUNTS} more")
        lines.append(f"🌐 Chain: {self.config.chain.network_name}")
        return send_alert(Alert(self.severity(underwater), "\n".join(lines), PROTOCOL))

    def severity(self, underwater: list[Borrower]) -> AlertSeverity:
        """CRITICAL when the worst account reaches the configured threshold."""
        threshold = self.config.critical_shortfall
        if threshold and max(account.shortfall for account in underwater) >= threshold * 10**18:
            return AlertSeverity.CRITICAL
        return AlertSeverity.HIGH

    def start(self) -> None:
        """Start refreshing the cache and scanning in background threads."""
        self._refresh_task = PeriodicTask("borrower-cache", self.config.borrower_cache_interval, self.cache.update)
        self._refresh_task.start()

        if self.config.scan_trigger == "timer":
            self._scan_trigger = PeriodicTask("shortfall-scan", self.config.scan_interval, self.shortfall_check)
        else:
            self._scan_trigger = BlockWatcher(
                self.client, self.config.block_poll_interval, lambda _block: self.shortfall_check()
            )
        self._scan_trigger.start()

    def stop(self) -> None:
        self._stopped.set()
        for task in (self._scan_trigger, self._refresh_task):
            if task is not None:
                task.stop(timeout=5)

    def run_forever(self) -> None:
        self.start()
        try:
            while not self._stopped.wait(1):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
        finally:
            self.stop()

    def run_once(self) -> list[Report]:
        """Prime the cache and run a single scan cycle in the calling thread."""
        self.cache.update()
        return self.shortfall_check()
