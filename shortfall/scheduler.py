import threading
from typing import Callable, Optional

from utils.logging import get_logger
from utils.web3_wrapper import Web3Client

logger = get_logger("shortfall.scheduler")

# Waits for the given number of seconds; returns True when the task should stop
WaitFn = Callable[[float], bool]


class PeriodicTask:
    """Run `func` now and then once every `interval` seconds until stopped.

    Exceptions raised by `func` are logged and do not end the loop. `wait`
    replaces the real clock in tests.
    """

    def __init__(self, name: str, interval: float, func: Callable[[], object], wait: Optional[WaitFn] = None):
        self.name = name
        self.interval = interval
        self.func = func
        self._stopped = threading.Event()
        self._wait = wait or self._stopped.wait
        self._thread: Optional[threading.Thread] = None

    def run(self) -> None:
        while not self._stopped.is_set():
            try:
                self.func()
            except Exception:
                logger.exception("Task %s failed", self.name)
            if self._wait(self.interval):
                break

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stopped.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


class BlockWatcher:
    """Poll the node for new blocks and call `on_block` once per new head.

    Blocks produced between two polls are reported once, with the latest
    number; scans look at the current state anyway.
    """

    def __init__(
        self,
        client: Web3Client,
        poll_interval: float,
        on_block: Callable[[int], object],
        wait: Optional[WaitFn] = None,
    ):
        self.client = client
        self.on_block = on_block
        self.last_block: Optional[int] = None
        self.task = PeriodicTask("block-watcher", poll_interval, self.poll, wait=wait)

    def poll(self) -> None:
        number = self.client.block_number()
        if self.last_block is not None and number <= self.last_block:
            return
        self.last_block = number
        logger.info("Processing block %d", number)
        self.on_block(number)

    def start(self) -> None:
        self.task.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self.task.stop(timeout)
