"""Background-refreshed snapshot of the protocol's borrowers and their markets."""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

from shortfall.contracts import GET_ASSETS_IN, Comptroller
from shortfall.multicall import BatchCaller
from utils.logging import get_logger

logger = get_logger("shortfall.borrowers")


@dataclass
class Borrower:
    address: str
    markets: list[str] = field(default_factory=list)
    # Only set on scan results, never in the cache
    shortfall: Optional[int] = None


class ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class BorrowerCache:
    """Owns the {borrower -> markets} snapshot.

    `refresh` does all its network work without holding the lock and only
    takes exclusive access to swap in the new snapshot, so `read` never waits
    on a node. A failed refresh leaves the previous snapshot in place.
    """

    def __init__(self, comptroller: Comptroller, batch_caller: BatchCaller):
        self.comptroller = comptroller
        self.batch_caller = batch_caller
        self._lock = ReadWriteLock()
        self._borrowers: tuple[Borrower, ...] = ()
        self._version = 0

    @property
    def version(self) -> int:
        """Number of snapshots committed so far."""
        with self._lock.read():
            return self._version

    @property
    def primed(self) -> bool:
        return self.version > 0

    def read(self) -> list[Borrower]:
        """Independent copy of the current snapshot; empty until the first refresh succeeds."""
        with self._lock.read():
            snapshot = self._borrowers
        return [Borrower(address=b.address, markets=list(b.markets)) for b in snapshot]

    def refresh(self) -> int:
        """Fetch borrowers and their markets, then commit them as the new snapshot."""
        borrowers = self.comptroller.get_all_borrowers()
        results = self.batch_caller.execute(
            GET_ASSETS_IN,
            [(self.comptroller.address, (borrower,)) for borrower in borrowers],
        )
        snapshot = tuple(
            Borrower(address=borrower, markets=list(result.value[0])) for borrower, result in zip(borrowers, results)
        )
        self._commit(snapshot)
        return len(snapshot)

    def _commit(self, snapshot: tuple[Borrower, ...]) -> None:
        with self._lock.write():
            self._borrowers = snapshot
            self._version += 1

    def update(self) -> bool:
        """Refresh the snapshot, logging instead of raising on failure."""
        logger.info("Initiating a borrower cache update...")
        try:
            count = self.refresh()
        except Exception:
            logger.exception("Failed to update borrower cache")
            return False
        logger.info("Borrower cache update complete: %d borrowers", count)
        return True
