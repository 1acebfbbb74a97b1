"""
Peering store: pending and verified config files plus a state index.

Storage layout:
    <pending_dir>/wg-as<asn>.conf    Interface + Challenge (unverified)
    <verified_dir>/wg-as<asn>.conf   finalized config, the record that a peering exists
    <verified_dir>/state.json        asn -> {"state", "updated_at"}

States:
    pending -> verified -> deployed <-> inactive

All writes are atomic (temp file + os.replace). Callers serialize work on
one ASN with ``with store.lock(asn):``; the index has its own lock because
every ASN writes to it.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from autopeer._fsutil import atomic_write
from autopeer.errors import NotFound
from autopeer.ipalloc import interface_name
from autopeer.wgconf import ConfigReader, ConfigWriter, ParseResult, PeeringConfig

logger = logging.getLogger(__name__)

INDEX_FILE = "state.json"


class PeeringState(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    DEPLOYED = "deployed"
    INACTIVE = "inactive"


class InvalidTransition(Exception):
    """State change not allowed from the current state."""


# Valid state transitions
_TRANSITIONS: dict[PeeringState, set[PeeringState]] = {
    PeeringState.PENDING: {PeeringState.VERIFIED},
    PeeringState.VERIFIED: {PeeringState.DEPLOYED},
    PeeringState.DEPLOYED: {PeeringState.DEPLOYED, PeeringState.INACTIVE},
    PeeringState.INACTIVE: {PeeringState.DEPLOYED, PeeringState.INACTIVE},
}


def can_transition(current: PeeringState | None, new: PeeringState) -> bool:
    if current is None:
        return False
    return new in _TRANSITIONS[current]


class PeeringStore:
    """File-backed pending/verified stores.

    Usage:
        store = PeeringStore("data/pending", "data/verified")
        with store.lock(asn):
            result = store.load_verified(asn)
            ...
            store.save_verified(asn, result.config)
            store.set_state(asn, PeeringState.DEPLOYED)
    """

    def __init__(self, pending_dir: str | Path, verified_dir: str | Path) -> None:
        self.pending_dir = Path(pending_dir)
        self.verified_dir = Path(verified_dir)
        self.index_path = self.verified_dir / INDEX_FILE
        self._index_lock = threading.Lock()
        self._locks_guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    # -- locking ------------------------------------------------------------

    def lock(self, asn: int) -> threading.Lock:
        """The lock serializing all transitions for ``asn``."""
        with self._locks_guard:
            lock = self._locks.get(asn)
            if lock is None:
                lock = self._locks[asn] = threading.Lock()
            return lock

    # -- config files -------------------------------------------------------

    def pending_path(self, asn: int) -> Path:
        return self.pending_dir / f"{interface_name(asn)}.conf"

    def verified_path(self, asn: int) -> Path:
        return self.verified_dir / f"{interface_name(asn)}.conf"

    @staticmethod
    def _load(path: Path, what: str, asn: int) -> ParseResult:
        if not path.is_file():
            raise NotFound(f"No {what} peering for AS{asn}")
        result = ConfigReader.read(path)
        for warning in result.warnings:
            logger.warning("AS%d %s config: %s", asn, what, warning)
        return result

    def load_pending(self, asn: int) -> ParseResult:
        return self._load(self.pending_path(asn), "pending", asn)

    def load_verified(self, asn: int) -> ParseResult:
        return self._load(self.verified_path(asn), "verified", asn)

    def has_pending(self, asn: int) -> bool:
        return self.pending_path(asn).is_file()

    def has_verified(self, asn: int) -> bool:
        return self.verified_path(asn).is_file()

    def save_pending(self, asn: int, config: PeeringConfig) -> None:
        ConfigWriter.write(self.pending_path(asn), config)

    def save_verified(self, asn: int, config: PeeringConfig) -> None:
        ConfigWriter.write(self.verified_path(asn), config)

    def promote(self, asn: int, config: PeeringConfig) -> None:
        """Move a record from pending to verified.

        The verified file is written first; once it exists the peering is
        verified even if removing the pending file fails.
        """
        self.save_verified(asn, config.without_challenge())
        self._update_index(asn, PeeringState.VERIFIED)
        self.delete_pending(asn)

    def delete_pending(self, asn: int) -> None:
        self.pending_path(asn).unlink(missing_ok=True)

    def delete_verified(self, asn: int) -> None:
        self.verified_path(asn).unlink(missing_ok=True)
        self._update_index(asn, None)

    def list_verified(self) -> list[int]:
        if not self.verified_dir.is_dir():
            return []
        asns = []
        for path in self.verified_dir.glob("*.conf"):
            _, _, digits = path.stem.rpartition("-as")
            if digits.isdigit():
                asns.append(int(digits))
        return sorted(asns)

    # -- state index --------------------------------------------------------

    def _read_index(self) -> dict[str, dict[str, str]]:
        """Read the JSON index. Returns empty dict if missing or corrupt."""
        if not self.index_path.is_file():
            return {}
        try:
            index = json.loads(self.index_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable state index %s: %s", self.index_path, e)
            return {}
        return index if isinstance(index, dict) else {}

    def _update_index(self, asn: int, state: PeeringState | None) -> None:
        with self._index_lock:
            index = self._read_index()
            if state is None:
                if str(asn) not in index:
                    return
                del index[str(asn)]
            else:
                index[str(asn)] = {
                    "state": state.value,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            data = json.dumps(index, indent=2, sort_keys=True)
            atomic_write(self.index_path, data.encode("utf-8"), mode=0o600)

    def get_state(self, asn: int) -> PeeringState | None:
        """Current state, or None if no record exists."""
        if self.has_verified(asn):
            entry = self._read_index().get(str(asn))
            if not isinstance(entry, dict):
                entry = {}
            try:
                return PeeringState(entry.get("state", PeeringState.VERIFIED.value))
            except ValueError:
                return PeeringState.VERIFIED
        if self.has_pending(asn):
            return PeeringState.PENDING
        return None

    def set_state(self, asn: int, state: PeeringState) -> None:
        current = self.get_state(asn)
        if not can_transition(current, state):
            raise InvalidTransition(
                f"AS{asn}: cannot go from {current.value if current else 'none'} to {state.value}"
            )
        self._update_index(asn, state)
