"""
Editing session over a workspace.

A session is what an interactive front end drives: it keeps the current
bank and a row filter, and wires the workspace, resolver and exporter
together for open/switch, insert/delete, save, resolve-to-file and JSON
export. It has no UI of its own.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Union

from .config import EngineSettings
from .exporter import BankExporter
from .models import DEFAULT_REGISTER, Bank, BankConfig, Row
from .numeral_codec import decode
from .reference_resolver import DEFAULT_MAX_DEPTH, ReferenceResolver
from .storage import BankStorage, FileBankStorage
from .workspace import Workspace

logger = logging.getLogger(__name__)


class NoCurrentBankError(RuntimeError):
    """Raised when an operation needs a current bank and none is open."""


class SessionBusyError(RuntimeError):
    """Raised when a background resolution is already running."""


class BankSession:
    """
    Stateful session: current bank, filter, and the engine components.

    Components:
    1. Workspace - loaded banks and persistence
    2. ReferenceResolver - reference expansion
    3. BankExporter - resolved text and JSON renderings
    """

    def __init__(
        self,
        config: BankConfig,
        storage: BankStorage,
        output_dir: Union[str, Path],
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """
        Initialize the session.

        Args:
            config: Numbering config
            storage: Bank storage collaborator
            output_dir: Directory receiving resolved and exported files
            max_depth: Resolution depth bound
        """
        self.config = config
        self.storage = storage
        self.output_dir = Path(output_dir)
        self.workspace = Workspace(storage, config)
        self.resolver = ReferenceResolver(self.workspace, storage, config, max_depth=max_depth)
        self.exporter = BankExporter(self.resolver, config)

        self.current: Optional[int] = None
        self.filter = ""

        self._busy_lock = threading.Lock()
        self._busy = False
        self._executor: Optional[ThreadPoolExecutor] = None

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "BankSession":
        storage = FileBankStorage(settings.root, settings.config)
        return cls(settings.config, storage, settings.output_dir, max_depth=settings.max_depth)

    # --- bank selection ---

    def parse_bank_name(self, name: str) -> int:
        """
        Turn 'x00001', '00001' or 'x00001.txt' into a bank id.

        Raises:
            ValueError: If the name does not hold a decodable bank id
        """
        stem = name.strip()
        if stem.endswith(".txt"):
            stem = stem[: -len(".txt")]
        token = stem[1:] if stem.startswith(self.config.prefix) else stem
        try:
            return decode(token, self.config.base)
        except ValueError as e:
            raise ValueError(f"Bad context id: {name!r}") from e

    def open_or_switch(self, name: str) -> str:
        """
        Make the named bank current, loading it or creating it as needed.

        Returns:
            A status message describing what happened
        """
        bank_id = self.parse_bank_name(name)
        key = self.config.bank_key(bank_id)

        if self.workspace.is_loaded(bank_id):
            status = f"Switched to {key}"
        else:
            bank, created = self.workspace.open_or_create(bank_id)
            status = f"Created {key}" if created else f"Opened {key} ({bank.title})"

        self.current = bank_id
        logger.info(status)
        return status

    def open_existing(self, name: str) -> str:
        """
        Make the named bank current without creating it.

        Raises:
            ValueError: If the name does not hold a decodable bank id
            MissingContextError: If storage has no such bank
            BankParseError: If the stored bank cannot be parsed
        """
        bank_id = self.parse_bank_name(name)
        key = self.config.bank_key(bank_id)

        if self.workspace.is_loaded(bank_id):
            status = f"Switched to {key}"
        else:
            bank = self.workspace.ensure_loaded(bank_id)
            status = f"Opened {key} ({bank.title})"

        self.current = bank_id
        logger.info(status)
        return status

    def preload(self) -> str:
        count = self.workspace.preload_all()
        return f"Preloaded {count} banks."

    def current_bank(self) -> Bank:
        if self.current is None:
            raise NoCurrentBankError("No current context")
        return self.workspace.ensure_loaded(self.current)

    # --- rows ---

    def set_filter(self, text: str) -> None:
        self.filter = text

    def rows(self) -> List[Row]:
        """Rows of the current bank matching the filter (case-insensitive)."""
        if self.current is None:
            return []

        rows = self.current_bank().rows()
        needle = self.filter.lower()
        if not needle:
            return rows

        return [
            row for row in rows
            if needle in self.config.reg_key(row.reg).lower()
            or needle in self.config.addr_key(row.addr).lower()
            or needle in row.value.lower()
        ]

    # --- mutation ---

    def insert(self, reg: int, addr: int, value: str) -> str:
        bank = self.current_bank()
        self.workspace.insert(bank.bank_id, reg, addr, value)
        return f"Updated {self.config.reg_key(reg)}.{self.config.addr_key(addr)}"

    def insert_tokens(self, reg_token: str, addr_token: str, value: str) -> str:
        """
        Insert using identifiers typed in the configured base.

        An empty register token selects register 1.

        Raises:
            ValueError: If a token cannot be decoded or the address is empty
        """
        addr_token = addr_token.strip()
        if not addr_token:
            raise ValueError("Address required")
        reg_token = reg_token.strip()
        try:
            reg = decode(reg_token, self.config.base) if reg_token else DEFAULT_REGISTER
        except ValueError as e:
            raise ValueError(f"Bad reg: {reg_token!r}") from e
        try:
            addr = decode(addr_token, self.config.base)
        except ValueError as e:
            raise ValueError(f"Bad addr: {addr_token!r}") from e
        return self.insert(reg, addr, value)

    def delete(self, reg: int, addr: int) -> bool:
        bank = self.current_bank()
        return self.workspace.delete(bank.bank_id, reg, addr)

    @property
    def dirty(self) -> bool:
        return self.workspace.dirty

    # --- persistence and output ---

    def save(self) -> str:
        bank = self.current_bank()
        location = self.workspace.save(bank.bank_id)
        return f"Saved {location}"

    def resolve_to_file(self) -> Path:
        bank = self.current_bank()
        text = self.exporter.to_resolved_text(bank.bank_id)
        return self._write_output(self.exporter.resolved_filename(bank.bank_id), text)

    def export_json(self) -> Path:
        bank = self.current_bank()
        document = self.exporter.to_json(bank.bank_id)
        return self._write_output(self.exporter.json_filename(bank.bank_id), document)

    def _write_output(self, filename: str, text: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_text(text, encoding="utf-8")
        logger.info(f"Wrote {path}")
        return path

    # --- background work ---

    @property
    def busy(self) -> bool:
        return self._busy

    def resolve_in_background(self) -> "Future[Path]":
        """
        Run resolve_to_file on a worker thread.

        The caller must not mutate the workspace until the future completes.

        Raises:
            NoCurrentBankError: If no bank is current
            SessionBusyError: If a background resolution is already running
        """
        self.current_bank()
        with self._busy_lock:
            if self._busy:
                raise SessionBusyError("Busy...")
            self._busy = True

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="bank-resolve")

        future = self._executor.submit(self.resolve_to_file)
        future.add_done_callback(self._clear_busy)
        return future

    def _clear_busy(self, future: "Future[Path]") -> None:
        if future.exception() is not None:
            logger.error(f"Background resolution failed: {future.exception()}")
        with self._busy_lock:
            self._busy = False

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
