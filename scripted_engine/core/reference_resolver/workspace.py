"""
Workspace: the set of banks loaded during one process run.

Banks are loaded lazily from a BankStorage on first use and then stay
resident until the process ends; there is no eviction and no caching of
negative lookups (a bank that does not exist is probed again every time).

The workspace is not synchronized. Callers that resolve on a worker thread
must serialize insert/delete/load against in-flight resolutions.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from .bank_parser import BankParser
from .bank_serializer import BankSerializer
from .models import Bank, BankConfig, BankParseError, MissingContextError, ParseErrorKind
from .storage import BankStorage

logger = logging.getLogger(__name__)


class Workspace:
    """
    Loaded banks keyed by bank id, plus the storage location each came from.
    """

    def __init__(self, storage: BankStorage, config: Optional[BankConfig] = None):
        """
        Initialize an empty workspace.

        Args:
            storage: Collaborator providing bank text
            config: Numbering config used to parse and serialize banks
        """
        self.storage = storage
        self.config = config or BankConfig()
        self.parser = BankParser(self.config)
        self.serializer = BankSerializer(self.config)

        self.banks: Dict[int, Bank] = {}
        self.sources: Dict[int, str] = {}
        self.dirty_ids: Set[int] = set()

    # --- lookup ---

    def is_loaded(self, bank_id: int) -> bool:
        return bank_id in self.banks

    def get(self, bank_id: int) -> Optional[Bank]:
        return self.banks.get(bank_id)

    def loaded_ids(self) -> List[int]:
        return sorted(self.banks)

    def bank_list(self) -> List[Tuple[int, str]]:
        """(bank_id, title) pairs in ascending id order."""
        return [(bank_id, self.banks[bank_id].title) for bank_id in sorted(self.banks)]

    def source_of(self, bank_id: int) -> Optional[str]:
        return self.sources.get(bank_id)

    @property
    def dirty(self) -> bool:
        """True while any loaded bank has unsaved edits."""
        return bool(self.dirty_ids)

    def is_dirty(self, bank_id: int) -> bool:
        return bank_id in self.dirty_ids

    # --- loading ---

    def ensure_loaded(self, bank_id: int) -> Bank:
        """
        Return the loaded bank, loading it from storage on first use.

        Raises:
            MissingContextError: If storage has no content for bank_id
            BankParseError: If the stored text is not a valid bank
        """
        bank = self.banks.get(bank_id)
        if bank is not None:
            return bank

        if not self.storage.exists(bank_id):
            raise MissingContextError(bank_id)

        try:
            text = self.storage.read_bank_text(bank_id).decode("utf-8")
        except UnicodeDecodeError as e:
            raise BankParseError(
                ParseErrorKind.INVALID_ENCODING,
                f"{self.storage.location(bank_id)} is not valid UTF-8: {e}",
            ) from e
        bank = self.parser.parse(text)
        if bank.bank_id != bank_id:
            logger.warning(
                f"Bank stored at {self.storage.location(bank_id)} declares id {bank.bank_id}; "
                f"keeping it under {bank_id}"
            )
            bank.bank_id = bank_id

        self.banks[bank_id] = bank
        self.sources[bank_id] = self.storage.location(bank_id)
        logger.info(f"Loaded bank {self.config.bank_key(bank_id)} ({bank.title!r}) from {self.sources[bank_id]}")
        return bank

    def open_or_create(self, bank_id: int) -> Tuple[Bank, bool]:
        """
        Load a bank, or synthesize a minimal new one when storage has none.

        Returns:
            Tuple of (bank, created)
        """
        try:
            return self.ensure_loaded(bank_id), False
        except MissingContextError:
            bank = Bank.new(bank_id)
            self.banks[bank_id] = bank
            self.sources[bank_id] = self.storage.location(bank_id)
            logger.info(f"Created new bank {self.config.bank_key(bank_id)}")
            return bank, True

    def preload_all(self) -> int:
        """
        Load every bank the storage lists.

        Unparsable banks (including bytes that are not UTF-8) are logged and
        skipped.

        Returns:
            Number of banks loaded in the workspace afterwards
        """
        for bank_id in self.storage.list_bank_ids():
            try:
                self.ensure_loaded(bank_id)
            except BankParseError as e:
                logger.warning(f"Skipping unparsable bank {self.config.bank_key(bank_id)}: {e}")
            except MissingContextError:
                logger.warning(f"Bank {self.config.bank_key(bank_id)} disappeared during preload")

        logger.info(f"Preload complete: {len(self.banks)} bank(s) loaded")
        return len(self.banks)

    # --- mutation ---

    def _require(self, bank_id: int) -> Bank:
        bank = self.banks.get(bank_id)
        if bank is None:
            raise MissingContextError(bank_id, f"Bank {bank_id} is not loaded")
        return bank

    def insert(self, bank_id: int, reg: int, addr: int, value: str) -> None:
        """Set a value in a loaded bank, creating the register/address as needed."""
        bank = self._require(bank_id)
        bank.registers.setdefault(reg, {})[addr] = value
        self.dirty_ids.add(bank_id)

    def delete(self, bank_id: int, reg: int, addr: int) -> bool:
        """Remove an entry; returns False when there was nothing to remove."""
        bank = self._require(bank_id)
        addresses = bank.registers.get(reg)
        if addresses is None or addr not in addresses:
            return False
        del addresses[addr]
        self.dirty_ids.add(bank_id)
        return True

    # --- persistence ---

    def save(self, bank_id: int) -> str:
        """
        Write a loaded bank back to storage (whole-file overwrite).

        Returns:
            The storage location written
        """
        bank = self._require(bank_id)
        self.storage.write_bank_text(bank_id, self.serializer.write(bank).encode("utf-8"))
        location = self.storage.location(bank_id)
        self.sources[bank_id] = location
        self.dirty_ids.discard(bank_id)
        return location
