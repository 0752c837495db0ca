"""
Storage collaborators for bank documents and included resources.

Banks live as one text file per bank under a root directory, named after the
prefixed, padded bank key (e.g. banks/x00001.txt). Resources referenced by
@file(name) directives are read from a resource directory (the root by
default).
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from .models import BankConfig
from .numeral_codec import try_decode

logger = logging.getLogger(__name__)


class BankStorage(ABC):
    """Read/write access the workspace and resolver need from their environment."""

    @abstractmethod
    def exists(self, bank_id: int) -> bool:
        ...

    @abstractmethod
    def read_bank_text(self, bank_id: int) -> bytes:
        ...

    @abstractmethod
    def read_named_resource(self, name: str) -> Optional[bytes]:
        """Return the resource bytes, or None when the resource is absent."""
        ...

    @abstractmethod
    def write_bank_text(self, bank_id: int, data: bytes) -> None:
        ...

    @abstractmethod
    def location(self, bank_id: int) -> str:
        """Where bank_id is stored (remembered by the workspace for save-back)."""
        ...

    @abstractmethod
    def list_bank_ids(self) -> List[int]:
        ...


class FileBankStorage(BankStorage):
    """
    Directory-backed storage.

    Features:
    - Deterministic bank paths derived from the numbering config
    - Whole-file overwrites on write (no transactionality)
    - Resource lookups confined to the resource directory
    """

    def __init__(self, root: Union[str, Path], config: Optional[BankConfig] = None,
                 resource_dir: Optional[Union[str, Path]] = None):
        """
        Initialize the storage.

        Args:
            root: Directory holding the bank files
            config: Numbering config used to derive file names
            resource_dir: Directory for @file() resources (defaults to root)
        """
        self.root = Path(root)
        self.config = config or BankConfig()
        self.resource_dir = Path(resource_dir) if resource_dir is not None else self.root

    def bank_path(self, bank_id: int) -> Path:
        return self.root / self.config.bank_filename(bank_id)

    def exists(self, bank_id: int) -> bool:
        path = self.bank_path(bank_id)
        try:
            return path.is_file()
        except (OSError, ValueError) as e:
            # e.g. a bank key longer than the file system allows
            logger.debug(f"Cannot check bank file {str(path)[:80]!r}: {e}")
            return False

    def read_bank_text(self, bank_id: int) -> bytes:
        return self.bank_path(bank_id).read_bytes()

    def read_named_resource(self, name: str) -> Optional[bytes]:
        if not name:
            return None

        try:
            base = self.resource_dir.resolve()
            path = (base / name).resolve()
            if path != base and base not in path.parents:
                logger.warning(f"Refusing resource outside {base}: {name!r}")
                return None
            if not path.is_file():
                return None
            return path.read_bytes()
        except (OSError, ValueError) as e:
            # Names the OS rejects (too long, embedded NUL, unreadable) count as absent
            logger.warning(f"Cannot read resource {name[:80]!r}: {e}")
            return None

    def write_bank_text(self, bank_id: int, data: bytes) -> None:
        path = self.bank_path(bank_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Wrote bank {bank_id} to {path}")

    def location(self, bank_id: int) -> str:
        return str(self.bank_path(bank_id))

    def list_bank_ids(self) -> List[int]:
        if not self.root.is_dir():
            return []

        ids = set()
        for path in self.root.glob("*.txt"):
            stem = path.stem
            if not stem.startswith(self.config.prefix):
                continue
            bank_id = try_decode(stem[len(self.config.prefix):], self.config.base)
            if bank_id is None:
                continue
            # Only canonically named files are reachable through bank_path()
            if path.name != self.config.bank_filename(bank_id):
                logger.debug(f"Skipping non-canonical bank file name: {path.name}")
                continue
            ids.add(bank_id)
        return sorted(ids)
