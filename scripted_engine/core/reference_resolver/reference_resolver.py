"""
Reference resolution component.

Expands the three reference syntaxes that may appear in bank values:

1. Inclusion   @file(name)        -> content of the named resource
2. Triple      bank.reg.addr      -> value at that cell, base-10 tokens
3. Pair        <prefix>bank.addr  -> value at register 1, configured base

The passes run in that fixed order. Each pass scans the whole output of the
previous pass and replaces every match of its pattern left to right, without
overlap; text it substitutes is not scanned again by the same pass. Values
reached through a reference are resolved recursively first.

Triple and pair references must start and end on a word boundary, so
identifiers such as "v1.2.3" or "ax1.2" are plain text.

Core features:
- Lazy loading of referenced banks through the workspace
- Cycle detection on the path from the root to the current reference; every
  recursion receives its own copy of the visited set, so two references that
  converge on the same cell are not reported as a cycle
- A configurable depth bound for long non-cyclic chains
- No failure is fatal: problems become inline markers and resolution carries
  on with the rest of the text
"""

import logging
import re
from typing import Callable, FrozenSet, List, Optional, Pattern

from .models import DEFAULT_REGISTER, BankConfig, BankParseError, MissingContextError, ResolvedRow
from .numeral_codec import try_decode
from .storage import BankStorage
from .workspace import Workspace

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


class ReferenceResolver:
    """
    Resolves references inside bank values against a Workspace.

    The resolver holds no state between calls beyond what the workspace loads;
    the visited set is threaded explicitly through every call.
    """

    INCLUDE_RE: Pattern = re.compile(r"@file\(([^)]*)\)")
    TRIPLE_RE: Pattern = re.compile(r"\b([0-9]+)\.([0-9]+)\.([0-9]+)\b")
    PAIR_RE: Pattern = re.compile(r"\b([A-Za-z])([0-9A-Za-z]+)\.([0-9A-Za-z]+)\b")

    def __init__(
        self,
        workspace: Workspace,
        storage: Optional[BankStorage] = None,
        config: Optional[BankConfig] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """
        Initialize the resolver.

        Args:
            workspace: Workspace used to look up (and lazily load) banks
            storage: Collaborator for @file() resources (defaults to the workspace storage)
            config: Numbering config (defaults to the workspace config)
            max_depth: Maximum visited-path length; references reached beyond it
                are replaced by a depth-limit marker
        """
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.workspace = workspace
        self.storage = storage or workspace.storage
        self.config = config or workspace.config
        self.max_depth = max_depth

    # --- public API ---

    def resolve(self, value: str, origin_bank_id: int, visited: FrozenSet[str] = frozenset()) -> str:
        """
        Expand every reference in value.

        Args:
            value: Raw text, possibly containing reference syntax
            origin_bank_id: Bank the value belongs to
            visited: Canonical keys of the references already followed on this path

        Returns:
            The fully expanded text; failures appear as bracketed markers
        """
        logger.debug(f"Resolving value from bank {origin_bank_id} (path length {len(visited)})")

        text = self._apply_pass(value, self.INCLUDE_RE, self._include)
        text = self._apply_pass(text, self.TRIPLE_RE, lambda m: self._triple(m, visited))
        return self._apply_pass(text, self.PAIR_RE, lambda m: self._pair(m, visited))

    def resolve_cell(self, bank_id: int, reg: int, addr: int) -> str:
        """
        Resolve the value stored at one cell.

        The cell's own triple key seeds the visited set, so a value that leads
        back to its own cell is reported as circular.

        Raises:
            MissingContextError: If the bank cannot be loaded
            KeyError: If the cell does not exist
        """
        bank = self.workspace.ensure_loaded(bank_id)
        value = bank.get(reg, addr)
        if value is None:
            raise KeyError(f"No value at {bank_id}.{reg}.{addr}")
        return self.resolve(value, bank_id, frozenset({self._triple_key(bank_id, reg, addr)}))

    def resolve_bank(self, bank_id: int) -> List[ResolvedRow]:
        """Resolve every row of a bank, in ascending register/address order."""
        bank = self.workspace.ensure_loaded(bank_id)
        logger.info(f"Resolving bank {self.config.bank_key(bank_id)} ({bank.entry_count()} value(s))")

        resolved = []
        for row in bank.rows():
            text = self.resolve(row.value, bank_id, frozenset({self._triple_key(bank_id, row.reg, row.addr)}))
            resolved.append(ResolvedRow(reg=row.reg, addr=row.addr, raw=row.value, resolved=text))
        return resolved

    # --- passes ---

    @staticmethod
    def _apply_pass(text: str, pattern: Pattern, handler: Callable[["re.Match"], str]) -> str:
        """
        Split text into literal runs and matches, dispatch each match to its
        handler, and concatenate the pieces.
        """
        pieces: List[str] = []
        pos = 0
        for match in pattern.finditer(text):
            pieces.append(text[pos:match.start()])
            pieces.append(handler(match))
            pos = match.end()
        pieces.append(text[pos:])
        return "".join(pieces)

    def _include(self, match: "re.Match") -> str:
        name = match.group(1).strip()
        content = self.storage.read_named_resource(name)
        if content is None:
            logger.warning(f"Missing included file: {name!r}")
            return f"[Missing file: {name}]"
        return content.decode("utf-8", errors="replace")

    def _triple(self, match: "re.Match", visited: FrozenSet[str]) -> str:
        try:
            bank_id, reg, addr = (int(group) for group in match.groups())
        except ValueError:
            # Beyond the interpreter's int conversion limit
            logger.warning(f"Oversized reference: {match.group(0)[:40]!r}...")
            return f"[Missing {match.group(0)}]"
        key = self._triple_key(bank_id, reg, addr)
        return self._follow(match.group(0), key, bank_id, reg, addr, visited)

    def _pair(self, match: "re.Match", visited: FrozenSet[str]) -> str:
        letter, bank_token, addr_token = match.groups()
        if letter != self.config.prefix:
            # Another namespace; not ours to touch
            return match.group(0)

        bank_id = try_decode(bank_token, self.config.base)
        addr = try_decode(addr_token, self.config.base)
        if bank_id is None or addr is None:
            logger.warning(f"Undecodable reference: {match.group(0)!r}")
            return f"[BadRef {match.group(0)}]"

        key = f"{self.config.prefix}{bank_token}.{addr_token}"
        return self._follow(match.group(0), key, bank_id, DEFAULT_REGISTER, addr, visited)

    def _follow(self, matched: str, key: str, bank_id: int, reg: int, addr: int, visited: FrozenSet[str]) -> str:
        if key in visited:
            logger.warning(f"Circular reference detected: {matched}")
            return f"[Circular Ref: {matched}]"

        if len(visited) >= self.max_depth:
            logger.warning(f"Depth limit {self.max_depth} reached at reference: {matched}")
            return f"[Depth Limit: {matched}]"

        value = self._lookup(bank_id, reg, addr)
        if value is None:
            return f"[Missing {matched}]"

        logger.debug(f"Following {matched} -> bank {bank_id} reg {reg} addr {addr}")
        return self.resolve(value, bank_id, visited | {key})

    def _lookup(self, bank_id: int, reg: int, addr: int) -> Optional[str]:
        try:
            bank = self.workspace.ensure_loaded(bank_id)
        except MissingContextError:
            logger.warning(f"Referenced bank {self.config.bank_key(bank_id)} has no stored content")
            return None
        except BankParseError as e:
            logger.warning(f"Referenced bank {self.config.bank_key(bank_id)} is unparsable: {e}")
            return None
        except OSError as e:
            logger.warning(f"Referenced bank {self.config.bank_key(bank_id)} could not be read: {e}")
            return None

        value = bank.get(reg, addr)
        if value is None:
            logger.debug(f"No value at bank {bank_id} reg {reg} addr {addr}")
        return value

    @staticmethod
    def _triple_key(bank_id: int, reg: int, addr: int) -> str:
        return f"{bank_id}.{reg}.{addr}"
