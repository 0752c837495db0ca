"""
Data models for the bank reference resolver.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .numeral_codec import DEFAULT_BASE, MAX_BASE, MIN_BASE, encode

DEFAULT_REGISTER = 1
NEW_BANK_TITLE = "new"


# --- Enums ---

class ParseErrorKind(Enum):
    """Reasons a bank document can be rejected by the parser."""
    EMPTY_INPUT = "EmptyInput"
    MISSING_BRACE = "MissingBrace"
    BAD_BANK_ID = "BadBankId"
    INVALID_REGISTER_LINE = "InvalidRegisterLine"
    INVALID_ADDRESS_ID = "InvalidAddressId"
    INVALID_ENCODING = "InvalidEncoding"  # stored bytes are not UTF-8


# --- Errors ---

class BankParseError(ValueError):
    """Raised when bank text does not follow the bank grammar."""

    def __init__(self, kind: ParseErrorKind, detail: str, line_number: Optional[int] = None):
        self.kind = kind
        self.detail = detail
        self.line_number = line_number
        location = f" (line {line_number})" if line_number is not None else ""
        super().__init__(f"{kind.value}{location}: {detail}")


class MissingContextError(LookupError):
    """Raised when a bank has no backing content in storage."""

    def __init__(self, bank_id: int, detail: str = ""):
        self.bank_id = bank_id
        super().__init__(detail or f"No stored content for bank {bank_id}")


# --- Configuration ---

@dataclass(frozen=True)
class BankConfig:
    """
    Numbering configuration shared by the parser, serializer and resolver.

    prefix is the single letter that starts bank keys and pair references;
    base is the numeral base of every identifier except triple references;
    the widths are the zero-padding used when identifiers are written.
    """
    prefix: str = "x"
    base: int = DEFAULT_BASE
    width_bank: int = 5
    width_reg: int = 2
    width_addr: int = 4

    def __post_init__(self):
        """Validate the configuration once so downstream code can trust it."""
        if len(self.prefix) != 1 or not (self.prefix.isascii() and self.prefix.isalpha()):
            raise ValueError(f"prefix must be a single ASCII letter, got {self.prefix!r}")
        if not (MIN_BASE <= self.base <= MAX_BASE):
            raise ValueError(f"base must be between {MIN_BASE} and {MAX_BASE}, got {self.base}")
        for name in ("width_bank", "width_reg", "width_addr"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BankConfig":
        """
        Build a config from its persisted form.

        Every missing or malformed field silently falls back to its default.
        """
        defaults = cls()
        if not isinstance(data, Mapping):
            return defaults

        prefix = data.get("prefix")
        if not (isinstance(prefix, str) and len(prefix) == 1 and prefix.isascii() and prefix.isalpha()):
            prefix = defaults.prefix

        base = _int_field(data.get("base"))
        if base is None or not (MIN_BASE <= base <= MAX_BASE):
            base = defaults.base

        widths = {}
        for key, attr in (("widthBank", "width_bank"), ("widthReg", "width_reg"), ("widthAddr", "width_addr")):
            width = _int_field(data.get(key))
            widths[attr] = width if width is not None and width >= 0 else getattr(defaults, attr)

        return cls(prefix=prefix, base=base, **widths)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prefix": self.prefix,
            "base": self.base,
            "widthBank": self.width_bank,
            "widthReg": self.width_reg,
            "widthAddr": self.width_addr,
        }

    def bank_key(self, bank_id: int) -> str:
        """Prefixed, padded bank key, e.g. 'x00001'."""
        return f"{self.prefix}{encode(bank_id, self.base, self.width_bank)}"

    def bank_filename(self, bank_id: int) -> str:
        return f"{self.bank_key(bank_id)}.txt"

    def reg_key(self, reg: int) -> str:
        return encode(reg, self.base, self.width_reg)

    def addr_key(self, addr: int) -> str:
        return encode(addr, self.base, self.width_addr)


def _int_field(value: Any) -> Optional[int]:
    # bool is an int subclass but never a valid numeric setting
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


# --- Bank model ---

@dataclass(frozen=True)
class Row:
    """A single addressed value of a bank."""
    reg: int
    addr: int
    value: str


@dataclass
class Bank:
    """
    In-memory bank: an identifier, a title and register -> address -> value.

    Ordering is not part of equality; rows() and the serializer always walk
    registers and addresses in ascending numeric order.
    """
    bank_id: int
    title: str = ""
    registers: Dict[int, Dict[int, str]] = field(default_factory=dict)

    @classmethod
    def new(cls, bank_id: int) -> "Bank":
        """Minimal bank synthesized when nothing is stored yet."""
        return cls(bank_id=bank_id, title=NEW_BANK_TITLE, registers={DEFAULT_REGISTER: {}})

    def get(self, reg: int, addr: int) -> Optional[str]:
        return self.registers.get(reg, {}).get(addr)

    def rows(self) -> List[Row]:
        return [
            Row(reg=reg, addr=addr, value=addresses[addr])
            for reg, addresses in sorted(self.registers.items())
            for addr in sorted(addresses)
        ]

    def copy(self) -> "Bank":
        return Bank(
            bank_id=self.bank_id,
            title=self.title,
            registers={reg: dict(addresses) for reg, addresses in self.registers.items()},
        )

    def entry_count(self) -> int:
        return sum(len(addresses) for addresses in self.registers.values())


@dataclass(frozen=True)
class ResolvedRow:
    """A row together with its fully resolved text."""
    reg: int
    addr: int
    raw: str
    resolved: str
