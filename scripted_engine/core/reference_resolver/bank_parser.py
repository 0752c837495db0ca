"""
Parser for the bank text format.

A bank document looks like:

    x00001\t(Greetings){
    \t0001\tHello
    02
    \t0001\tsee 1.1.1
    }

The header carries the (optionally prefixed) bank id and the title in
parentheses. Unindented body lines select the current register, indented
lines hold "<address><tab or space><value>". Addresses seen before any
register line belong to register 1.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .models import DEFAULT_REGISTER, Bank, BankConfig, BankParseError, ParseErrorKind
from .numeral_codec import decode

logger = logging.getLogger(__name__)


class BankParser:
    """
    Line-oriented parser turning bank text into a Bank.

    Parsing is all-or-nothing: any grammar violation raises BankParseError
    and no Bank is produced.
    """

    def __init__(self, config: Optional[BankConfig] = None):
        self.config = config or BankConfig()

    def parse(self, text: str) -> Bank:
        """
        Parse a bank document.

        Args:
            text: Raw bank text

        Returns:
            The parsed Bank

        Raises:
            BankParseError: If the text violates the grammar
        """
        lines = self._split_lines(text)

        header_index = self._find_header(lines)
        brace_index, header = self._collect_header(lines, header_index)
        bank_id, title = self._parse_header(header, header_index)
        registers = self._parse_body(lines, brace_index)

        logger.debug(f"Parsed bank {bank_id} ({title!r}) with {len(registers)} register(s)")
        return Bank(bank_id=bank_id, title=title, registers=registers)

    @staticmethod
    def _split_lines(text: str) -> List[str]:
        # Only '\n' separates lines; values may legitimately hold other control characters
        return [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]

    @staticmethod
    def _find_header(lines: List[str]) -> int:
        for index, line in enumerate(lines):
            if line.strip():
                return index
        raise BankParseError(ParseErrorKind.EMPTY_INPUT, "No header line found")

    @staticmethod
    def _collect_header(lines: List[str], header_index: int) -> Tuple[int, str]:
        """Join header lines with spaces up to and including the first line holding '{'."""
        parts = []
        for index in range(header_index, len(lines)):
            parts.append(lines[index])
            if "{" in lines[index]:
                return index, " ".join(parts)
        raise BankParseError(
            ParseErrorKind.MISSING_BRACE,
            "Header is not followed by '{'",
            line_number=header_index + 1,
        )

    def _parse_header(self, header: str, header_index: int) -> Tuple[int, str]:
        header = header[: header.index("{")]
        open_paren = header.find("(")
        close_paren = header.rfind(")")

        if open_paren >= 0:
            token = header[:open_paren]
            title = header[open_paren + 1 : close_paren] if close_paren > open_paren else header[open_paren + 1 :]
        else:
            token = header
            title = ""

        token = token.strip()
        if token.startswith(self.config.prefix):
            token = token[len(self.config.prefix) :]

        try:
            bank_id = decode(token, self.config.base)
        except ValueError as e:
            raise BankParseError(
                ParseErrorKind.BAD_BANK_ID,
                f"Cannot decode bank id {token!r}: {e}",
                line_number=header_index + 1,
            ) from e

        return bank_id, title.strip()

    def _parse_body(self, lines: List[str], brace_index: int) -> Dict[int, Dict[int, str]]:
        registers: Dict[int, Dict[int, str]] = {}
        current_register = DEFAULT_REGISTER
        saw_register_line = False

        brace_line = lines[brace_index]
        if "}" not in brace_line[brace_line.index("{") + 1 :]:
            for index in range(brace_index + 1, len(lines)):
                line = lines[index]
                if not line.strip():
                    continue

                if line[0] in "\t ":
                    addr, value = self._parse_address_line(line, index)
                    registers.setdefault(current_register, {})[addr] = value
                    continue

                if "}" in line:
                    break

                token = line.strip()
                try:
                    current_register = decode(token, self.config.base)
                except ValueError as e:
                    raise BankParseError(
                        ParseErrorKind.INVALID_REGISTER_LINE,
                        f"Cannot decode register id {token!r}: {e}",
                        line_number=index + 1,
                    ) from e
                saw_register_line = True
                registers.setdefault(current_register, {})

        if not saw_register_line:
            registers.setdefault(DEFAULT_REGISTER, {})
        return registers

    def _parse_address_line(self, line: str, index: int) -> Tuple[int, str]:
        stripped = line.lstrip("\t ")
        separator = stripped.find("\t")
        if separator < 0:
            separator = stripped.find(" ")

        if separator < 0:
            token, value = stripped, ""
        else:
            token, value = stripped[:separator], stripped[separator + 1 :]

        try:
            return decode(token, self.config.base), value
        except ValueError as e:
            raise BankParseError(
                ParseErrorKind.INVALID_ADDRESS_ID,
                f"Cannot decode address id {token!r}: {e}",
                line_number=index + 1,
            ) from e


def parse_bank(text: str, config: Optional[BankConfig] = None) -> Bank:
    """Parse bank text with the given configuration (see BankParser.parse)."""
    return BankParser(config).parse(text)
