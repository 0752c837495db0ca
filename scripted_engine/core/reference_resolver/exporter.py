"""
Exports of fully resolved banks: canonical bank text and JSON.
"""

import json
import logging
from typing import Any, Dict, Optional

from .bank_serializer import BankSerializer
from .models import Bank, BankConfig
from .reference_resolver import ReferenceResolver

logger = logging.getLogger(__name__)


class BankExporter:
    """Renders a bank after resolving every value."""

    def __init__(self, resolver: ReferenceResolver, config: Optional[BankConfig] = None):
        self.resolver = resolver
        self.config = config or resolver.config
        self.serializer = BankSerializer(self.config)

    def resolved_filename(self, bank_id: int) -> str:
        return f"{self.config.bank_key(bank_id)}.resolved.txt"

    def json_filename(self, bank_id: int) -> str:
        return f"{self.config.bank_key(bank_id)}.json"

    def to_resolved_text(self, bank_id: int) -> str:
        """The bank in canonical layout with each value replaced by its resolution."""
        bank = self.resolver.workspace.ensure_loaded(bank_id)
        resolved = Bank(bank_id=bank.bank_id, title=bank.title,
                        registers={reg: {} for reg in bank.registers})
        for row in self.resolver.resolve_bank(bank_id):
            resolved.registers[row.reg][row.addr] = row.resolved
        return self.serializer.write(resolved)

    def to_dict(self, bank_id: int) -> Dict[str, Any]:
        bank = self.resolver.workspace.ensure_loaded(bank_id)
        registers: Dict[str, Dict[str, Dict[str, str]]] = {
            self.config.reg_key(reg): {} for reg in sorted(bank.registers)
        }
        for row in self.resolver.resolve_bank(bank_id):
            registers[self.config.reg_key(row.reg)][self.config.addr_key(row.addr)] = {
                "raw": row.raw,
                "resolved": row.resolved,
            }
        return {
            "bank": self.config.bank_key(bank_id),
            "id": bank_id,
            "title": bank.title,
            "registers": registers,
        }

    def to_json(self, bank_id: int) -> str:
        document = json.dumps(self.to_dict(bank_id), ensure_ascii=False, indent=2) + "\n"
        logger.info(f"Exported bank {self.config.bank_key(bank_id)} to JSON ({len(document)} chars)")
        return document
