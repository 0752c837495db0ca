"""
Serializer producing the canonical bank text layout.
"""

from typing import List, Optional

from .models import DEFAULT_REGISTER, Bank, BankConfig


class BankSerializer:
    """
    Writes a Bank in canonical form.

    Registers and addresses are emitted in ascending order with the configured
    padding widths. The register header is omitted when register 1 is the only
    register, which the parser reads back as the implicit default register.
    """

    def __init__(self, config: Optional[BankConfig] = None):
        self.config = config or BankConfig()

    def write(self, bank: Bank) -> str:
        cfg = self.config
        lines: List[str] = [f"{cfg.bank_key(bank.bank_id)}\t({bank.title}){{"]

        show_register_headers = len(bank.registers) > 1 or (
            len(bank.registers) == 1 and DEFAULT_REGISTER not in bank.registers
        )

        for reg, addresses in sorted(bank.registers.items()):
            if show_register_headers:
                lines.append(cfg.reg_key(reg))
            for addr in sorted(addresses):
                lines.append(f"\t{cfg.addr_key(addr)}\t{addresses[addr]}")

        lines.append("}")
        return "\n".join(lines) + "\n"


def write_bank(bank: Bank, config: Optional[BankConfig] = None) -> str:
    """Serialize a bank with the given configuration (see BankSerializer.write)."""
    return BankSerializer(config).write(bank)
