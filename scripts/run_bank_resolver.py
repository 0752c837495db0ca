"""
Resolve bank(s) and write the fully expanded output.

Steps per bank:
  - Load the bank (referenced banks are loaded on demand)
  - Resolve every value (@file inclusions, triple and pair references)
  - Write <bankKey>.resolved.txt and/or <bankKey>.json to the output directory

Usage example:
  poetry run python scripts/run_bank_resolver.py --root banks --bank x00001 --bank x00002 --format both
  poetry run python scripts/run_bank_resolver.py --all --log-level DEBUG

Environment (also read from .env.local / .env):
  SCRIPTED_ROOT, SCRIPTED_OUTPUT_DIR, SCRIPTED_CONFIG, SCRIPTED_MAX_DEPTH
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from scripted_engine.core.reference_resolver.config import load_settings
from scripted_engine.core.reference_resolver.models import MissingContextError
from scripted_engine.core.reference_resolver.session import BankSession


def run_on_banks(session: BankSession, names: List[str], fmt: str) -> int:
    failures = 0
    for name in names:
        try:
            status = session.open_existing(name)
        except MissingContextError:
            print(f"❌ No such bank: {name}")
            failures += 1
            continue
        except ValueError as e:
            # Bad names and unparsable banks
            print(f"❌ {e}")
            failures += 1
            continue
        print(f"📋 {status}")

        if fmt in ("text", "both"):
            print(f"✅ Resolved -> {session.resolve_to_file()}")
        if fmt in ("json", "both"):
            print(f"✅ Exported JSON -> {session.export_json()}")
    return failures


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--bank", action="append", default=[], help="Bank to resolve, e.g. x00001 (repeatable)")
    ap.add_argument("--all", action="store_true", help="Resolve every bank found under the root")
    ap.add_argument("--root", default=None, help="Bank directory (overrides SCRIPTED_ROOT)")
    ap.add_argument("--format", choices=["text", "json", "both"], default="text")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Load environment variables (prefer local override if present)
    project_root = Path(__file__).resolve().parents[1]
    load_dotenv(project_root / ".env.local")
    settings = load_settings(root=args.root, env_file=project_root / ".env")
    settings.ensure_dirs()

    session = BankSession.from_settings(settings)
    try:
        names = list(args.bank)
        if args.all:
            session.preload()
            names.extend(session.config.bank_key(bank_id) for bank_id, _ in session.workspace.bank_list())
        if not names:
            raise SystemExit("No banks provided")

        failures = run_on_banks(session, names, args.format)
    finally:
        session.close()

    if failures:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
