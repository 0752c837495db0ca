"""
Bank reference resolver module.

This module parses and writes bank documents, manages the set of loaded
banks, and expands the cross-bank references embedded in their values.

The main entry points are the Workspace and ReferenceResolver classes; the
BankSession class bundles them for interactive front ends.
"""

# Codec and format
from scripted_engine.core.reference_resolver.numeral_codec import encode, decode, try_decode
from scripted_engine.core.reference_resolver.bank_parser import BankParser, parse_bank
from scripted_engine.core.reference_resolver.bank_serializer import BankSerializer, write_bank

# Configuration
from scripted_engine.core.reference_resolver.config import (
    EngineSettings,
    load_config,
    load_settings,
    save_config,
)

# Storage, workspace and resolution
from scripted_engine.core.reference_resolver.storage import BankStorage, FileBankStorage
from scripted_engine.core.reference_resolver.workspace import Workspace
from scripted_engine.core.reference_resolver.reference_resolver import ReferenceResolver
from scripted_engine.core.reference_resolver.exporter import BankExporter
from scripted_engine.core.reference_resolver.session import (
    BankSession,
    NoCurrentBankError,
    SessionBusyError,
)

# Data models
from scripted_engine.core.reference_resolver.models import (
    Bank,
    BankConfig,
    BankParseError,
    MissingContextError,
    ParseErrorKind,
    ResolvedRow,
    Row,
)

__all__ = [
    # Codec and format
    'encode',
    'decode',
    'try_decode',
    'BankParser',
    'parse_bank',
    'BankSerializer',
    'write_bank',

    # Configuration
    'EngineSettings',
    'load_config',
    'load_settings',
    'save_config',

    # Components
    'BankStorage',
    'FileBankStorage',
    'Workspace',
    'ReferenceResolver',
    'BankExporter',
    'BankSession',
    'NoCurrentBankError',
    'SessionBusyError',

    # Data models
    'Bank',
    'BankConfig',
    'BankParseError',
    'MissingContextError',
    'ParseErrorKind',
    'ResolvedRow',
    'Row',
]
