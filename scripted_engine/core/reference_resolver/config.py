"""
Configuration loading for the bank engine.

Two layers:
- config.json next to the banks: numbering (prefix, base, padding widths).
  Every missing or malformed field silently falls back to its default.
- Environment (optionally from .env files): where the banks live, where
  resolved/exported output goes, and the resolution depth bound.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from .models import BankConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"
DEFAULT_ROOT = "banks"
DEFAULT_OUTPUT_SUBDIR = "out"
DEFAULT_MAX_DEPTH = 64

ENV_ROOT = "SCRIPTED_ROOT"
ENV_OUTPUT_DIR = "SCRIPTED_OUTPUT_DIR"
ENV_CONFIG = "SCRIPTED_CONFIG"
ENV_MAX_DEPTH = "SCRIPTED_MAX_DEPTH"


def load_config(path: Union[str, Path]) -> BankConfig:
    """
    Load the numbering configuration from a JSON file.

    A missing file or invalid JSON yields the default configuration; invalid
    individual fields fall back to their defaults one by one.
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return BankConfig()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.debug(f"Unreadable config at {path} ({e}), using defaults")
        return BankConfig()

    return BankConfig.from_dict(data)


def save_config(path: Union[str, Path], config: BankConfig) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")
    logger.info(f"Saved config to {path}")


@dataclass(frozen=True)
class EngineSettings:
    """Resolved locations and limits for one engine instance."""
    root: Path
    output_dir: Path
    config_path: Path
    config: BankConfig
    max_depth: int = DEFAULT_MAX_DEPTH

    def ensure_dirs(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)


def load_settings(root: Optional[Union[str, Path]] = None, env_file: Optional[Union[str, Path]] = None) -> EngineSettings:
    """
    Build EngineSettings from arguments, environment and .env files.

    Args:
        root: Bank directory; overrides SCRIPTED_ROOT when given
        env_file: Explicit .env file; the default .env lookup is used otherwise

    Returns:
        EngineSettings with the numbering config already loaded
    """
    # Load environment variables from .env (existing variables win)
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    root_path = Path(root) if root is not None else Path(os.getenv(ENV_ROOT) or DEFAULT_ROOT)
    output_dir = Path(os.getenv(ENV_OUTPUT_DIR) or root_path / DEFAULT_OUTPUT_SUBDIR)
    config_path = Path(os.getenv(ENV_CONFIG) or root_path / CONFIG_FILENAME)

    max_depth = DEFAULT_MAX_DEPTH
    raw_depth = os.getenv(ENV_MAX_DEPTH)
    if raw_depth:
        try:
            max_depth = int(raw_depth)
        except ValueError:
            logger.debug(f"Ignoring malformed {ENV_MAX_DEPTH}={raw_depth!r}")
        if max_depth < 1:
            max_depth = DEFAULT_MAX_DEPTH

    return EngineSettings(
        root=root_path,
        output_dir=output_dir,
        config_path=config_path,
        config=load_config(config_path),
        max_depth=max_depth,
    )
