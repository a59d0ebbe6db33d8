"""
Extraction settings, loaded from YAML.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .codec import DEFAULT_BLOCK_SIZE


DEFAULT_CONFIG_PATH = "configs/default.yaml"


@dataclass
class ExtractConfig:
    """Extraction configuration."""
    # Archive reads
    block_size: int = DEFAULT_BLOCK_SIZE

    # Temporary storage
    temp_dir: Optional[str] = None
    temp_prefix: str = "tmpXGI"

    # Export
    output_dir: Optional[str] = None

    verbose: bool = False

    def __post_init__(self):
        if self.block_size <= 0:
            raise ValueError(f"block_size must be positive, got {self.block_size}")


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> ExtractConfig:
    """Load configuration from YAML file; a missing file gives defaults."""
    path = Path(config_path)
    if not path.exists():
        return ExtractConfig()

    with open(path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config must be a mapping: {config_path}")

    known = {f.name for f in fields(ExtractConfig)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown config keys in {config_path}: {', '.join(sorted(unknown))}")

    return ExtractConfig(**raw)
