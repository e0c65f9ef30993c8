#!/usr/bin/env python3
"""
Pipeline configuration.

Configuration lives in a YAML file:

```yaml
source_set: main
base_locale: en
keep_fuzzy: false
orphan_policy: drop      # drop | fail | keep
strict_acquisition: false
workers: 4
pot:
  package_name: myapp
  package_version: "1.0"
  copyright_holder: Jane Doe
```
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional, Union

import yaml

from .normalizer import OrphanPolicy
from .template import PotMetadata

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """
    Settings of one compile run.

    Attributes:
        keep_fuzzy: Keep fuzzy translations instead of dropping them
        orphan_policy: Handling of translations the template does not know
        base_locale: Locale every lookup falls back to
        strict_acquisition: Abort when any locale catalog cannot be obtained
        source_set: Name of the source set, used for output paths
        workers: Thread count for per-locale processing
        synthesize_base: Build the base locale catalog from the template
            msgids when no translation file exists for it
        year: Replaces YEAR in catalog headers (current year when unset)
        pot: Header values for the generated POT file
    """
    keep_fuzzy: bool = False
    orphan_policy: OrphanPolicy = OrphanPolicy.DROP
    base_locale: str = "en"
    strict_acquisition: bool = False
    source_set: str = "main"
    workers: int = 4
    synthesize_base: bool = False
    year: Optional[int] = None
    pot: PotMetadata = field(default_factory=PotMetadata)

    def __post_init__(self):
        self.orphan_policy = OrphanPolicy(self.orphan_policy)
        if isinstance(self.pot, dict):
            self.pot = PotMetadata(**self.pot)
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if not self.base_locale:
            raise ValueError("base_locale must not be empty")

    def to_dict(self) -> dict:
        """Convert to dictionary for YAML/JSON serialization."""
        data = asdict(self)
        data["orphan_policy"] = self.orphan_policy.value
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PipelineConfig":
        """
        Create from dictionary.

        Raises:
            ValueError: On unknown keys or invalid values
        """
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        pot = data.get("pot")
        if pot is not None:
            if not isinstance(pot, dict):
                raise ValueError("'pot' must be a mapping")
            pot_known = {f.name for f in fields(PotMetadata)}
            pot_unknown = sorted(set(pot) - pot_known)
            if pot_unknown:
                raise ValueError(f"Unknown pot keys: {', '.join(pot_unknown)}")
        try:
            return cls(**data)
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e


def load_config(path: Union[str, Path]) -> PipelineConfig:
    """
    Load a PipelineConfig from a YAML file.

    Raises:
        ValueError: If the file is not valid YAML or holds invalid settings
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Configuration in {path} must be a mapping")
    config = PipelineConfig.from_dict(data)
    logger.debug(f"Loaded configuration from {path}: {config.to_dict()}")
    return config


def dump_config(config: PipelineConfig) -> str:
    """Render a configuration as YAML."""
    return yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True)
