"""Configuration loading from environment variables and koi.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from koi.memory.registry import DEFAULT_REGISTRY_PATH
from koi.memory.store import MEMORIES_DIRNAME

_CONFIG_FILENAME = "koi.toml"


@dataclass
class RecallConfig:
    """Defaults for the recall tool."""

    default_limit: int = 10
    scorer: str = "substring"
    threshold: float | None = None


@dataclass
class KoiConfig:
    """Top-level koi configuration."""

    project_dir: Path = field(default_factory=Path.cwd)
    registry_path: Path = DEFAULT_REGISTRY_PATH
    memories_dirname: str = MEMORIES_DIRNAME
    recall: RecallConfig = field(default_factory=RecallConfig)
    git_timeout: float = 10
    log_level: str = "INFO"


def _optional_float(value) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def load_config(config_path: Path | None = None) -> KoiConfig:
    """Load configuration from environment variables and optional koi.toml.

    Priority: environment variables > koi.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.koi/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".koi" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    recall_data = file_data.get("recall", {})

    project_dir = os.getenv("KOI_PROJECT_DIR", file_data.get("project_dir"))
    config = KoiConfig(
        project_dir=Path(project_dir).expanduser() if project_dir else Path.cwd(),
        registry_path=Path(
            os.getenv("KOI_REGISTRY", file_data.get("registry_path", str(DEFAULT_REGISTRY_PATH)))
        ).expanduser(),
        memories_dirname=file_data.get("memories_dirname", MEMORIES_DIRNAME),
        recall=RecallConfig(
            default_limit=int(
                os.getenv("KOI_RECALL_LIMIT", recall_data.get("default_limit", 10))
            ),
            scorer=os.getenv("KOI_SCORER", recall_data.get("scorer", "substring")),
            threshold=_optional_float(
                os.getenv("KOI_THRESHOLD", recall_data.get("threshold"))
            ),
        ),
        git_timeout=float(os.getenv("KOI_GIT_TIMEOUT", file_data.get("git_timeout", 10))),
        log_level=os.getenv("KOI_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
