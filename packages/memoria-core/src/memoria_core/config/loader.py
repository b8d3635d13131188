"""YAML config loading for memoria.

Files are tried in order: an explicit ``--config`` path, ``./memoria.yaml``,
then ``~/.memoria/config.yaml``. The first non-empty file wins; with none,
defaults apply. String values may reference the environment as ``${VAR}``
or ``${VAR:-fallback}``.
"""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import MemoriaConfig

_ENV_REF_RE = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def _candidate_paths(cli_path: str | None) -> list[Path]:
    paths = [Path("./memoria.yaml"), Path.home() / ".memoria" / "config.yaml"]
    if cli_path:
        explicit = Path(cli_path)
        if not explicit.is_file():
            raise ValueError(f"Config file not found: {explicit}")
        paths.insert(0, explicit)
    return paths


def _read_yaml(path: Path) -> dict | None:
    """Parsed mapping from *path*, or None for an empty file."""
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValueError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config in {path}: top level must be a mapping")
    return raw


def load_config(cli_path: str | None = None) -> MemoriaConfig:
    """Resolve the effective config: CLI > project-local > user-global > defaults."""
    for path in _candidate_paths(cli_path):
        if not path.exists():
            continue
        raw = _read_yaml(path)
        if raw is None:
            continue
        try:
            return MemoriaConfig(**_expand_env_vars(raw))
        except ValidationError as e:
            raise ValueError(f"Invalid config in {path}: {e}") from e
    return MemoriaConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} and ${VAR:-fallback} in strings.

    An unset variable without a fallback expands to the empty string.
    """
    if isinstance(obj, str):
        return _ENV_REF_RE.sub(lambda m: os.environ.get(m.group(1), m.group(2) or ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `memoria config init`
DEFAULT_CONFIG_TEMPLATE = """\
# memoria.yaml

# Ledger
ledger:
  admin: "admin"               # principal allowed to commit, replace and reset
  max_path_hops: 256           # upper bound for leaf-to-root walks

# Storage
storage:
  backend: "sqlite"            # sqlite | memory
  path: ".memoria/ledger.db"

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
