"""
Pool configuration loading.

Precedence, lowest to highest:
    PoolConfig defaults → YAML file → TASKMILL_* environment → overrides

A .env file in the working directory is loaded (without overriding the real
environment) when this module is imported.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from taskmill.errors import InvalidConfigurationError
from .schemas import PoolConfig

load_dotenv()


ENV_PREFIX = "TASKMILL_"


def _env_values() -> Dict[str, str]:
    values = {}
    for name in PoolConfig.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw.strip() != "":
            values[name] = raw.strip()
    return values


def _file_values(path: Path) -> Dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise InvalidConfigurationError(
            f"{path}: expected a mapping at the top level, got {type(data).__name__}"
        )

    # Allow either a bare mapping or one nested under a "pool" key
    if "pool" in data and isinstance(data["pool"], dict):
        data = data["pool"]

    unknown = set(data) - set(PoolConfig.model_fields)
    if unknown:
        raise InvalidConfigurationError(
            f"{path}: unknown pool settings: {', '.join(sorted(unknown))}"
        )
    return data


def build_config(
    base: Optional[PoolConfig] = None,
    **overrides: Any
) -> PoolConfig:
    """
    Merge keyword overrides onto a base config (or onto defaults).

    Overrides whose value is None are ignored so callers can forward optional
    arguments without clobbering configured values.
    """
    values: Dict[str, Any] = base.model_dump(exclude_unset=True) if base else {}
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return PoolConfig.model_validate(values)
    except ValidationError as e:
        raise InvalidConfigurationError(str(e)) from e


def load_pool_config(
    path: Optional[Union[str, Path]] = None,
    use_env: bool = True,
    **overrides: Any
) -> PoolConfig:
    """
    Load a PoolConfig from an optional YAML file plus the environment.

    Args:
        path: YAML file with pool settings (missing file is an error)
        use_env: Read TASKMILL_* environment variables
        **overrides: Highest-precedence values

    Returns:
        Validated, frozen PoolConfig
    """
    values: Dict[str, Any] = {}

    if path is not None:
        path = Path(path).expanduser()
        if not path.exists():
            raise InvalidConfigurationError(f"Config file not found: {path}")
        values.update(_file_values(path))

    if use_env:
        values.update(_env_values())

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return PoolConfig.model_validate(values)
    except ValidationError as e:
        raise InvalidConfigurationError(str(e)) from e
