# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# config.py

"""
Runtime settings, read from environment variables.

  SNARKBRIDGE_CACHE_DIR=./artifacts      # artifact cache root
  SNARKBRIDGE_BATCH_SIZE=2               # proofs per aggregate
  SNARKBRIDGE_WORKERS=4                  # threads for stage-1 proving
  SNARKBRIDGE_TOWER=simulation           # simulation | default
  SNARKBRIDGE_SEED=snarkbridge           # simulated backend seed
  SNARKBRIDGE_LOG_LEVEL=INFO
  SNARKBRIDGE_VERIFY_EXTERNAL=true       # verify external proofs before ingest
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from snarkbridge.curves import TOWERS

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _get(env: Mapping[str, str], key: str) -> str | None:
    v = env.get(key)
    return v.strip() if v is not None and v.strip() != "" else None


def _get_int(env: Mapping[str, str], key: str, default: int, minimum: int = 1) -> int:
    v = _get(env, key)
    if v is None:
        return default
    try:
        number = int(v, 10)
    except ValueError as e:
        raise ValueError(f"Invalid int for {key}: {v!r}") from e
    if number < minimum:
        raise ValueError(f"{key} must be at least {minimum}, got {number}")
    return number


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    v = _get(env, key)
    if v is None:
        return default
    if v.lower() in _TRUE:
        return True
    if v.lower() in _FALSE:
        return False
    raise ValueError(f"Invalid bool for {key}: {v!r}")


@dataclass(frozen=True)
class Settings:
    cache_dir: Path = Path("artifacts")
    batch_size: int = 2
    workers: int = 4
    tower: str = "simulation"
    seed: str = "snarkbridge"
    log_level: str = "INFO"
    verify_external: bool = True

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """
        Raises:
            ValueError: Naming the variable holding an invalid value.
        """
        env = os.environ if env is None else env
        tower = _get(env, "SNARKBRIDGE_TOWER") or cls.tower
        if tower not in TOWERS:
            raise ValueError(f"Invalid SNARKBRIDGE_TOWER: {tower!r}, expected one of {sorted(TOWERS)}")
        level = (_get(env, "SNARKBRIDGE_LOG_LEVEL") or cls.log_level).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid SNARKBRIDGE_LOG_LEVEL: {level!r}")
        return cls(
            cache_dir=Path(_get(env, "SNARKBRIDGE_CACHE_DIR") or cls.cache_dir),
            batch_size=_get_int(env, "SNARKBRIDGE_BATCH_SIZE", cls.batch_size),
            workers=_get_int(env, "SNARKBRIDGE_WORKERS", cls.workers),
            tower=tower,
            seed=_get(env, "SNARKBRIDGE_SEED") or cls.seed,
            log_level=level,
            verify_external=_get_bool(env, "SNARKBRIDGE_VERIFY_EXTERNAL", cls.verify_external),
        )
