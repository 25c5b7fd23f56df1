"""
ledger_vm.config — interpreter caps, cost limit and logging level.

This module centralizes configuration for the path interpreter and state tree.
It has NO third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (LEDGER_VM_*)
  2) Hardcoded safe defaults below

Key env vars:
  - LEDGER_VM_MAX_STACK_DEPTH  (int)   default: 256
  - LEDGER_VM_MAX_PATH_LENGTH  (int)   default: 32
  - LEDGER_VM_MAX_ARRAY_LEN    (int)   default: 16
  - LEDGER_VM_MAX_CELL_BYTES   (int)   default: 65_536
  - LEDGER_VM_COST_LIMIT       (int)   default: 0 (unlimited)
  - LEDGER_VM_LOG_LEVEL        (str)   default: WARNING

Usage:
    from ledger_vm.config import load_config
    CFG = load_config()
    if len(stack) > CFG.max_stack_depth: ...

`load_config()` is cached; tests that patch the environment must call
`load_config.cache_clear()` afterwards.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict

ENV_PREFIX = "LEDGER_VM_"


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_log_level(name: str, default: str) -> str:
    raw = (os.getenv(ENV_PREFIX + name) or "").strip().upper()
    if raw and isinstance(logging.getLevelName(raw), int):
        return raw
    return default


@dataclass(frozen=True)
class LedgerVMConfig:
    # Interpreter caps
    max_stack_depth: int
    max_path_length: int

    # State tree caps
    max_array_len: int
    max_cell_bytes: int

    # Cost accounting (0 disables the cap)
    cost_limit: int

    log_level: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "max_stack_depth": self.max_stack_depth,
            "max_path_length": self.max_path_length,
            "max_array_len": self.max_array_len,
            "max_cell_bytes": self.max_cell_bytes,
            "cost_limit": self.cost_limit,
            "log_level": self.log_level,
        }


@lru_cache(maxsize=1)
def load_config() -> LedgerVMConfig:
    """Build and cache a LedgerVMConfig from environment + safe defaults."""
    return LedgerVMConfig(
        max_stack_depth=_env_int("MAX_STACK_DEPTH", 256, min_v=8, max_v=65_536),
        max_path_length=_env_int("MAX_PATH_LENGTH", 32, min_v=1, max_v=1_024),
        max_array_len=_env_int("MAX_ARRAY_LEN", 16, min_v=1, max_v=1_024),
        max_cell_bytes=_env_int("MAX_CELL_BYTES", 65_536, min_v=64, max_v=16_777_216),
        cost_limit=_env_int("COST_LIMIT", 0, min_v=0, max_v=1 << 62),
        log_level=_env_log_level("LOG_LEVEL", "WARNING"),
    )


__all__ = ["LedgerVMConfig", "load_config", "ENV_PREFIX"]
