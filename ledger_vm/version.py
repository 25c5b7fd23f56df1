"""ledger_vm.version — package version and the state-file format it writes.

- __version__: installed distribution version, ``LEDGER_VM_VERSION`` when set,
  else FALLBACK_VERSION (source checkouts that were never installed)
- banner(): one-line ``ledger-vm <version> (state format v<N>)`` for the CLI
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata as importlib_metadata

DIST_NAME = "ledger-vm"
FALLBACK_VERSION = "0.1.0"


@lru_cache(maxsize=1)
def compute_version() -> str:
    val = os.getenv("LEDGER_VM_VERSION")
    if val:
        return val
    try:
        return importlib_metadata.version(DIST_NAME)
    except importlib_metadata.PackageNotFoundError:
        return FALLBACK_VERSION


def banner() -> str:
    # state.codec pulls in cbor2; keep `import ledger_vm` light
    from .state.codec import VERSION as STATE_FORMAT

    return f"{DIST_NAME} {compute_version()} (state format v{STATE_FORMAT})"


__version__ = compute_version()

__all__ = ["__version__", "DIST_NAME", "FALLBACK_VERSION", "compute_version", "banner"]
