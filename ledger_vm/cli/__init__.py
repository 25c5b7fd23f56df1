"""
ledger_vm.cli
-------------

Command-line entrypoint for the bulletin board example.

Exposed as the `ledger-vm` console script (ledger_vm.cli.run:main) and as
``python -m ledger_vm.cli``.
"""

from __future__ import annotations

from importlib import import_module
from typing import Callable, Dict

ENTRYPOINTS: Dict[str, str] = {
    "run": "ledger_vm.cli.run:main",
}


def resolve_entrypoint(name: str) -> Callable[[], int]:
    """Resolve a CLI name to its `main()` callable without importing it eagerly."""
    try:
        target = ENTRYPOINTS[name]
    except KeyError:
        raise KeyError(f"unknown CLI entrypoint {name!r}; known: {sorted(ENTRYPOINTS)}") from None
    mod_name, fn_name = target.split(":", 1)
    return getattr(import_module(mod_name), fn_name)


__all__ = ["ENTRYPOINTS", "resolve_entrypoint"]
