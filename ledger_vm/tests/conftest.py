from __future__ import annotations

import pytest

from ledger_vm.config import ENV_PREFIX, load_config
from ledger_vm.examples.bboard.contract import BBoardPrivateState, BBoardWitnesses, Contract
from ledger_vm.runtime.context import ConstructorContext, create_circuit_context, dummy_contract_address

SK_ALICE = bytes(range(1, 33))
SK_BOB = bytes(range(101, 133))


@pytest.fixture
def env(monkeypatch):
    """Set LEDGER_VM_* variables for one test; the config cache is reset around it."""

    def set_env(**values):
        for name, value in values.items():
            monkeypatch.setenv(ENV_PREFIX + name, str(value))
        load_config.cache_clear()

    yield set_env
    load_config.cache_clear()


@pytest.fixture
def contract() -> Contract:
    return Contract(BBoardWitnesses())


@pytest.fixture
def fresh_board(contract: Contract):
    """(contract, ChargedState) of a freshly constructed board."""
    res = contract.initial_state(ConstructorContext(BBoardPrivateState(SK_ALICE)))
    return contract, res.current_contract_state.data


def ctx_for(state, sk: bytes):
    return create_circuit_context(dummy_contract_address(), state, BBoardPrivateState(sk))
