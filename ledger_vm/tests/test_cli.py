from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import SK_ALICE, SK_BOB
from ledger_vm.cli.run import app
from ledger_vm.examples.bboard.contract import State, ledger, pure_circuits
from ledger_vm.runtime.hash_api import field_to_bytes
from ledger_vm.state.codec import decode_charged_state

runner = CliRunner()

ALICE = "0x" + SK_ALICE.hex()
BOB = SK_BOB.hex()


@pytest.fixture
def board_file(tmp_path: Path) -> Path:
    path = tmp_path / "board.cbor"
    res = runner.invoke(app, ["init", "--state", str(path), "--secret-key", ALICE])
    assert res.exit_code == 0, res.output
    return path


def show(path: Path) -> dict:
    res = runner.invoke(app, ["show", "--state", str(path), "--json"])
    assert res.exit_code == 0, res.output
    return json.loads(res.stdout.strip().splitlines()[-1])


def test_version_flag():
    res = runner.invoke(app, ["--version"])
    assert res.exit_code == 0
    assert res.stdout.startswith("ledger-vm ")
    assert "(state format v1)" in res.stdout


def test_init_writes_vacant_board(board_file: Path):
    view = ledger(decode_charged_state(board_file.read_bytes()))
    assert view.state is State.VACANT
    assert show(board_file) == {"state": "VACANT", "message": None, "sequence": 0, "owner": "0x" + "00" * 32}


def test_init_refuses_to_overwrite(board_file: Path):
    res = runner.invoke(app, ["init", "--state", str(board_file)])
    assert res.exit_code != 0
    res = runner.invoke(app, ["init", "--state", str(board_file), "--force"])
    assert res.exit_code == 0


def test_post_then_take_down(board_file: Path, tmp_path: Path):
    transcript = tmp_path / "post.json"
    res = runner.invoke(
        app,
        ["post", "--state", str(board_file), "-k", ALICE, "-m", "hello", "--transcript", str(transcript)],
    )
    assert res.exit_code == 0, res.output
    view = show(board_file)
    assert view["state"] == "OCCUPIED"
    assert view["message"] == "hello"
    assert view["sequence"] == 1

    proof = json.loads(transcript.read_text())
    assert proof["publicTranscript"]
    assert SK_ALICE.hex() not in json.dumps(proof["publicTranscript"])

    res = runner.invoke(app, ["take-down", "--state", str(board_file), "-k", ALICE])
    assert res.exit_code == 0, res.output
    assert show(board_file)["state"] == "VACANT"
    assert show(board_file)["sequence"] == 2


def test_failed_circuit_leaves_state_file_untouched(board_file: Path):
    assert runner.invoke(app, ["post", "-s", str(board_file), "-k", ALICE, "-m", "mine"]).exit_code == 0
    before = board_file.read_bytes()

    res = runner.invoke(app, ["take-down", "-s", str(board_file), "-k", BOB])
    assert res.exit_code == 1
    assert board_file.read_bytes() == before

    res = runner.invoke(app, ["post", "-s", str(board_file), "-k", BOB, "-m", "theirs"])
    assert res.exit_code == 1
    assert board_file.read_bytes() == before


def test_bad_secret_key_is_a_usage_error(board_file: Path):
    res = runner.invoke(app, ["post", "-s", str(board_file), "-k", "abcd", "-m", "x"])
    assert res.exit_code == 2


def test_missing_state_file(tmp_path: Path):
    res = runner.invoke(app, ["show", "--state", str(tmp_path / "nope.cbor")])
    assert res.exit_code == 2


def test_public_key_command():
    res = runner.invoke(app, ["public-key", "-k", ALICE, "--sequence", "3"])
    assert res.exit_code == 0
    expected = pure_circuits.public_key(SK_ALICE, field_to_bytes(32, 3))
    assert res.stdout.strip() == "0x" + expected.hex()


@pytest.mark.parametrize("command", [["post", "-k", ALICE, "-m", "x"], ["take-down", "-k", ALICE], ["show"]])
def test_corrupt_state_file_is_reported_not_raised(tmp_path: Path, command):
    path = tmp_path / "board.cbor"
    path.write_bytes(b"\xff\x00garbage")
    res = runner.invoke(app, [command[0], "--state", str(path), *command[1:]])
    assert res.exit_code == 1
    assert isinstance(res.exception, SystemExit)
    assert path.read_bytes() == b"\xff\x00garbage"
