"""Tests for the executor entry point and composition root."""

import logging

import pytest
import yaml

from runner.main_loop import ExecutorLoop, main
from tests.helpers.ledger_stubs import InMemoryLedger, account_fields, make_account


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def write_config(tmp_path, data):
    path = tmp_path / "executor.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


def test_validate_ok(tmp_path, capsys):
    path = write_config(tmp_path, {"network": "testnet"})
    assert main(["--config", path, "--validate"]) == 0
    assert "OK" in capsys.readouterr().out


def test_validate_reports_errors(tmp_path, capsys):
    path = write_config(tmp_path, {"network": "moonnet"})
    assert main(["--config", path, "--validate"]) == 1
    assert "network" in capsys.readouterr().err


def test_invalid_config_exit_code(tmp_path):
    path = write_config(tmp_path, {"execution": {"max_retries": -1}})
    assert main(["--config", path, "--once"]) == 2


def test_once_with_no_accounts(tmp_path):
    path = write_config(tmp_path, {"health_check": {"enabled": False}})
    assert main(["--config", path, "--once"]) == 0


def test_loop_wires_injected_ledger(tmp_path):
    account = make_account(1)
    path = write_config(tmp_path, {
        "health_check": {"enabled": False},
        "execution": {"dry_run": True},
        "accounts": [account.model_dump()],
    })
    ledger = InMemoryLedger(now_ms=lambda: 10**13)
    ledger.put(account.object_id, account_fields())

    loop = ExecutorLoop(config_path=path, ledger=ledger)
    results = loop.run_once()

    assert len(results) == 1
    assert results[0].success
    assert results[0].tx_digest == "DRY_RUN"
    assert ledger.submitted == []
    assert loop.scheduler.state.total_executions == 1
    assert loop.control_server is None
