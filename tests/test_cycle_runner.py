"""
Tests for CycleRunner.

Wires the real reader, builder and submitter against InMemoryLedger so the
whole per-account pipeline is exercised without a network.
"""

import pytest

from core.exceptions import CycleAbortedError
from core.models import DRY_RUN_DIGEST
from tests.helpers.ledger_stubs import HOUR_MS, T0, account_fields, account_id, make_account
from tools.config_validator import ExecutionConfig


def test_ready_account_is_executed(cycle_runner, ledger):
    account = make_account(1)
    ledger.put(account.object_id, account_fields())

    results = cycle_runner.run_cycle([account])

    assert len(results) == 1
    assert results[0].success
    assert results[0].tx_digest == "Digest1"
    assert results[0].account_id == account.object_id
    assert len(ledger.submitted) == 1


def test_failure_does_not_stop_other_accounts(cycle_runner, ledger):
    missing = make_account(1)
    healthy = make_account(2)
    ledger.put(healthy.object_id, account_fields())

    results = cycle_runner.run_cycle([missing, healthy])

    assert [r.account_id for r in results] == [missing.object_id, healthy.object_id]
    assert not results[0].success
    assert results[0].error.startswith("Failed to fetch account state")
    assert results[1].success


def test_disabled_accounts_are_not_read(cycle_runner, ledger):
    account = make_account(1, enabled=False)
    ledger.put(account.object_id, account_fields())

    report = cycle_runner.run_cycle_report([account])

    assert report.results == []
    assert report.skipped == [(account.object_id, "disabled")]
    assert ledger.reads == []


@pytest.mark.parametrize("fields,reason", [
    (dict(active=False), "inactive"),
    (dict(remaining_orders=0), "exhausted"),
    (dict(input_balance=0), "no balance"),
    (dict(last_time_ms=T0 + HOUR_MS), "too early"),
])
def test_not_ready_accounts_produce_no_result(cycle_runner, ledger, fields, reason):
    account = make_account(1)
    ledger.put(account.object_id, account_fields(**fields))

    report = cycle_runner.run_cycle_report([account])

    assert report.results == []
    assert report.skipped == [(account.object_id, reason)]
    assert ledger.submitted == []


def test_second_cycle_skips_until_interval_elapses(cycle_runner, ledger, clock):
    account = make_account(1)
    ledger.put(account.object_id, account_fields())

    assert cycle_runner.run_cycle([account])[0].success
    assert cycle_runner.run_cycle([account]) == []

    clock.advance(HOUR_MS)
    assert cycle_runner.run_cycle([account])[0].success
    assert len(ledger.submitted) == 2


def test_delegatee_mismatch_fails_without_submission(cycle_runner, ledger, sleeps):
    account = make_account(1)
    ledger.put(account.object_id, account_fields(delegatee="0x" + "11" * 32))

    results = cycle_runner.run_cycle([account])

    assert len(results) == 1
    assert not results[0].success
    assert "Delegatee mismatch" in results[0].error
    assert ledger.submitted == []
    assert sleeps == []


def test_unimplemented_adapter_is_failed_result(cycle_runner, ledger):
    account = make_account(1, adapter="turbos")
    ledger.put(account.object_id, account_fields())

    results = cycle_runner.run_cycle([account])

    assert results[0].error == "Adapter turbos not yet implemented"
    assert ledger.submitted == []


def test_transient_submission_failure_is_retried(cycle_runner, ledger, sleeps):
    account = make_account(1)
    ledger.put(account.object_id, account_fields())
    ledger.submit_failures = 2

    results = cycle_runner.run_cycle([account])

    assert results[0].success
    assert results[0].attempts == 3
    assert sleeps == [0.1, 0.1]


def test_retries_exhausted_is_failed_result(cycle_runner, ledger):
    account = make_account(1)
    ledger.put(account.object_id, account_fields())
    ledger.submit_failures = 10

    results = cycle_runner.run_cycle([account])

    assert not results[0].success
    assert results[0].attempts == 3
    assert "connection reset" in results[0].error
    assert len(ledger.submitted) == 3


def test_dry_run_override_simulates_only(cycle_runner, ledger):
    account = make_account(1)
    ledger.put(account.object_id, account_fields())

    results = cycle_runner.run_cycle([account], execution_config=ExecutionConfig(dry_run=True))

    assert results[0].success
    assert results[0].tx_digest == DRY_RUN_DIGEST
    assert ledger.submitted == []
    assert len(ledger.simulated) == 1


def test_accepts_any_iterable_of_accounts(cycle_runner, ledger):
    accounts = [make_account(n) for n in (1, 2)]
    for account in accounts:
        ledger.put(account.object_id, account_fields())

    results = cycle_runner.run_cycle(a for a in accounts)

    assert [r.account_id for r in results] == [account_id(1), account_id(2)]


@pytest.mark.parametrize("accounts", [None, "0x1", {"object_id": "0x1"}, [make_account(1), {"bad": 1}], 42])
def test_corrupt_account_list_aborts_cycle(cycle_runner, ledger, accounts):
    with pytest.raises(CycleAbortedError):
        cycle_runner.run_cycle(accounts)
    assert ledger.reads == []


def test_skip_reasons_reach_metrics(ledger, cycle_runner):
    recorded = []

    class Recorder:
        def record_skip(self, reason):
            recorded.append(reason)

    cycle_runner.metrics = Recorder()
    account = make_account(1)
    ledger.put(account.object_id, account_fields(active=False))

    cycle_runner.run_cycle([account])

    assert recorded == ["inactive"]


def test_reloaded_gas_budget_reaches_the_plan(cycle_runner, ledger, clock):
    account = make_account(1)
    ledger.put(account.object_id, account_fields())

    cycle_runner.run_cycle([account])
    clock.advance(HOUR_MS)
    cycle_runner.run_cycle([account], execution_config=ExecutionConfig(gas_budget=99_000_000))

    assert [plan.gas_budget for plan in ledger.submitted] == [25_000_000, 99_000_000]


def test_reports_are_independent_per_call(cycle_runner, ledger):
    ready = make_account(1)
    idle = make_account(2)
    ledger.put(ready.object_id, account_fields())
    ledger.put(idle.object_id, account_fields(active=False))

    first = cycle_runner.run_cycle_report([idle])
    second = cycle_runner.run_cycle_report([ready])

    assert first.skipped == [(idle.object_id, "inactive")]
    assert second.skipped == []
    assert len(second.results) == 1
