"""
Pytest configuration and fixtures for DCA executor tests.

This conftest.py provides shared fixtures for all tests.
"""
import pytest

from core.account_reader import AccountStateReader
from core.constants import load_constants
from core.cycle_runner import CycleRunner
from core.submitter import Submitter
from core.swap_builder import SwapPlanBuilder
from tests.helpers.ledger_stubs import SIGNER, T0, InMemoryLedger
from tools.config_validator import ExecutionConfig


class FakeClock:
    """Controllable millisecond clock."""

    def __init__(self, now_ms: int = T0):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock():
    return FakeClock(T0 + 3_600_000)


@pytest.fixture
def object_ids():
    return load_constants(environ={})


@pytest.fixture
def ledger(clock):
    return InMemoryLedger(now_ms=clock)


@pytest.fixture
def execution_config():
    return ExecutionConfig(max_retries=2, retry_delay_ms=100, dry_run=False)


@pytest.fixture
def sleeps():
    """Collects sleep durations instead of sleeping."""
    return []


@pytest.fixture
def cycle_runner(ledger, object_ids, execution_config, clock, sleeps):
    return CycleRunner(
        reader=AccountStateReader(ledger),
        builder=SwapPlanBuilder(SIGNER, object_ids),
        submitter=Submitter(ledger),
        execution_config=execution_config,
        clock_ms=clock,
        sleep=sleeps.append,
    )
