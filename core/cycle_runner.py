"""
Cycle Runner - one pass over every configured DCA account

Per account flow:
1. Skip disabled accounts
2. Read a fresh snapshot (read error -> failed result)
3. Evaluate readiness (not ready -> skipped, no result)
4. Build the swap plan (config error -> failed result, never retried)
5. Submit with bounded retries (-> succeeded | failed)

Accounts run sequentially in config order. Any failure inside one account's
pipeline becomes a failed ExecutionResult and the loop moves on.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from core.account_reader import AccountStateReader
from core.exceptions import ConfigurationError, CycleAbortedError
from core.models import ExecutionResult
from core.readiness import evaluate_readiness
from core.retry import with_retry
from core.submitter import Submitter
from core.swap_builder import SwapPlanBuilder
from tools.config_validator import AccountConfig, ExecutionConfig

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CycleReport:
    """Results of one pass plus the (account_id, reason) pairs that were skipped."""
    results: List[ExecutionResult] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)


class CycleRunner:
    def __init__(
        self,
        reader: AccountStateReader,
        builder: SwapPlanBuilder,
        submitter: Submitter,
        execution_config: ExecutionConfig,
        clock_ms: Callable[[], int] = _now_ms,
        sleep: Callable[[float], None] = time.sleep,
        metrics=None,
    ):
        self.reader = reader
        self.builder = builder
        self.submitter = submitter
        self.execution_config = execution_config
        self.clock_ms = clock_ms
        self.sleep = sleep
        self.metrics = metrics

    def run_cycle(
        self,
        accounts: Sequence[AccountConfig],
        execution_config: Optional[ExecutionConfig] = None,
    ) -> List[ExecutionResult]:
        """
        Process every account once and return results for those that were
        attempted. Skipped accounts produce no result. execution_config,
        when given, overrides the settings bound at construction (hot reload).
        """
        return self.run_cycle_report(accounts, execution_config).results

    def run_cycle_report(
        self,
        accounts: Sequence[AccountConfig],
        execution_config: Optional[ExecutionConfig] = None,
    ) -> CycleReport:
        """
        Same as run_cycle, but also returns the skipped accounts. Each call
        builds its own report.

        Raises:
            CycleAbortedError: the account list is not a sequence of AccountConfig
        """
        accounts = self._check_account_list(accounts)
        execution = execution_config or self.execution_config

        results: List[ExecutionResult] = []
        skipped: List[Tuple[str, str]] = []

        for account in accounts:
            if not account.enabled:
                logger.debug(f"Skipping disabled account {account.object_id}")
                skipped.append((account.object_id, "disabled"))
                continue

            try:
                result, skip_reason = self._process_account(account, execution)
            except Exception as e:
                logger.error(f"Unexpected failure processing {account.object_id}: {e}", exc_info=True)
                result, skip_reason = ExecutionResult.failed(account.object_id, str(e), self.clock_ms()), None

            if skip_reason is not None:
                skipped.append((account.object_id, skip_reason))
                if self.metrics:
                    self.metrics.record_skip(skip_reason)
                continue
            results.append(result)

        return CycleReport(results=results, skipped=skipped)

    def _process_account(
        self, account: AccountConfig, execution: ExecutionConfig
    ) -> Tuple[Optional[ExecutionResult], Optional[str]]:
        account_id = account.object_id

        read = self.reader.read(account_id)
        if not read.ok:
            return ExecutionResult.failed(
                account_id, f"Failed to fetch account state: {read.error}", self.clock_ms()
            ), None

        snapshot = read.snapshot
        decision = evaluate_readiness(snapshot, self.clock_ms())
        if not decision.ready:
            logger.debug(
                f"Account {account_id} not ready: {decision.reason}"
                + (f" (next eligible at {decision.next_eligible_at_ms})" if decision.next_eligible_at_ms else "")
            )
            return None, decision.reason

        logger.info(
            f"Executing DCA trade for {account_id} via {account.adapter} "
            f"(remaining_orders={snapshot.remaining_orders})"
        )

        try:
            plan = self.builder.build(account, snapshot, gas_budget=execution.gas_budget)
        except ConfigurationError as e:
            logger.error(f"Cannot build plan for {account_id}: {e}")
            return ExecutionResult.failed(account_id, str(e), self.clock_ms()), None

        dry_run = execution.dry_run
        result = with_retry(
            account_id,
            lambda: self.submitter.submit(plan, dry_run=dry_run),
            max_retries=execution.max_retries,
            delay_ms=execution.retry_delay_ms,
            sleep=self.sleep,
            clock_ms=self.clock_ms,
        )
        return result, None

    @staticmethod
    def _check_account_list(accounts) -> List[AccountConfig]:
        if accounts is None or isinstance(accounts, (str, bytes, dict)):
            raise CycleAbortedError(f"Account list is corrupt: {type(accounts).__name__}")
        try:
            items = list(accounts)
        except TypeError as e:
            raise CycleAbortedError(f"Account list is not iterable: {e}") from e
        for index, account in enumerate(items):
            if not isinstance(account, AccountConfig):
                raise CycleAbortedError(
                    f"Account list entry {index} is {type(account).__name__}, not AccountConfig"
                )
        return items
