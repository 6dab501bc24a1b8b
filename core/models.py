"""
Data model for the DCA executor.

Snapshots are read-only projections of ledger state and are refetched every
cycle; results and scheduler state live in memory only.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional


class TimeScale(IntEnum):
    """Interval unit, using the on-chain u8 encoding."""

    SECONDS = 0
    MINUTES = 1
    HOURS = 2
    DAYS = 3
    WEEKS = 4
    MONTHS = 5

    @classmethod
    def from_name(cls, name: str) -> "TimeScale":
        return cls[name.strip().upper()]


@dataclass(frozen=True)
class AccountSnapshot:
    object_id: str
    owner: str
    delegatee: str
    input_balance: int
    remaining_orders: int
    last_time_ms: int
    every: int
    time_scale: TimeScale
    active: bool
    split_allocation: int


@dataclass(frozen=True)
class ReadinessDecision:
    ready: bool
    reason: Optional[str] = None
    next_eligible_at_ms: Optional[int] = None

    @classmethod
    def go(cls) -> "ReadinessDecision":
        return cls(ready=True)

    @classmethod
    def wait(cls, reason: str, next_eligible_at_ms: Optional[int] = None) -> "ReadinessDecision":
        return cls(ready=False, reason=reason, next_eligible_at_ms=next_eligible_at_ms)


@dataclass
class ExecutionResult:
    """Outcome of driving one account through build and submission."""
    success: bool
    account_id: str
    timestamp_ms: int
    tx_digest: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0

    @classmethod
    def failed(cls, account_id: str, error: str, timestamp_ms: int, attempts: int = 0) -> "ExecutionResult":
        return cls(success=False, account_id=account_id, timestamp_ms=timestamp_ms, error=error, attempts=attempts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "accountId": self.account_id,
            "txDigest": self.tx_digest,
            "error": self.error,
            "timestamp": self.timestamp_ms,
            "attempts": self.attempts,
        }


@dataclass
class SchedulerState:
    is_running: bool = False
    last_run_at_ms: Optional[int] = None
    next_run_at_ms: Optional[int] = None
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    cycles_completed: int = 0
    dropped_ticks: int = 0

    def record(self, result: ExecutionResult) -> None:
        self.total_executions += 1
        if result.success:
            self.successful_executions += 1
        else:
            self.failed_executions += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isRunning": self.is_running,
            "lastRun": self.last_run_at_ms,
            "nextRun": self.next_run_at_ms,
            "totalExecutions": self.total_executions,
            "successfulExecutions": self.successful_executions,
            "failedExecutions": self.failed_executions,
            "cyclesCompleted": self.cycles_completed,
            "droppedTicks": self.dropped_ticks,
        }


@dataclass(frozen=True)
class PlanArg:
    """One argument of a Move call.

    kind is one of: object, u64, u128, bool, gas_split, result.
    A "result" argument references the output of an earlier call by index.
    """
    kind: str
    value: Any

    @classmethod
    def obj(cls, object_id: str) -> "PlanArg":
        return cls("object", object_id)

    @classmethod
    def u64(cls, value: int) -> "PlanArg":
        return cls("u64", int(value))

    @classmethod
    def u128(cls, value: int) -> "PlanArg":
        return cls("u128", int(value))

    @classmethod
    def boolean(cls, value: bool) -> "PlanArg":
        return cls("bool", bool(value))

    @classmethod
    def result(cls, call_index: int) -> "PlanArg":
        return cls("result", int(call_index))


@dataclass(frozen=True)
class MoveCall:
    target: str
    type_arguments: List[str] = field(default_factory=list)
    arguments: List[PlanArg] = field(default_factory=list)


@dataclass(frozen=True)
class SwapPlan:
    account_id: str
    adapter: str
    amount: int
    min_output: int
    gas_budget: int
    calls: List[MoveCall] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        # u64/u128 values are rendered as strings so JSON consumers keep full precision
        payload = asdict(self)
        payload["amount"] = str(self.amount)
        for call in payload["calls"]:
            for arg in call["arguments"]:
                if arg["kind"] in ("u64", "u128"):
                    arg["value"] = str(arg["value"])
        return payload


@dataclass
class SubmissionReceipt:
    digest: str
    effects_summary: Dict[str, Any]
    dry_run: bool = False


DRY_RUN_DIGEST = "DRY_RUN"
