"""
Execution scheduler.

Owns timing (fixed interval or crontab expression), the single-flight guard,
cumulative run statistics and alert dispatch. There is no module-level state:
Scheduler.start() hands back a SchedulerHandle owned by the caller, so several
independent schedulers can run in one process.

State machine: Idle -> (tick) -> Running -> Idle. A tick that arrives while a
cycle is running is dropped, never queued.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from apscheduler.triggers.cron import CronTrigger

from core.exceptions import CycleAbortedError
from core.models import ExecutionResult, SchedulerState
from infra.metrics import CycleStats

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class IntervalTiming:
    def __init__(self, interval_ms: int):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.interval_ms = int(interval_ms)

    def next_run_ms(self, now_ms: int) -> int:
        return now_ms + self.interval_ms

    def describe(self) -> str:
        return f"interval={self.interval_ms}ms"


CRONTAB_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def _weekday_number(token: str) -> int:
    token = token.strip().lower()
    if token in CRONTAB_WEEKDAYS:
        return CRONTAB_WEEKDAYS.index(token)
    if not token.isdigit() or int(token) > 7:
        raise ValueError(f"Invalid day-of-week value {token!r}")
    return int(token) % 7


def crontab_day_of_week(field: str) -> str:
    """
    Translate a crontab day-of-week field (Sunday=0 or 7) into weekday names.

    APScheduler numbers weekdays from Monday=0, so numeric crontab values
    cannot be passed through unchanged. Ranges, lists and steps are expanded
    into an explicit list of names.
    """
    if field == "*":
        return field

    days = set()
    for part in field.split(","):
        values, _, step_text = part.partition("/")
        step = int(step_text) if step_text else 1
        if step < 1:
            raise ValueError(f"Invalid day-of-week step in {part!r}")
        if values == "*":
            first, last = 0, 6
        elif "-" in values:
            first_text, last_text = values.split("-", 1)
            first = _weekday_number(first_text)
            # 7 closes a range on Sunday, e.g. 5-7
            last = 7 if last_text.strip() == "7" else _weekday_number(last_text)
            if last < first:
                raise ValueError(f"Invalid day-of-week range {part!r}")
        else:
            first = last = _weekday_number(values)
            if step_text:
                last = 6
        days.update(day % 7 for day in range(first, last + 1, step))

    return ",".join(CRONTAB_WEEKDAYS[day] for day in sorted(days))


class CronTiming:
    def __init__(self, expression: str, timezone: str = "UTC"):
        self.expression = expression
        fields = expression.split()
        if len(fields) != 5:
            raise ValueError(f"Cron expression {expression!r} must have 5 fields")
        minute, hour, day, month, day_of_week = fields
        self.trigger = CronTrigger(
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=crontab_day_of_week(day_of_week),
            timezone=timezone,
        )

    def next_run_ms(self, now_ms: int) -> int:
        # +1ms so a tick that lands exactly on a fire time does not fire twice
        now = datetime.fromtimestamp(now_ms / 1000.0, tz=self.trigger.timezone) + timedelta(milliseconds=1)
        next_fire = self.trigger.get_next_fire_time(None, now)
        if next_fire is None:
            raise ValueError(f"Cron expression {self.expression!r} has no future fire time")
        return int(next_fire.timestamp() * 1000)

    def describe(self) -> str:
        return f"cron={self.expression!r} tz={self.trigger.timezone}"


def timing_from_config(scheduler_config):
    if scheduler_config.cron_expression:
        return CronTiming(scheduler_config.cron_expression, scheduler_config.timezone)
    return IntervalTiming(scheduler_config.check_interval_ms)


@dataclass
class SchedulerHandle:
    thread: threading.Thread
    stop_event: threading.Event

    def is_alive(self) -> bool:
        return self.thread.is_alive()


class Scheduler:
    def __init__(
        self,
        runner,
        config_store,
        alerts=None,
        metrics=None,
        timing=None,
        clock_ms: Callable[[], int] = _now_ms,
    ):
        self.runner = runner
        self.config_store = config_store
        self.alerts = alerts
        self.metrics = metrics
        self.timing = timing or timing_from_config(config_store.current.scheduler)
        self.clock_ms = clock_ms

        self.state = SchedulerState()
        self._flag_lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._handle: Optional[SchedulerHandle] = None
        self._last_cycle: Optional[Dict[str, Any]] = None

    # -- state -----------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        return self.state.to_dict()

    def last_cycle_summary(self) -> Optional[Dict[str, Any]]:
        return dict(self._last_cycle) if self._last_cycle else None

    def _try_begin(self) -> bool:
        """Check-and-set the running flag. A refused attempt counts as a dropped tick."""
        with self._flag_lock:
            if self.state.is_running:
                self.state.dropped_ticks += 1
                return False
            self.state.is_running = True
            return True

    # -- cycles ----------------------------------------------------------

    def tick(self) -> bool:
        """Timer entry point. Starts a cycle on a worker thread or drops the tick."""
        if not self._try_begin():
            if self.metrics:
                self.metrics.record_dropped_tick()
            logger.warning("Previous execution still running, skipping this cycle")
            return False

        self._worker = threading.Thread(target=self._run_in_worker, name="dca-cycle", daemon=True)
        self._worker.start()
        return True

    def run_once(self) -> Optional[List[ExecutionResult]]:
        """Run one guarded cycle on the calling thread. None if a cycle is already running."""
        if not self._try_begin():
            if self.metrics:
                self.metrics.record_dropped_tick()
            logger.warning("Previous execution still running, skipping this cycle")
            return None
        return self._execute_cycle()

    def trigger_manual(self) -> List[ExecutionResult]:
        """
        Run one cycle on demand, outside the single-flight guard.

        Counters are not updated. Racing this against a scheduled tick is the
        caller's responsibility.
        """
        logger.info("Manual execution triggered")
        config = self.config_store.current
        return self.runner.run_cycle(config.accounts, execution_config=config.execution)

    def _run_in_worker(self) -> None:
        try:
            self._execute_cycle()
        except CycleAbortedError as exc:
            logger.error("Execution cycle aborted: %s", exc, exc_info=True)
        except Exception as exc:
            logger.error("Execution cycle failed: %s", exc, exc_info=True)

    def _execute_cycle(self) -> List[ExecutionResult]:
        """Run a cycle. The caller must already hold the running flag."""
        started = time.monotonic()
        self.state.last_run_at_ms = self.clock_ms()
        if self.metrics:
            self.metrics.set_running(True)

        results: List[ExecutionResult] = []
        skipped: List[Tuple[str, str]] = []
        status = "ok"
        try:
            config = self.config_store.current
            logger.info(f"Starting execution cycle ({len(config.accounts)} configured accounts)")
            report = self.runner.run_cycle_report(config.accounts, execution_config=config.execution)
            results, skipped = report.results, report.skipped
            self._record_results(results)
            return results
        except Exception:
            status = "aborted"
            raise
        finally:
            duration = time.monotonic() - started
            self._finish_cycle(results, skipped, status, duration)

    def _record_results(self, results: List[ExecutionResult]) -> None:
        for result in results:
            self.state.record(result)
            if result.success:
                logger.info(f"Trade executed successfully for {result.account_id} (tx={result.tx_digest})")
            else:
                logger.error(f"Trade execution failed for {result.account_id}: {result.error}")
            self._dispatch_alert(result)

    def _dispatch_alert(self, result: ExecutionResult) -> None:
        if not self.alerts:
            return
        try:
            self.alerts.notify_execution(result)
        except Exception as exc:
            logger.warning(f"Failed to dispatch alert for {result.account_id}: {exc}")

    def _finish_cycle(
        self, results: List[ExecutionResult], skipped: List[Tuple[str, str]], status: str, duration: float
    ) -> None:
        succeeded = sum(1 for r in results if r.success)
        failed = len(results) - succeeded
        if status == "ok" and failed:
            status = "partial" if succeeded else "failed"

        self._last_cycle = {
            "status": status,
            "attempted": len(results),
            "succeeded": succeeded,
            "failed": failed,
            "skipped": len(skipped),
            "skippedAccounts": [{"accountId": a, "reason": r} for a, r in skipped],
            "durationSeconds": round(duration, 3),
        }
        if self.metrics:
            self.metrics.observe_cycle(
                CycleStats(
                    status=status,
                    attempted=len(results),
                    succeeded=succeeded,
                    failed=failed,
                    skipped=len(skipped),
                    duration_seconds=duration,
                )
            )
            self.metrics.set_running(False)

        self.state.cycles_completed += 1
        logger.info(
            f"Execution cycle completed: status={status} total={len(results)} "
            f"successful={succeeded} failed={failed} skipped={len(skipped)} ({duration:.2f}s)"
        )
        with self._flag_lock:
            self.state.is_running = False

    # -- timer -----------------------------------------------------------

    def start(self, run_immediately: bool = True) -> SchedulerHandle:
        if self._handle and self._handle.is_alive():
            logger.warning("Scheduler already running")
            return self._handle

        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._timer_loop,
            args=(stop_event, run_immediately),
            name="dca-scheduler",
            daemon=True,
        )
        self._handle = SchedulerHandle(thread=thread, stop_event=stop_event)
        thread.start()
        logger.info(f"Scheduler started ({self.timing.describe()})")
        return self._handle

    def _timer_loop(self, stop_event: threading.Event, run_immediately: bool) -> None:
        if run_immediately:
            self.tick()
        while not stop_event.is_set():
            now_ms = self.clock_ms()
            next_ms = self.timing.next_run_ms(now_ms)
            self.state.next_run_at_ms = next_ms
            if stop_event.wait(max(0.0, (next_ms - now_ms) / 1000.0)):
                break
            self.tick()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        worker = self._worker
        if worker is not None:
            worker.join(timeout)
            return not worker.is_alive()
        return True

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        handle = self._handle
        if handle is None:
            return
        handle.stop_event.set()
        handle.thread.join(timeout)
        self.wait_idle(timeout)
        self._handle = None
        self.state.next_run_at_ms = None
        logger.info("Scheduler stopped")


__all__ = ["Scheduler", "SchedulerHandle", "IntervalTiming", "CronTiming", "timing_from_config"]
