"""Readiness evaluation for DCA accounts. Pure, no I/O."""

from core.models import AccountSnapshot, ReadinessDecision, TimeScale

# Months are a fixed 30 days, not calendar months.
UNIT_TO_MS = {
    TimeScale.SECONDS: 1_000,
    TimeScale.MINUTES: 60_000,
    TimeScale.HOURS: 3_600_000,
    TimeScale.DAYS: 86_400_000,
    TimeScale.WEEKS: 604_800_000,
    TimeScale.MONTHS: 2_592_000_000,
}

REASON_INACTIVE = "inactive"
REASON_EXHAUSTED = "exhausted"
REASON_NO_BALANCE = "no balance"
REASON_TOO_EARLY = "too early"


def interval_ms(snapshot: AccountSnapshot) -> int:
    return snapshot.every * UNIT_TO_MS[TimeScale(snapshot.time_scale)]


def evaluate_readiness(snapshot: AccountSnapshot, now_ms: int) -> ReadinessDecision:
    """
    Decide whether an account is due for a trade.

    Rules run in a fixed order and the first failing rule wins. The interval
    boundary is inclusive: at exactly last_time_ms + interval the account is
    ready.
    """
    if not snapshot.active:
        return ReadinessDecision.wait(REASON_INACTIVE)

    if snapshot.remaining_orders <= 0:
        return ReadinessDecision.wait(REASON_EXHAUSTED)

    if snapshot.input_balance <= 0:
        return ReadinessDecision.wait(REASON_NO_BALANCE)

    next_eligible_at_ms = snapshot.last_time_ms + interval_ms(snapshot)
    if now_ms < next_eligible_at_ms:
        return ReadinessDecision.wait(REASON_TOO_EARLY, next_eligible_at_ms)

    return ReadinessDecision.go()
