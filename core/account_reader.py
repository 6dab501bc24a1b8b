"""Account State Reader: fetches and decodes DCA account objects."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.exceptions import AccountReadError
from core.ledger import LedgerClient
from core.models import AccountSnapshot, TimeScale

logger = logging.getLogger(__name__)


@dataclass
class AccountRead:
    """Either a decoded snapshot or the typed reason it could not be read."""
    account_id: str
    snapshot: Optional[AccountSnapshot] = None
    error: Optional[AccountReadError] = None

    @property
    def ok(self) -> bool:
        return self.snapshot is not None


def _to_int(fields: Dict[str, Any], name: str) -> int:
    raw = fields.get(name)
    if raw is None:
        return 0
    if isinstance(raw, dict):
        # Balance<T> is rendered as {"value": "<u64>"} by the RPC
        raw = raw.get("value", 0)
    if isinstance(raw, bool):
        raise ValueError(f"{name} must be an integer, got bool")
    value = int(str(raw))
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


def decode_snapshot(object_id: str, fields: Dict[str, Any]) -> AccountSnapshot:
    """Decode raw Move struct fields into an AccountSnapshot. Raises ValueError."""
    owner = fields.get("owner")
    delegatee = fields.get("delegatee")
    if not isinstance(owner, str) or not isinstance(delegatee, str):
        raise ValueError("owner and delegatee must be addresses")

    time_scale_code = _to_int(fields, "time_scale")
    try:
        time_scale = TimeScale(time_scale_code)
    except ValueError:
        raise ValueError(f"unknown time_scale {time_scale_code}") from None

    active = fields.get("active")
    if not isinstance(active, bool):
        raise ValueError(f"active must be a bool, got {active!r}")

    return AccountSnapshot(
        object_id=object_id,
        owner=owner,
        delegatee=delegatee,
        input_balance=_to_int(fields, "input_balance"),
        remaining_orders=_to_int(fields, "remaining_orders"),
        last_time_ms=_to_int(fields, "last_time_ms"),
        every=_to_int(fields, "every"),
        time_scale=time_scale,
        active=active,
        split_allocation=_to_int(fields, "split_allocation"),
    )


class AccountStateReader:
    """
    Reads fresh account state from the ledger on every call.

    read() never raises: missing objects, malformed fields and transport
    failures all come back as an AccountRead carrying an AccountReadError.
    """

    def __init__(self, ledger: LedgerClient):
        self.ledger = ledger

    def read(self, account_id: str) -> AccountRead:
        try:
            fields = self.ledger.read_object(account_id)
        except AccountReadError as e:
            logger.warning(f"DCA account {account_id} unreadable ({e.kind}): {e.detail}")
            return AccountRead(account_id, error=e)
        except Exception as e:
            logger.error(f"Failed to fetch DCA account {account_id}: {e}")
            return AccountRead(
                account_id,
                error=AccountReadError(account_id, AccountReadError.UNREACHABLE, str(e), original=e),
            )

        try:
            snapshot = decode_snapshot(account_id, fields)
        except (ValueError, TypeError) as e:
            logger.warning(f"DCA account {account_id} has malformed fields: {e}")
            return AccountRead(
                account_id,
                error=AccountReadError(account_id, AccountReadError.DECODE, str(e), original=e),
            )

        return AccountRead(account_id, snapshot=snapshot)
