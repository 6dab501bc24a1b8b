"""Submitter: signs and submits (or dry-runs) a built swap plan."""

import logging

from core.exceptions import SubmissionError
from core.ledger import LedgerClient
from core.models import DRY_RUN_DIGEST, SubmissionReceipt, SwapPlan

logger = logging.getLogger(__name__)


class Submitter:
    def __init__(self, ledger: LedgerClient):
        self.ledger = ledger

    def submit(self, plan: SwapPlan, dry_run: bool) -> SubmissionReceipt:
        """
        Submit a plan and block until the ledger reports effects.

        Any transport, signing or on-ledger abort failure is raised as
        SubmissionError; whether to retry is the caller's decision.
        """
        if dry_run:
            try:
                effects = self.ledger.simulate(plan)
            except Exception as e:
                raise SubmissionError(f"Dry run failed: {e}", original=e) from e
            status = (effects or {}).get("status")
            if status not in (None, "success"):
                raise SubmissionError(f"Dry run aborted: {effects.get('error') or status}")
            logger.info(f"DRY_RUN: {plan.account_id} would swap {plan.amount} via {plan.adapter}")
            return SubmissionReceipt(digest=DRY_RUN_DIGEST, effects_summary=dict(effects or {}), dry_run=True)

        try:
            response = self.ledger.sign_and_submit(plan)
        except Exception as e:
            raise SubmissionError(f"Submission failed: {e}", original=e) from e

        digest = response.get("digest")
        effects = response.get("effects") or {}
        status = (effects.get("status") or {}).get("status")
        if status != "success":
            error = (effects.get("status") or {}).get("error") or status or "no effects returned"
            raise SubmissionError(f"Transaction {digest} aborted: {error}")
        if not digest:
            raise SubmissionError("Ledger returned no transaction digest")

        summary = {"status": status, "gasUsed": effects.get("gasUsed")}
        return SubmissionReceipt(digest=digest, effects_summary=summary)
