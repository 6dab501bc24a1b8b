"""
Swap Plan Builder

Turns an account's config and fresh snapshot into an adapter-specific list of
Move calls. Construction is pure; nothing here touches the network.

Adapters are a closed set validated at config load time, but only some have
builders. The rest fail explicitly rather than producing an empty plan.
"""

import logging
from typing import Callable, Dict, Optional

from core.constants import ObjectIds
from core.exceptions import DelegateeMismatchError, UnsupportedAdapterError
from core.models import AccountSnapshot, MoveCall, PlanArg, SwapPlan

logger = logging.getLogger(__name__)

KNOWN_ADAPTERS = ("cetus", "turbos", "flowx")

# Lowest sqrt price Cetus accepts for an a->b swap
CETUS_MIN_SQRT_PRICE_LIMIT = 4295048016

# Placeholder; the DCA contract enforces the account's own price bounds
MIN_OUTPUT_PLACEHOLDER = 1

AdapterBuilder = Callable[["SwapPlanBuilder", object, AccountSnapshot, int], SwapPlan]


def build_cetus_swap(
    builder: "SwapPlanBuilder", account_config, snapshot: AccountSnapshot, gas_budget: int
) -> SwapPlan:
    ids = builder.object_ids
    amount = snapshot.split_allocation
    calls = [
        # 0: empty input coin; the contract pulls the trade amount from the DCA balance
        MoveCall(target="0x2::coin::split_gas", arguments=[PlanArg("gas_split", 0)]),
        # 1: empty output coin for the swap to fill
        MoveCall(target="0x2::coin::zero", type_arguments=[account_config.output_type]),
        MoveCall(
            target=f"{ids.dca_package_id}::cetus::swap_ab",
            type_arguments=[account_config.input_type, account_config.output_type],
            arguments=[
                PlanArg.obj(ids.cetus_global_config),
                PlanArg.obj(account_config.pool_id),
                PlanArg.result(0),
                PlanArg.result(1),
                PlanArg.boolean(True),  # a2b
                PlanArg.boolean(True),  # by_amount_in
                PlanArg.u64(amount),
                PlanArg.u128(CETUS_MIN_SQRT_PRICE_LIMIT),
                PlanArg.boolean(False),
                PlanArg.obj(ids.clock_object),
                PlanArg.u64(MIN_OUTPUT_PLACEHOLDER),
                PlanArg.obj(account_config.object_id),
                PlanArg.u64(gas_budget),
            ],
        ),
    ]
    return SwapPlan(
        account_id=account_config.object_id,
        adapter="cetus",
        amount=amount,
        min_output=MIN_OUTPUT_PLACEHOLDER,
        gas_budget=gas_budget,
        calls=calls,
    )


ADAPTER_BUILDERS: Dict[str, AdapterBuilder] = {
    "cetus": build_cetus_swap,
}


class SwapPlanBuilder:
    def __init__(
        self,
        signer_address: Optional[str],
        object_ids: ObjectIds,
        builders: Optional[Dict[str, AdapterBuilder]] = None,
    ):
        self.signer_address = signer_address
        self.object_ids = object_ids
        self.builders = dict(ADAPTER_BUILDERS if builders is None else builders)

    def build(self, account_config, snapshot: AccountSnapshot, gas_budget: int) -> SwapPlan:
        """
        Build the trade plan for one account. gas_budget comes from the
        execution settings of the current cycle.

        Raises:
            DelegateeMismatchError: the account does not delegate to our signer
            UnsupportedAdapterError: the adapter has no builder
        """
        if snapshot.delegatee != self.signer_address:
            raise DelegateeMismatchError(self.signer_address, snapshot.delegatee)

        adapter = account_config.adapter
        build_fn = self.builders.get(adapter)
        if build_fn is None:
            raise UnsupportedAdapterError(adapter, implemented=adapter in KNOWN_ADAPTERS)

        plan = build_fn(self, account_config, snapshot, int(gas_budget))
        logger.debug(
            f"Built {adapter} plan for {account_config.object_id}: amount={plan.amount}, "
            f"{len(plan.calls)} calls"
        )
        return plan
