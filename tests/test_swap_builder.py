"""Tests for swap plan construction and adapter dispatch."""

import pytest

from core.account_reader import decode_snapshot
from core.exceptions import ConfigurationError, DelegateeMismatchError, UnsupportedAdapterError
from core.swap_builder import CETUS_MIN_SQRT_PRICE_LIMIT, SwapPlanBuilder
from tests.helpers.ledger_stubs import SIGNER, account_fields, make_account
from tools.config_validator import AccountConfig

GAS = 25_000_000


@pytest.fixture
def builder(object_ids):
    return SwapPlanBuilder(SIGNER, object_ids)


@pytest.fixture
def snapshot():
    return decode_snapshot(make_account().object_id, account_fields(split_allocation=123_456))


def object_args(plan):
    return [arg.value for call in plan.calls for arg in call.arguments if arg.kind == "object"]


class TestCetusPlan:
    def test_amount_is_split_allocation_verbatim(self, builder, snapshot):
        plan = builder.build(make_account(), snapshot, GAS)
        assert plan.amount == 123_456
        assert plan.min_output == 1
        assert plan.adapter == "cetus"
        assert plan.account_id == make_account().object_id

    def test_swap_call_references_required_objects(self, builder, snapshot, object_ids):
        account = make_account()
        plan = builder.build(account, snapshot, GAS)

        swap = plan.calls[-1]
        assert swap.target == f"{object_ids.dca_package_id}::cetus::swap_ab"
        assert swap.type_arguments == [account.input_type, account.output_type]

        refs = object_args(plan)
        assert object_ids.cetus_global_config in refs
        assert object_ids.clock_object in refs
        assert account.pool_id in refs
        assert account.object_id in refs

    def test_swap_arguments_layout(self, builder, snapshot):
        plan = builder.build(make_account(), snapshot, GAS)
        args = plan.calls[-1].arguments
        assert [a.kind for a in args] == [
            "object", "object", "result", "result", "bool", "bool",
            "u64", "u128", "bool", "object", "u64", "object", "u64",
        ]
        assert args[6].value == 123_456
        assert args[7].value == CETUS_MIN_SQRT_PRICE_LIMIT
        assert args[12].value == GAS

    def test_gas_budget_comes_from_each_build_call(self, builder, snapshot):
        first = builder.build(make_account(), snapshot, GAS)
        second = builder.build(make_account(), snapshot, 99_000_000)
        assert first.gas_budget == GAS
        assert second.gas_budget == 99_000_000
        assert second.calls[-1].arguments[12].value == 99_000_000

    def test_plan_serializes_large_integers_as_strings(self, builder, snapshot):
        payload = builder.build(make_account(), snapshot, GAS).to_dict()
        assert payload["amount"] == "123456"
        swap_args = payload["calls"][-1]["arguments"]
        assert swap_args[7] == {"kind": "u128", "value": str(CETUS_MIN_SQRT_PRICE_LIMIT)}

    def test_uses_overridden_constants(self, snapshot):
        from core.constants import load_constants

        ids = load_constants(environ={"SUI_DCA_PACKAGE_ID": "0xfeed"})
        plan = SwapPlanBuilder(SIGNER, ids).build(make_account(), snapshot, 1)
        assert plan.calls[-1].target == "0xfeed::cetus::swap_ab"


class TestAdapterDispatch:
    @pytest.mark.parametrize("adapter", ["turbos", "flowx"])
    def test_known_but_unimplemented_adapters_fail_explicitly(self, builder, snapshot, adapter):
        with pytest.raises(UnsupportedAdapterError, match="not yet implemented") as exc_info:
            builder.build(make_account(adapter=adapter), snapshot, GAS)
        assert exc_info.value.adapter == adapter

    def test_unknown_adapter_is_typed_error(self, builder, snapshot):
        account = AccountConfig.model_construct(**{**make_account().model_dump(), "adapter": "unsupported_dex"})
        with pytest.raises(UnsupportedAdapterError) as exc_info:
            builder.build(account, snapshot, GAS)
        assert exc_info.value.adapter == "unsupported_dex"
        assert isinstance(exc_info.value, ConfigurationError)


class TestDelegateeCheck:
    def test_mismatch_names_both_addresses(self, object_ids):
        other = "0x" + "99" * 32
        snap = decode_snapshot("0x1", account_fields(delegatee=other))
        builder = SwapPlanBuilder(SIGNER, object_ids)

        with pytest.raises(DelegateeMismatchError) as exc_info:
            builder.build(make_account(), snap, GAS)

        message = str(exc_info.value)
        assert SIGNER in message
        assert other in message

    def test_checked_before_adapter_dispatch(self, object_ids):
        snap = decode_snapshot("0x1", account_fields(delegatee="0x" + "99" * 32))
        builder = SwapPlanBuilder(SIGNER, object_ids)
        with pytest.raises(DelegateeMismatchError):
            builder.build(make_account(adapter="turbos"), snap, GAS)

    def test_no_signer_is_a_mismatch(self, object_ids, snapshot):
        builder = SwapPlanBuilder(None, object_ids)
        with pytest.raises(DelegateeMismatchError, match="expected None"):
            builder.build(make_account(), snapshot, GAS)
