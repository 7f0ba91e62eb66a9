"""Tests for pre-funded swaps through reserve pools."""

import pytest

from swap_router.errors import InvalidAmount, InvalidPath, TooLittleReceived, TooMuchRequested
from swap_router.models import Route, TradeType
from swap_router.services.reserve_engine import ALREADY_FUNDED, FULL_BALANCE
from tests.helpers import RECIPIENT, ROUTER, TAX_TOKEN, TOKEN_A, TOKEN_B, TOKEN_C, TRADER


@pytest.fixture
def two_hop_pools(make_reserve_pool):
    return (
        make_reserve_pool(TOKEN_A, TOKEN_B, 1000, 1000),
        make_reserve_pool(TOKEN_B, TOKEN_C, 2000, 2000),
    )


ROUTE = Route(tokens=[TOKEN_A, TOKEN_B, TOKEN_C])


class TestExactInput:
    def test_two_hop_scenario(self, ledger, reserve_engine, two_hop_pools, fund):
        fund(TOKEN_A, TRADER, 100)

        record = reserve_engine.swap_exact_input(ROUTE, RECIPIENT, 100, 85, TRADER)

        # 100 -> 90 through (1000, 1000), 90 -> 85 through (2000, 2000)
        assert record.amount_sold == 100
        assert record.amount_bought == 85
        assert ledger.balance_of(TOKEN_C, RECIPIENT) == 85
        assert ledger.balance_of(TOKEN_A, TRADER) == 0
        assert [(s.amount_in, s.amount_out) for s in record.fees] == [(100, 90), (90, 85)]
        assert record.trade_type is TradeType.EXACT_INPUT
        assert ledger.events == [record]

    def test_hops_chain(self, reserve_engine, two_hop_pools, fund):
        fund(TOKEN_A, TRADER, 100)
        steps = reserve_engine.swap_exact_input(ROUTE, RECIPIENT, 100, 0, TRADER).fees
        for current, following in zip(steps, steps[1:]):
            assert current.amount_out == following.amount_in

    def test_pool_reserves_move(self, reserve_engine, two_hop_pools, fund):
        fund(TOKEN_A, TRADER, 100)
        reserve_engine.swap_exact_input(ROUTE, RECIPIENT, 100, 0, TRADER)

        first, second = two_hop_pools
        assert first.get_reserves() == (1100, 910)
        assert second.get_reserves() == (2090, 1915)

    def test_one_unit_over_minimum_fails(self, ledger, reserve_engine, two_hop_pools, fund):
        fund(TOKEN_A, TRADER, 100)

        with pytest.raises(TooLittleReceived) as exc_info:
            reserve_engine.swap_exact_input(ROUTE, RECIPIENT, 100, 86, TRADER)

        assert exc_info.value.amount_out == 85
        assert ledger.balance_of(TOKEN_A, TRADER) == 100
        assert ledger.balance_of(TOKEN_C, RECIPIENT) == 0
        assert two_hop_pools[0].get_reserves() == (1000, 1000)
        assert ledger.events == []

    def test_fee_decomposition(self, reserve_engine, two_hop_pools, fund):
        fund(TOKEN_A, TRADER, 100)
        first, second = reserve_engine.swap_exact_input(ROUTE, RECIPIENT, 100, 0, TRADER).fees

        assert first.fee_in_token_in == 0  # 100 * 3 / 1000 rounds down
        assert first.fee_in_token_out == 100 * 1000 // 1100 - 90
        assert second.fee_in_token_out == 90 * 2000 // 2090 - 85
        assert first.fee_in_token_out >= 0 and second.fee_in_token_out >= 0

    def test_descending_token_order(self, ledger, reserve_engine, two_hop_pools, fund):
        fund(TOKEN_C, TRADER, 200)
        record = reserve_engine.swap_exact_input(
            Route(tokens=[TOKEN_C, TOKEN_B, TOKEN_A]), RECIPIENT, 200, 0, TRADER
        )
        # 200 -> 181 through (2000, 2000), 181 -> 152 through (1000, 1000)
        assert record.amount_bought == 152
        assert ledger.balance_of(TOKEN_A, RECIPIENT) == 152

    def test_already_funded(self, ledger, reserve_engine, two_hop_pools):
        ledger.mint(TOKEN_A, two_hop_pools[0].address, 100)

        record = reserve_engine.swap_exact_input(ROUTE, RECIPIENT, ALREADY_FUNDED, 85, TRADER)

        assert record.amount_sold == 100
        assert record.amount_bought == 85

    def test_full_balance(self, ledger, reserve_engine, two_hop_pools):
        ledger.mint(TOKEN_A, ROUTER, 100)

        record = reserve_engine.swap_exact_input(ROUTE, RECIPIENT, FULL_BALANCE, 85, TRADER)

        assert record.amount_sold == 100
        assert ledger.balance_of(TOKEN_A, ROUTER) == 0
        assert ledger.balance_of(TOKEN_C, RECIPIENT) == 85

    def test_fee_on_transfer_input(self, ledger, reserve_engine, make_reserve_pool, fund):
        make_reserve_pool(TAX_TOKEN, TOKEN_B, 1000, 1000)
        fund(TAX_TOKEN, TRADER, 100)

        record = reserve_engine.swap_exact_input(
            Route(tokens=[TAX_TOKEN, TOKEN_B]), RECIPIENT, 100, 0, TRADER
        )

        # the pool only receives 99 of the 100 sent
        assert record.fees[0].amount_in == 99
        assert record.amount_bought == 89
        assert record.amount_sold == 100

    def test_route_with_fee_tiers_rejected(self, reserve_engine):
        with pytest.raises(InvalidPath):
            reserve_engine.swap_exact_input(Route(tokens=[TOKEN_A, TOKEN_B], fees=[3000]), RECIPIENT, 1, 0, TRADER)

    def test_single_token_route_rejected(self, reserve_engine):
        with pytest.raises(InvalidPath):
            reserve_engine.swap_exact_input(Route(tokens=[TOKEN_A]), RECIPIENT, 1, 0, TRADER)


    @pytest.mark.parametrize("amount_in", [-1, FULL_BALANCE + 1])
    def test_amount_in_out_of_range(self, ledger, reserve_engine, two_hop_pools, fund, amount_in):
        fund(TOKEN_A, TRADER, 100)
        with pytest.raises(InvalidAmount):
            reserve_engine.swap_exact_input(ROUTE, RECIPIENT, amount_in, 0, TRADER)
        assert ledger.balance_of(TOKEN_A, TRADER) == 100
        assert ledger.events == []

    def test_negative_minimum(self, reserve_engine, two_hop_pools, fund):
        fund(TOKEN_A, TRADER, 100)
        with pytest.raises(InvalidAmount):
            reserve_engine.swap_exact_input(ROUTE, RECIPIENT, 100, -1, TRADER)


class TestExactOutput:
    def test_at_maximum_succeeds(self, ledger, reserve_engine, two_hop_pools, fund):
        fund(TOKEN_A, TRADER, 100)

        record = reserve_engine.swap_exact_output(ROUTE, RECIPIENT, 85, 100, TRADER)

        assert record.amount_sold == 100
        assert record.amount_bought == 85
        assert record.trade_type is TradeType.EXACT_OUTPUT
        assert ledger.balance_of(TOKEN_C, RECIPIENT) == 85

    def test_one_below_required_fails(self, ledger, reserve_engine, two_hop_pools, fund):
        fund(TOKEN_A, TRADER, 100)

        with pytest.raises(TooMuchRequested) as exc_info:
            reserve_engine.swap_exact_output(ROUTE, RECIPIENT, 85, 99, TRADER)

        assert exc_info.value.amount_in == 100
        assert ledger.balance_of(TOKEN_A, TRADER) == 100
        assert ledger.events == []


    @pytest.mark.parametrize("amount_out,amount_in_maximum", [(-85, 100), (85, -1), (FULL_BALANCE, 100)])
    def test_amounts_out_of_range(self, ledger, reserve_engine, two_hop_pools, fund, amount_out, amount_in_maximum):
        fund(TOKEN_A, TRADER, 100)
        with pytest.raises(InvalidAmount):
            reserve_engine.swap_exact_output(ROUTE, RECIPIENT, amount_out, amount_in_maximum, TRADER)
        assert ledger.balance_of(TOKEN_A, TRADER) == 100


class TestQuotes:
    def test_exact_input(self, reserve_engine, two_hop_pools):
        assert reserve_engine.quote_exact_input(ROUTE, 100) == [100, 90, 85]

    def test_exact_output(self, reserve_engine, two_hop_pools):
        assert reserve_engine.quote_exact_output(ROUTE, 85) == [100, 90, 85]
