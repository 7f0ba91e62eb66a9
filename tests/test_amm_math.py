"""Tests for constant-product and sqrt-price math."""

import pytest

from swap_router.errors import PoolError
from swap_router.services.amm_math import (
    Q96,
    UINT256_MAX,
    build_swap_step,
    get_amount_in,
    get_amount_out,
    get_amount_out_tick_without_fee,
    get_amount_out_without_fee,
    saturating_add,
    saturating_sub,
)
from tests.helpers import tick_swap


class TestReserveMath:
    def test_amount_out(self):
        # 100 * 997 * 1000 / (1000 * 1000 + 100 * 997) = 90.66
        assert get_amount_out(100, 1000, 1000) == 90
        assert get_amount_out(90, 2000, 2000) == 85

    def test_amount_in(self):
        assert get_amount_in(90, 1000, 1000) == 100
        assert get_amount_in(85, 2000, 2000) == 90

    def test_amount_in_covers_amount_out(self):
        for amount_out in (1, 7, 250, 999):
            amount_in = get_amount_in(amount_out, 5000, 3000)
            assert get_amount_out(amount_in, 5000, 3000) >= amount_out

    def test_insufficient_liquidity(self):
        with pytest.raises(PoolError):
            get_amount_in(1000, 1000, 1000)
        with pytest.raises(PoolError):
            get_amount_out(10, 0, 1000)

    def test_zero_input(self):
        with pytest.raises(PoolError):
            get_amount_out(0, 1000, 1000)

    @pytest.mark.parametrize("amount_in", [1, 10, 100, 12345, 10 ** 18])
    @pytest.mark.parametrize("reserve_in,reserve_out", [(1000, 1000), (7, 10 ** 20), (10 ** 24, 333)])
    def test_fee_in_token_out_never_negative(self, amount_in, reserve_in, reserve_out):
        amount_out = amount_in * 997 * reserve_out // (reserve_in * 1000 + amount_in * 997)
        step = build_swap_step(
            amount_in,
            amount_out,
            get_amount_out_without_fee(amount_in, reserve_in, reserve_out),
            3000
        )
        assert step.fee_in_token_out >= 0
        assert step.fee_in_token_in == amount_in * 3 // 1000


class TestTickMath:
    def test_exact_input_consumes_whole_amount(self):
        _, amount_in, amount_out, fee_amount = tick_swap(Q96, 10 ** 6, 1000, 3000, True)
        assert amount_in + fee_amount == 1000
        assert 0 < amount_out < 1000

    @pytest.mark.parametrize("zero_for_one", [True, False])
    def test_exact_output_is_honoured(self, zero_for_one):
        _, amount_in, amount_out, fee_amount = tick_swap(Q96, 10 ** 6, -1000, 3000, zero_for_one)
        assert amount_out == 1000
        assert amount_in > 1000
        assert fee_amount > 0

    def test_exact_output_beyond_liquidity_is_partial(self):
        sqrt_next, _, amount_out, _ = tick_swap(Q96, 10 ** 6, -2 * 10 ** 6, 3000, True)
        assert amount_out < 10 ** 6

    def test_no_liquidity(self):
        _, amount_in, amount_out, fee_amount = tick_swap(Q96, 0, 1000, 3000, True)
        assert (amount_in, amount_out, fee_amount) == (0, 0, 0)

    @pytest.mark.parametrize("zero_for_one", [True, False])
    @pytest.mark.parametrize("fee", [100, 500, 3000, 10000])
    def test_fee_in_token_out_never_negative(self, zero_for_one, fee):
        for amount in (10, 1000, 250_000):
            _, _, amount_out, _ = tick_swap(Q96, 10 ** 6, amount, fee, zero_for_one)
            no_fee = get_amount_out_tick_without_fee(Q96, 10 ** 6, amount, zero_for_one)
            assert build_swap_step(amount, amount_out, no_fee, fee).fee_in_token_out >= 0

    def test_no_fee_output_matches_zero_fee_swap(self):
        _, _, amount_out, _ = tick_swap(Q96, 10 ** 6, 5000, 0, False)
        assert get_amount_out_tick_without_fee(Q96, 10 ** 6, 5000, False) == amount_out


class TestSaturation:
    def test_sub(self):
        assert saturating_sub(10, 3) == 7
        assert saturating_sub(3, 10) == 0

    def test_add(self):
        assert saturating_add(1, 2) == 3
        assert saturating_add(UINT256_MAX, 5) == UINT256_MAX
