# tests/unit/systems/test_trade.py
from __future__ import annotations

import pytest

from citysim.systems.trade import (
    calculate_buy_price,
    calculate_sell_price,
    player_buy_resource,
    player_buy_service,
    player_sell_resource,
)
from tests.helpers.factories import mock_market, mock_pool


@pytest.mark.parametrize(
    "price, amount, expected",
    [(10, 0, 10), (10, 50, 11), (7, 1000, 10), (7, 5000, 10), (7, 100, 8)],
)
def test_calculate_buy_price(price, amount, expected) -> None:
    assert calculate_buy_price(price, amount) == expected


@pytest.mark.parametrize(
    "price, amount, expected",
    [(10, 0, 10), (10, 50, 9), (7, 1000, 4), (7, 5000, 4), (1, 100, 0)],
)
def test_calculate_sell_price(price, amount, expected) -> None:
    assert calculate_sell_price(price, amount) == expected


class TestBuy:
    def test_success(self) -> None:
        market = mock_market()
        pool = mock_pool()

        result = player_buy_resource(market, "magic_ore", 50, pool, gold=1000)

        assert result.success
        assert result.unit_price == 11
        assert result.cost == 550
        assert result.remaining_gold == 450
        assert pool.value("magic_ore") == 50
        assert market.goods["magic_ore"].market_inventory == 50
        assert market.goods["magic_ore"].current_price == pytest.approx(10.25)
        assert market.monthly_revenue == 550
        assert market.transactions[-1].kind == "buy"

    def test_not_enough_market_inventory(self) -> None:
        market = mock_market(market_inventory=50)
        pool = mock_pool()

        result = player_buy_resource(market, "magic_ore", 100, pool, gold=10_000)

        assert not result.success
        assert result.available_amount == 50
        assert pool.value("magic_ore") == 0
        assert market.goods["magic_ore"].market_inventory == 50

    def test_not_enough_gold(self) -> None:
        market = mock_market()
        result = player_buy_resource(market, "magic_ore", 10, mock_pool(), gold=50)
        assert not result.success
        assert result.max_affordable_amount == 4
        assert result.cost == 110

    def test_not_enough_storage(self) -> None:
        market = mock_market()
        pool = mock_pool(magic_ore=995)
        result = player_buy_resource(market, "magic_ore", 10, pool, gold=1000)
        assert not result.success
        assert result.max_amount == 5
        assert market.monthly_revenue == 0

    def test_unknown_good_and_bad_amount(self) -> None:
        market = mock_market()
        pool = mock_pool()
        assert not player_buy_resource(market, "dragon_scale", 1, pool, gold=100).success
        assert not player_buy_resource(market, "magic_ore", 0, pool, gold=100).success
        assert not player_buy_resource(market, "magic_ore", -5, pool, gold=100).success


class TestSell:
    def test_success(self) -> None:
        market = mock_market()
        pool = mock_pool(magic_ore=100)

        result = player_sell_resource(market, "magic_ore", 50, pool, gold=100)

        assert result.success
        assert result.unit_price == 9
        assert result.profit == 450
        assert result.remaining_gold == 550
        assert pool.value("magic_ore") == 50
        assert market.goods["magic_ore"].market_inventory == 150
        assert market.goods["magic_ore"].current_price == pytest.approx(9.75)
        assert market.transactions[-1].amount == -50

    def test_without_gold_balance(self) -> None:
        result = player_sell_resource(mock_market(), "magic_ore", 1, mock_pool(magic_ore=1))
        assert result.success
        assert result.remaining_gold is None

    def test_market_capacity(self) -> None:
        market = mock_market(market_inventory=990)
        result = player_sell_resource(market, "magic_ore", 20, mock_pool(magic_ore=100))
        assert not result.success
        assert result.max_amount == 10

    def test_not_enough_held(self) -> None:
        result = player_sell_resource(mock_market(), "magic_ore", 20, mock_pool(magic_ore=5))
        assert not result.success
        assert result.available_amount == 5

    def test_worthless_sale_rejected(self) -> None:
        market = mock_market()
        market.goods["magic_ore"].current_price = 1
        pool = mock_pool(magic_ore=900)

        result = player_sell_resource(market, "magic_ore", 900, pool)

        assert not result.success
        assert pool.value("magic_ore") == 900


class TestServices:
    def test_buy_service(self) -> None:
        market = mock_market()
        result = player_buy_service(market, "transport", 10, gold=200)
        assert result.success
        assert result.cost == 150
        assert result.remaining_gold == 50
        assert market.services["transport"].market_inventory == 60

    def test_service_capacity(self) -> None:
        result = player_buy_service(mock_market(), "transport", 60, gold=10_000)
        assert not result.success
        assert result.max_amount == 50

    def test_service_gold(self) -> None:
        result = player_buy_service(mock_market(), "transport", 10, gold=100)
        assert not result.success
        assert result.max_affordable_amount == 6

    def test_unknown_service(self) -> None:
        assert not player_buy_service(mock_market(), "teleport", 1, gold=100).success
