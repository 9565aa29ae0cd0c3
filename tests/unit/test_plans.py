from __future__ import annotations

import pytest

from playcode.core.errors import NotFoundError
from playcode.domain.plans import (
    GAME_PLANS,
    addons_for,
    apply_promo,
    calculate_plan_price,
    format_price,
    get_plan,
    get_power_up,
    plan_with_pricing,
    to_gateway_plan,
)


def test_monthly_price():
    assert calculate_plan_price("starter-pack") == {"setup_fee": 79700, "monthly_price": 19700}


def test_annual_price_applies_plan_discount():
    pricing = calculate_plan_price("starter-pack", annual=True)
    assert pricing["annual_price"] == 189120
    assert pricing["savings"] == 47280

    pro = calculate_plan_price("pro-guild", annual=True)
    assert pro["annual_price"] == 447300
    assert pro["savings"] == 149100


def test_unknown_plan():
    with pytest.raises(NotFoundError):
        calculate_plan_price("platinum")
    assert get_plan("platinum") is None


def test_promo_codes():
    assert apply_promo(10000, "black_friday") == 6000
    assert apply_promo(10000, " BLACK_FRIDAY ") == 6000
    assert apply_promo(10000, "new_year") == 7000
    assert apply_promo(10000, "bogus") == 10000
    assert apply_promo(10000, None) == 10000


def test_format_price():
    assert format_price(123456) == "R$ 1.234,56"
    assert format_price(5) == "R$ 0,05"
    assert format_price(79700) == "R$ 797,00"
    assert format_price(-1050) == "-R$ 10,50"


def test_gateway_plan_trial_only_for_starter():
    starter = to_gateway_plan(get_plan("starter-pack"))
    assert starter["trial_period_days"] == 7
    assert starter["id"] == "pagseguro_starter-pack"
    assert starter["currency"] == "BRL"
    assert "trial_period_days" not in to_gateway_plan(get_plan("pro-guild"))


def test_addons_filtered_by_plan():
    assert [a["id"] for a in addons_for("enterprise-legend")] == ["ai-integration", "mobile-app"]
    assert "ai-integration" not in [a["id"] for a in addons_for("starter-pack")]


def test_get_plan_returns_a_copy():
    plan = get_plan("starter-pack")
    plan["features"].clear()
    assert GAME_PLANS[0]["features"]


def test_plan_with_pricing():
    view = plan_with_pricing(get_plan("business-one"))
    assert view["pricing"]["formatted"]["setup_fee"] == "R$ 1.497,00"
    assert view["pricing"]["annual"]["annual_price"] == calculate_plan_price("business-one", annual=True)["annual_price"]
    assert {a["id"] for a in view["addons"]} >= {"extra-projects", "ai-integration"}


def test_power_up_lookup():
    assert get_power_up("seo-boost")["price"] == 200000
    assert get_power_up("nope") is None
