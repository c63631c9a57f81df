"""Resource accrual formulas."""

from datetime import datetime, timedelta

import pytest

from kingdoms.game.economy import (
    Producer,
    building_production,
    compute_accrual,
    effective_level,
    offline_polls,
    research_bonus_percent,
    tick_generation,
)

T0 = datetime(2026, 1, 1, 12, 0, 0)
ZERO = {"food": 0, "wood": 0, "stone": 0, "ore": 0, "gold": 0}
NO_BONUS = {"farming": 0, "woodworking": 0, "mining": 0}


def farm(level=1):
    return Producer(slug="farm", level=level, base_value=100, bonus_value=5)


def test_research_bonus_percent():
    assert research_bonus_percent(10, 5, 0) == 0
    assert research_bonus_percent(10, 5, 1) == 10
    assert research_bonus_percent(10, 5, 3) == 20
    assert research_bonus_percent(20, 2, 25) == 68


def test_building_production_levels_and_bonus():
    assert building_production(100, 5, 1) == 100
    assert building_production(100, 5, 3) == 110
    assert building_production(100, 5, 1, 10) == 110
    # 105 * 1.15 = 120.75
    assert building_production(100, 5, 2, 15) == 120


def test_building_production_floors_exactly():
    # 100 * 1.15 must be 115, not 114.99...
    assert building_production(100, 0, 1, 15) == 115
    assert building_production(33, 0, 1, 10) == 36


@pytest.mark.parametrize(
    "elapsed,polls",
    [(0, 0), (1, 0), (2, 0), (3, 1), (4, 2), (5, 2), (60, 30)],
)
def test_offline_polls_threshold(elapsed, polls):
    assert offline_polls(elapsed) == polls


def test_effective_level():
    assert effective_level(3, False) == 3
    assert effective_level(3, True) == 2
    assert effective_level(1, True) == 0
    assert effective_level(0, False) == 0


def test_tick_with_no_buildings_is_base_generation():
    assert tick_generation([], NO_BONUS) == {"food": 1, "wood": 1, "stone": 1, "ore": 1, "gold": 1}


def test_tick_with_one_farm():
    out = tick_generation([farm()], NO_BONUS)
    assert out["food"] == 101
    assert out["wood"] == 1


def test_market_gold_ignores_research():
    market = Producer(slug="market", level=1, base_value=40, bonus_value=5)
    out = tick_generation([market], {"farming": 50, "woodworking": 50, "mining": 50})
    assert out["gold"] == 41


def test_mining_boosts_quarry_and_mine():
    producers = [
        Producer(slug="quarry", level=1, base_value=100, bonus_value=5),
        Producer(slug="mine", level=1, base_value=100, bonus_value=5),
    ]
    out = tick_generation(producers, {"farming": 0, "woodworking": 0, "mining": 10})
    assert out["stone"] == 111
    assert out["ore"] == 111


def test_unknown_producers_are_ignored():
    out = tick_generation([Producer(slug="house", level=5, base_value=1, bonus_value=5)], NO_BONUS)
    assert out == {"food": 1, "wood": 1, "stone": 1, "ore": 1, "gold": 1}


def test_first_generation_has_no_offline_catch_up():
    acc = compute_accrual(ZERO, [], NO_BONUS, None, T0)
    assert acc.offline_polls == 0
    assert acc.updated == {"food": 1, "wood": 1, "stone": 1, "ore": 1, "gold": 1}


def test_two_seconds_adds_one_tick():
    acc = compute_accrual(ZERO, [], NO_BONUS, T0, T0 + timedelta(seconds=2))
    assert acc.offline_polls == 0
    assert acc.total == {"food": 1, "wood": 1, "stone": 1, "ore": 1, "gold": 1}


def test_offline_catch_up_adds_on_top_of_current_tick():
    acc = compute_accrual(ZERO, [farm()], NO_BONUS, T0, T0 + timedelta(seconds=10))
    assert acc.offline_polls == 5
    assert acc.current["food"] == 101
    assert acc.offline["food"] == 505
    assert acc.updated["food"] == 606
    assert acc.updated["gold"] == 6


def test_negative_elapsed_is_treated_as_zero():
    acc = compute_accrual(ZERO, [farm()], NO_BONUS, T0, T0 - timedelta(seconds=30))
    assert acc.elapsed_seconds == 0
    assert acc.offline_polls == 0
    assert acc.updated["food"] == 101


def test_accrual_is_monotonic_and_deterministic():
    start = {"food": 500, "wood": 10, "stone": 0, "ore": 7, "gold": 3}
    producers = [farm(4), Producer(slug="market", level=2, base_value=40, bonus_value=5)]
    bonuses = {"farming": 25, "woodworking": 0, "mining": 0}

    previous = None
    for seconds in (0, 1, 2, 3, 17, 3600):
        a = compute_accrual(start, producers, bonuses, T0, T0 + timedelta(seconds=seconds))
        b = compute_accrual(start, producers, bonuses, T0, T0 + timedelta(seconds=seconds))
        assert a.updated == b.updated
        for k, v in a.updated.items():
            assert v >= start[k]
            if previous is not None:
                assert v >= previous[k]
        previous = a.updated
