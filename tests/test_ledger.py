import pytest

from src.stockfolio.ledger.ledger import Ledger, make_ledger, normalize_symbol
from src.stockfolio.ledger.model import Holding, MAX_QUANTITY
from src.stockfolio.ledger.errors import (
    CapacityExceeded,
    InsufficientQuantity,
    InvalidInput,
    NotFound,
)


def test_buy_twice_averages_buy_price():
    led = Ledger()
    led.buy("ABC", 10, 10.00)
    h = led.buy("ABC", 10, 20.00)
    assert h.quantity == 20
    assert h.avg_buy_price == 15.0
    # latest transaction price becomes the current price
    assert h.current_price == 20.0
    assert len(led) == 1


def test_weighted_average_independent_of_order():
    a = Ledger()
    a.buy("ABC", 3, 12.5)
    a.buy("ABC", 7, 40.25)
    b = Ledger()
    b.buy("ABC", 7, 40.25)
    b.buy("ABC", 3, 12.5)
    assert a.find("ABC").avg_buy_price == b.find("ABC").avg_buy_price
    assert a.find("ABC").quantity == b.find("ABC").quantity == 10
    # (3*12.5 + 7*40.25) / 10 = 31.925
    assert abs(a.find("ABC").avg_buy_price - 31.925) < 1e-9


def test_buy_new_symbol_sets_both_prices():
    led = Ledger()
    h = led.buy("xyz", 4, 5.5)
    assert h == Holding(symbol="XYZ", quantity=4, avg_buy_price=5.5, current_price=5.5)


def test_lookup_is_case_insensitive_and_stored_upper():
    led = Ledger()
    led.buy("aapl", 1, 100.0)
    led.buy("AaPl", 1, 110.0)
    assert [h.symbol for h in led.all()] == ["AAPL"]
    assert led.find("aapl").quantity == 2
    assert "Aapl" in led


@pytest.mark.parametrize("qty,price", [(0, 10.0), (-1, 10.0), (1.5, 10.0), (True, 10.0), (1, 0.0), (1, -3.0), (1, float("nan")), (1, float("inf"))])
def test_buy_rejects_invalid_values_without_mutation(qty, price):
    led = make_ledger([Holding("ABC", 5, 10.0, 11.0)])
    with pytest.raises(InvalidInput):
        led.buy("ABC", qty, price)
    with pytest.raises(InvalidInput):
        led.buy("NEW", qty, price)
    assert led.all() == (Holding("ABC", 5, 10.0, 11.0),)


@pytest.mark.parametrize("sym", ["", "   ", "BRK B", "X" * 16])
def test_buy_rejects_bad_symbols(sym):
    led = Ledger()
    with pytest.raises(InvalidInput):
        led.buy(sym, 1, 1.0)
    assert len(led) == 0


def test_normalize_symbol_strips_and_uppercases():
    assert normalize_symbol("  msft \n") == "MSFT"
    assert normalize_symbol("brk.b", max_len=5) == "BRK.B"
    with pytest.raises(InvalidInput):
        normalize_symbol("brk.b", max_len=4)


def test_buy_new_symbol_at_capacity_fails():
    led = Ledger(max_holdings=3)
    for sym in ("A", "B", "C"):
        led.buy(sym, 1, 1.0)
    with pytest.raises(CapacityExceeded):
        led.buy("D", 1, 1.0)
    assert len(led) == 3
    assert led.find("D") is None
    # existing symbols can still be added to when full
    assert led.buy("b", 2, 4.0).quantity == 3


def test_default_capacity_is_one_hundred():
    led = Ledger()
    for i in range(100):
        led.buy(f"S{i}", 1, 1.0)
    with pytest.raises(CapacityExceeded):
        led.buy("ONEMORE", 1, 1.0)
    assert len(led) == 100


def test_unbounded_ledger():
    led = Ledger(max_holdings=None)
    for i in range(150):
        led.buy(f"S{i}", 1, 1.0)
    assert len(led) == 150
    assert not led.is_full


def test_sell_partial_keeps_avg_and_sets_current_price():
    led = Ledger()
    led.buy("ABC", 10, 10.0)
    h = led.sell("abc", 4, 12.0)
    assert h.quantity == 6
    assert h.avg_buy_price == 10.0
    assert h.current_price == 12.0
    assert led.find("ABC") == h


def test_sell_to_zero_removes_holding():
    led = Ledger()
    led.buy("ABC", 5, 10.0)
    h = led.sell("ABC", 5, 12.0)
    assert h.quantity == 0
    assert led.find("ABC") is None
    assert len(led) == 0


def test_sell_removal_preserves_order_of_rest():
    led = Ledger()
    for sym in ("AAA", "BBB", "CCC", "DDD"):
        led.buy(sym, 1, 1.0)
    led.sell("BBB", 1, 1.0)
    assert [h.symbol for h in led.all()] == ["AAA", "CCC", "DDD"]
    led.buy("BBB", 1, 1.0)
    assert [h.symbol for h in led.all()] == ["AAA", "CCC", "DDD", "BBB"]


def test_sell_more_than_held_is_rejected():
    led = Ledger()
    led.buy("ABC", 5, 10.0)
    with pytest.raises(InsufficientQuantity) as exc:
        led.sell("ABC", 6, 10.0)
    assert exc.value.held == 5 and exc.value.requested == 6
    assert led.find("ABC") == Holding("ABC", 5, 10.0, 10.0)


def test_sell_at_zero_price_is_allowed():
    led = Ledger()
    led.buy("BUST", 10, 3.0)
    h = led.sell("BUST", 4, 0.0)
    assert h.current_price == 0.0
    assert h.quantity == 6


def test_sell_validation_errors():
    led = Ledger()
    led.buy("ABC", 5, 10.0)
    with pytest.raises(NotFound):
        led.sell("XYZ", 1, 1.0)
    with pytest.raises(InvalidInput):
        led.sell("ABC", 0, 1.0)
    with pytest.raises(InvalidInput):
        led.sell("ABC", 1, -0.01)
    assert led.find("ABC") == Holding("ABC", 5, 10.0, 10.0)


def test_set_current_price():
    led = Ledger()
    led.buy("ABC", 5, 10.0)
    assert led.set_current_price("abc", 13.5).current_price == 13.5
    with pytest.raises(InvalidInput):
        led.set_current_price("ABC", 0.0)
    with pytest.raises(NotFound):
        led.set_current_price("NOPE", 1.0)
    assert led.find("ABC").current_price == 13.5
    assert led.find("ABC").avg_buy_price == 10.0


def test_reprice_all_partial_failure():
    led = make_ledger([
        Holding("AAA", 1, 1.0, 1.0),
        Holding("BBB", 1, 1.0, 1.0),
        Holding("CCC", 1, 1.0, 1.0),
        Holding("DDD", 1, 1.0, 1.0),
    ])
    prices = {"AAA": 2.0, "BBB": -1.0, "CCC": None}

    def price_for(h):
        if h.symbol == "DDD":
            raise InvalidInput("bad text")
        return prices[h.symbol]

    res = led.reprice_all(price_for)
    assert res.applied == ["AAA"]
    assert res.skipped == ["CCC"]
    assert res.invalid == ["BBB", "DDD"]
    assert res.applied_count == 1
    assert [h.current_price for h in led.all()] == [2.0, 1.0, 1.0, 1.0]


def test_reprice_all_stops_on_other_errors_keeping_applied():
    led = make_ledger([Holding("AAA", 1, 1.0, 1.0), Holding("BBB", 1, 1.0, 1.0)])

    def price_for(h):
        if h.symbol == "BBB":
            raise EOFError()
        return 5.0

    with pytest.raises(EOFError):
        led.reprice_all(price_for)
    assert led.find("AAA").current_price == 5.0
    assert led.find("BBB").current_price == 1.0


def test_reprice_dispatch_all_sentinel():
    led = make_ledger([Holding("AAA", 1, 1.0, 1.0), Holding("BBB", 2, 1.0, 1.0)])
    res = led.reprice("all", {"bbb": 3.0})
    assert res.applied == ["BBB"]
    assert res.skipped == ["AAA"]
    h = led.reprice("aaa", 9.0)
    assert h.current_price == 9.0
    with pytest.raises(InvalidInput):
        led.reprice("ALL", 4.0)


def test_all_returns_snapshots():
    led = Ledger()
    led.buy("ABC", 1, 1.0)
    snap = led.all()
    snap[0].quantity = 999
    assert led.find("ABC").quantity == 1


def test_replace_all_rejects_duplicates_and_overflow():
    led = make_ledger([Holding("KEEP", 1, 1.0, 1.0)], max_holdings=2)
    with pytest.raises(InvalidInput):
        led.replace_all([Holding("A", 1, 1.0, 1.0), Holding("A", 2, 1.0, 1.0)])
    with pytest.raises(CapacityExceeded):
        led.replace_all([Holding(s, 1, 1.0, 1.0) for s in "ABC"])
    assert [h.symbol for h in led.all()] == ["KEEP"]


def test_quantity_above_limit_is_rejected():
    led = Ledger()
    with pytest.raises(InvalidInput):
        led.buy("ABC", int("1" * 400), 10.0)
    with pytest.raises(InvalidInput):
        led.buy("ABC", MAX_QUANTITY + 1, 10.0)
    assert len(led) == 0
    assert led.buy("ABC", MAX_QUANTITY, 1.0).quantity == MAX_QUANTITY


def test_merged_quantity_above_limit_is_rejected():
    led = Ledger()
    led.buy("ABC", MAX_QUANTITY - 5, 10.0)
    with pytest.raises(InvalidInput):
        led.buy("ABC", 6, 12.0)
    assert led.find("ABC") == Holding("ABC", MAX_QUANTITY - 5, 10.0, 10.0)
    assert led.buy("ABC", 5, 10.0).quantity == MAX_QUANTITY


def test_average_overflowing_to_infinity_is_rejected():
    led = Ledger()
    led.buy("ABC", 10, 1e308)
    with pytest.raises(InvalidInput):
        led.buy("ABC", 10, 1e308)
    assert led.find("ABC") == Holding("ABC", 10, 1e308, 1e308)


def test_clear_empties_ledger():
    led = make_ledger([Holding("AAA", 1, 1.0, 1.0), Holding("BBB", 2, 1.0, 1.0)])
    led.clear()
    assert len(led) == 0
    assert led.all() == ()
    led.buy("AAA", 1, 2.0)
    assert [h.symbol for h in led.all()] == ["AAA"]
