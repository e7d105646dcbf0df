import pytest

from src.stockfolio.cli.parsing import is_blank, parse_decimal, parse_int
from src.stockfolio.ledger.errors import InvalidInput


def test_parse_int_accepts_plain_integers():
    assert parse_int("12") == 12
    assert parse_int(" -3 ") == -3
    assert parse_int("+7") == 7


@pytest.mark.parametrize("text", ["12x", "1.0", "", "  ", "1_000", "x12", "1e3"])
def test_parse_int_rejects_trailing_or_foreign_characters(text):
    with pytest.raises(InvalidInput):
        parse_int(text)


def test_parse_decimal_accepts_common_forms():
    assert parse_decimal("10") == 10.0
    assert parse_decimal("10.25") == 10.25
    assert parse_decimal(".5") == 0.5
    assert parse_decimal("5.") == 5.0
    assert parse_decimal("1e2") == 100.0
    assert parse_decimal("-2.5") == -2.5


@pytest.mark.parametrize("text", ["12.5x", "abc", "nan", "inf", "1_0.5", "1e999", "", "1.2.3"])
def test_parse_decimal_rejects(text):
    with pytest.raises(InvalidInput):
        parse_decimal(text)


def test_is_blank():
    assert is_blank(None)
    assert is_blank("  \t")
    assert not is_blank(" a ")
