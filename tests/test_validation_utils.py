from datetime import date
from decimal import Decimal
import pytest
from werkzeug.exceptions import BadRequest
from invoice_tracker.config.pagination import normalize_pagination
from invoice_tracker.utils.validation import parse_amount, parse_date, require_fields, validate_password_pair


def test_parse_amount_accepts_two_decimals():
    assert parse_amount('1250.50') == Decimal('1250.50')
    assert parse_amount(7) == Decimal('7')
    assert parse_amount(0.1) == Decimal('0.1')


@pytest.mark.parametrize('raw', ['1.001', -0.01, 'NaN', 'Infinity', None, False, '1e-3'])
def test_parse_amount_rejects(raw):
    with pytest.raises(BadRequest):
        parse_amount(raw)


def test_parse_date():
    assert parse_date('2026-02-28', 'received_date') == date(2026, 2, 28)
    assert parse_date(None, 'payment_date', required=False) is None
    with pytest.raises(BadRequest):
        parse_date('2026-02-30', 'received_date')
    with pytest.raises(BadRequest):
        parse_date('', 'received_date')


def test_require_fields_lists_missing():
    with pytest.raises(BadRequest) as exc:
        require_fields({'a': 'x', 'b': '  '}, 'a', 'b', 'c')
    assert exc.value.description == 'b, c required'


def test_password_pair():
    validate_password_pair('same', 'same')
    with pytest.raises(BadRequest):
        validate_password_pair('one', 'two')
    with pytest.raises(BadRequest):
        validate_password_pair('', '')


def test_normalize_pagination_bounds():
    assert normalize_pagination(None, None) == (50, 0)
    assert normalize_pagination('500', '-3') == (200, 0)
    assert normalize_pagination('0', '5') == (1, 5)
    with pytest.raises(ValueError):
        normalize_pagination('x', '0')


def test_parse_sort_tokens():
    from invoice_tracker.utils.sorting import parse_sort
    assert parse_sort('amount, -received_date,,') == [('amount', False), ('received_date', True)]
    assert parse_sort(None) == []
