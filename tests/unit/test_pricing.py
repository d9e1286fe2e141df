"""
Unit tests for the pricing calculator.
"""

import pytest
from decimal import Decimal
from clearvue.exceptions import InvalidInputError
from clearvue.services.pricing_service import calculate_pricing, discount_rate_for, money


def _line(qty, unit_price, product_id=1):
    return {'product_id': product_id, 'qty': qty, 'unit_price': unit_price}


class TestDiscountTiers:
    """Volume discount tiers (highest threshold wins)."""

    @pytest.mark.parametrize('qty, rate', [
        (1, Decimal('0')),
        (9, Decimal('0')),
        (10, Decimal('0.05')),
        (49, Decimal('0.05')),
        (50, Decimal('0.10')),
        (500, Decimal('0.10')),
    ])
    def test_rate_by_quantity(self, qty, rate):
        assert discount_rate_for(qty) == rate

    def test_tiers_do_not_stack(self):
        """A 50-unit line gets 10%, not 15%."""
        result = calculate_pricing([_line(50, '2.00')], tax_rate='0')
        assert result['lines'][0]['line_discount'] == Decimal('10.00')
        assert result['subtotal'] == Decimal('90.00')


class TestCalculatePricing:
    """Tests for calculate_pricing()."""

    def test_no_discount_below_ten_units(self):
        result = calculate_pricing([_line(2, '100.00')], tax_rate='0.15')

        assert result['subtotal'] == Decimal('200.00')
        assert result['tax'] == Decimal('30.00')
        assert result['total'] == Decimal('230.00')
        assert result['line_discount'] == Decimal('0.00')

    def test_five_percent_tier(self):
        result = calculate_pricing([_line(10, '10.00')], tax_rate='0.15')

        assert result['line_discount'] == Decimal('5.00')
        assert result['subtotal'] == Decimal('95.00')
        assert result['tax'] == Decimal('14.25')
        assert result['total'] == Decimal('109.25')

    def test_mixed_lines(self):
        result = calculate_pricing([
            _line(1, '19.99', product_id=1),
            _line(12, '5.00', product_id=2),
            _line(60, '1.50', product_id=3),
        ], tax_rate='0.15')

        # 19.99 + (60.00 - 3.00) + (90.00 - 9.00)
        assert result['subtotal'] == Decimal('157.99')
        assert result['line_discount'] == Decimal('12.00')
        assert result['tax'] == Decimal('23.70')
        assert result['total'] == Decimal('181.69')
        assert [line['product_id'] for line in result['lines']] == [1, 2, 3]

    def test_reported_discount_is_always_zero(self):
        result = calculate_pricing([_line(50, '10.00')], tax_rate='0.15')

        assert result['discount'] == Decimal('0.00')
        assert result['line_discount'] == Decimal('50.00')

    def test_total_reconciles(self):
        result = calculate_pricing([_line(13, '7.77'), _line(3, '0.33')], tax_rate='0.15')

        assert result['total'] == money(result['subtotal'] + result['tax'] - result['discount'])

    def test_rounds_half_away_from_zero(self):
        """0.10 * 0.15 = 0.015 rounds up to 0.02."""
        result = calculate_pricing([_line(1, '0.10')], tax_rate='0.15')

        assert result['tax'] == Decimal('0.02')
        assert result['total'] == Decimal('0.12')

    def test_line_discount_is_not_rounded_before_subtotal(self):
        """10 * 0.11 = 1.10, less 5% (0.055) -> 1.045, rounded once to 1.05."""
        result = calculate_pricing([_line(10, '0.11')], tax_rate='0.15')

        assert result['subtotal'] == Decimal('1.05')
        assert result['line_discount'] == Decimal('0.06')
        assert result['tax'] == Decimal('0.16')
        assert result['total'] == Decimal('1.21')
        assert result['lines'][0]['line_discount'] == Decimal('0.06')

    def test_half_cent_discounts_accumulate(self):
        """Two lines of 1.045 sum to 2.09, not 2 * 1.04."""
        result = calculate_pricing([_line(10, '0.11'), _line(10, '0.11')], tax_rate='0.15')

        assert result['subtotal'] == Decimal('2.09')
        assert result['line_discount'] == Decimal('0.11')
        assert result['tax'] == Decimal('0.31')
        assert result['total'] == Decimal('2.40')

    def test_default_tax_rate_outside_app(self):
        result = calculate_pricing([_line(1, '100.00')])
        assert result['tax'] == Decimal('15.00')

    def test_empty_lines(self):
        result = calculate_pricing([], tax_rate='0.15')
        assert result['total'] == Decimal('0.00')
        assert result['lines'] == []

    def test_is_deterministic(self):
        lines = [_line(11, '3.33'), _line(51, '0.99')]
        assert calculate_pricing(lines, tax_rate='0.15') == calculate_pricing(lines, tax_rate='0.15')


class TestInvalidInput:
    """Malformed lines fail with InvalidInputError."""

    @pytest.mark.parametrize('qty', [-1, 0, 1.5, 'abc', None])
    def test_invalid_quantity(self, qty):
        with pytest.raises(InvalidInputError):
            calculate_pricing([_line(qty, '10.00')], tax_rate='0.15')

    @pytest.mark.parametrize('price', ['-0.01', 'free', None])
    def test_invalid_price(self, price):
        with pytest.raises(InvalidInputError):
            calculate_pricing([_line(1, price)], tax_rate='0.15')

    def test_negative_tax_rate(self):
        with pytest.raises(InvalidInputError):
            calculate_pricing([_line(1, '10.00')], tax_rate='-0.1')
