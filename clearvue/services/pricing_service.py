"""
Pricing calculator for sale lines.

Volume discounts are applied per line (highest tier wins, tiers do not stack)
and tax is charged on the discounted subtotal. All amounts are Decimal and
rounded half away from zero to cents.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Dict, Any, Iterable, Optional

from clearvue.exceptions import InvalidInputError
from clearvue.utils.settings import config_value

CENT = Decimal('0.01')
DEFAULT_TAX_RATE = Decimal('0.15')

# (minimum quantity, discount rate), checked from the highest threshold down
VOLUME_DISCOUNT_TIERS = (
    (50, Decimal('0.10')),
    (10, Decimal('0.05')),
)


def money(value) -> Decimal:
    """Round a Decimal to currency precision (half away from zero)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def discount_rate_for(qty: int) -> Decimal:
    """Volume discount rate for a line quantity."""
    for threshold, rate in VOLUME_DISCOUNT_TIERS:
        if qty >= threshold:
            return rate
    return Decimal('0')


def _to_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInputError(f'{field} must be numeric', payload={'field': field})
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInputError(f'{field} must be numeric', payload={'field': field})
    if not result.is_finite():
        raise InvalidInputError(f'{field} must be numeric', payload={'field': field})
    return result


def _to_quantity(value) -> int:
    qty = _to_decimal(value, 'quantity')
    if qty != qty.to_integral_value():
        raise InvalidInputError('quantity must be a whole number', payload={'field': 'quantity'})
    if qty < 1:
        raise InvalidInputError('quantity must be at least 1', payload={'field': 'quantity'})
    return int(qty)


def resolve_tax_rate(tax_rate=None) -> Decimal:
    """Explicit rate, else TAX_RATE from the active Flask app, else 0.15."""
    if tax_rate is None:
        tax_rate = config_value('TAX_RATE', DEFAULT_TAX_RATE)
    rate = _to_decimal(tax_rate, 'tax_rate')
    if rate < 0:
        raise InvalidInputError('tax_rate must not be negative', payload={'field': 'tax_rate'})
    return rate


def calculate_pricing(lines: Iterable[Dict[str, Any]], tax_rate=None) -> Dict[str, Any]:
    """
    Price an ordered list of sale lines.

    Args:
        lines: iterable of dicts with `product_id`, `qty` and `unit_price`
        tax_rate: optional override of the configured tax rate

    Returns:
        dict with keys:
            - subtotal: sum of discounted line totals, rounded once
            - tax: subtotal * tax_rate
            - discount: legacy reported discount, always 0 (already in subtotal)
            - line_discount: volume discount actually applied across lines
            - total: subtotal + tax
            - lines: per-line breakdown (line_total, line_discount, net)

    Raises:
        InvalidInputError: quantity below 1, negative price, non-numeric values
    """
    rate = resolve_tax_rate(tax_rate)

    details: List[Dict[str, Any]] = []
    subtotal = Decimal('0')
    applied_discount = Decimal('0')

    for line in lines:
        qty = _to_quantity(line.get('qty'))
        unit_price = _to_decimal(line.get('unit_price'), 'unit_price')
        if unit_price < 0:
            raise InvalidInputError('unit_price must not be negative', payload={'field': 'unit_price'})

        # Exact until the final rounding; per-line figures are rounded for display only
        line_total = unit_price * qty
        line_discount = line_total * discount_rate_for(qty)
        net = line_total - line_discount

        details.append({
            'product_id': line.get('product_id'),
            'qty': qty,
            'unit_price': money(unit_price),
            'line_total': money(line_total),
            'line_discount': money(line_discount),
            'net': money(net),
        })
        subtotal += net
        applied_discount += line_discount

    tax = money(subtotal * rate)
    subtotal = money(subtotal)

    return {
        'subtotal': subtotal,
        'tax': tax,
        'discount': money(0),
        'line_discount': money(applied_discount),
        'total': money(subtotal + tax),
        'lines': details,
    }
