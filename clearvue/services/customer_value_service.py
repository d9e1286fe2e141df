"""
Customer value service.
Derives lifetime-value metrics, the LTV score and the customer segment from a
customer's sales history.
"""
from decimal import Decimal
from typing import Dict, Any

from clearvue.services import record_store
from clearvue.services.pricing_service import money

SPEND_DIVISOR = Decimal('100000')
VALUE_DIVISOR = Decimal('5000')

# (minimum score, segment), inclusive lower bounds
SEGMENTS = (
    (Decimal('80'), 'Platinum'),
    (Decimal('60'), 'Gold'),
    (Decimal('40'), 'Silver'),
)


def calculate_ltv_score(total_spent, purchase_frequency, average_order_value) -> Decimal:
    """(spend + frequency + value) * 5, each component capped; range 0-100."""
    spend_score = min(Decimal(total_spent) / SPEND_DIVISOR, Decimal('10'))
    frequency_score = min(Decimal(purchase_frequency) * 2, Decimal('5'))
    value_score = min(Decimal(average_order_value) / VALUE_DIVISOR, Decimal('5'))
    return (spend_score + frequency_score + value_score) * 5


def assign_customer_segment(ltv_score) -> str:
    for threshold, segment in SEGMENTS:
        if ltv_score >= threshold:
            return segment
    return 'Bronze'


def calculate_customer_ltv(session, customer_id) -> Dict[str, Any]:
    """
    Lifetime value report for one customer.

    Customers without sales get zeros and no purchase dates.

    Raises:
        CustomerNotFoundError: unknown customer id
    """
    customer = record_store.get_customer(session, customer_id)

    rows = record_store.aggregate_sales(session, 'customer', customer_id=customer.id)
    if rows:
        row = rows[0]
        total_spent = row['revenue']
        frequency = row['count']
        first_purchase, last_purchase = row['first'], row['last']
    else:
        total_spent = Decimal('0')
        frequency = 0
        first_purchase = last_purchase = None

    average_order_value = total_spent / frequency if frequency else Decimal('0')
    ltv_score = calculate_ltv_score(total_spent, frequency, average_order_value)

    return {
        'customer_id': customer.id,
        'customer_name': customer.name,
        'lifetime_value': money(total_spent),
        'average_order_value': money(average_order_value),
        'purchase_frequency': frequency,
        'ltv_score': ltv_score.quantize(Decimal('0.01')),
        'customer_segment': assign_customer_segment(ltv_score),
        'first_purchase': first_purchase,
        'last_purchase': last_purchase,
    }
