"""JSON serialization helpers for API responses and the analytics cache."""
from datetime import datetime, date
from decimal import Decimal
from typing import Any


def to_jsonable(value: Any) -> Any:
    """Recursively convert Decimals to strings and datetimes to ISO-8601."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def serialize_sale(sale) -> dict:
    return {
        'id': sale.id,
        'customer_id': sale.customer_id,
        'items': [
            {
                'product_id': line.product_id,
                'quantity': line.qty,
                'unit_price': line.unit_price,
                'line_total': line.line_total,
                'line_discount': line.line_discount,
            }
            for line in sale.lines
        ],
        'subtotal': sale.subtotal,
        'tax': sale.tax,
        'discount': sale.discount,
        'line_discount': sale.line_discount,
        'total': sale.total,
        'datetime': sale.datetime,
        'status': sale.status,
    }


def serialize_payment(payment) -> dict:
    return {
        'id': payment.id,
        'sale_id': payment.sale_id,
        'amount': payment.amount,
        'method': payment.method,
        'status': payment.status,
        'datetime': payment.datetime,
    }


def serialize_sale_result(result: dict) -> dict:
    """Serialize the {sale, payment} mapping returned by process_sale()."""
    return to_jsonable({
        'sale': serialize_sale(result['sale']),
        'payment': serialize_payment(result['payment']),
    })
