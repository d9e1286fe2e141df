"""
Sales service with transactional logic.
Handles stock validation and deduction, pricing, sale and payment records and
the customer ledger as one atomic unit.
"""
import logging
from collections import OrderedDict
from datetime import datetime
from typing import List, Dict, Any, Optional

from clearvue.exceptions import (
    ClearVueError, ConflictError, InsufficientStockError, InvalidInputError
)
from clearvue.models import Sale, SaleLine, Payment, SaleStatus, PaymentStatus, normalize_payment_method
from clearvue.services import record_store
from clearvue.services.pricing_service import calculate_pricing

logger = logging.getLogger(__name__)


def process_sale(
    session,
    customer_id,
    items: List[Dict[str, Any]],
    payment_method: str,
    idempotency_key: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Record a sale atomically.

    Steps (all inside one unit of work):
    1. Lock and fetch every requested product
    2. Validate stock for every line before touching any record
    3. Deduct stock with a guarded update
    4. Price the lines with the current catalog price (captured on the lines)
    5. Create the Sale (completed)
    6. Create its Payment (completed, amount = sale total)
    7. Update the customer ledger

    Args:
        session: SQLAlchemy session
        customer_id: Customer placing the order
        items: list of {'product_id', 'quantity'}
        payment_method: cash, card or online
        idempotency_key: optional double-submit guard

    Returns:
        dict with `sale` and `payment`

    Raises:
        InvalidInputError, ProductNotFoundError, CustomerNotFoundError,
        InsufficientStockError, ConflictError, StorageUnavailableError
    """
    method = normalize_payment_method(payment_method)
    if method is None:
        raise InvalidInputError(
            f'Invalid payment method: {payment_method!r}',
            payload={'field': 'payment_method'}
        )
    customer_id = _normalize_customer_id(customer_id)
    requested = _normalize_items(items)

    def _unit_of_work(session):
        if idempotency_key:
            existing = session.query(Sale).filter_by(idempotency_key=idempotency_key).first()
            if existing:
                raise ConflictError(
                    f'This sale was already processed (ID: {existing.id})',
                    payload={'sale_id': existing.id}
                )

        # 1. Fetch products and lock their rows
        products = {
            pid: record_store.get_product(session, pid, for_update=True)
            for pid in sorted(_quantities_by_product(requested))
        }

        # 2. Validate stock for all lines before any mutation
        for pid, qty in _quantities_by_product(requested).items():
            product = products[pid]
            if product.stock < qty:
                raise InsufficientStockError(product.name, qty, product.stock)

        # 3. Deduct stock
        for pid, qty in _quantities_by_product(requested).items():
            record_store.deduct_stock(session, products[pid], qty)

        # 4. Price with current catalog prices
        totals = calculate_pricing([
            {'product_id': line['product_id'], 'qty': line['qty'], 'unit_price': products[line['product_id']].price}
            for line in requested
        ])

        now = datetime.now()

        # 5. Build the Sale with its lines
        sale = Sale(
            customer_id=customer_id,
            idempotency_key=idempotency_key,
            subtotal=totals['subtotal'],
            tax=totals['tax'],
            discount=totals['discount'],
            line_discount=totals['line_discount'],
            total=totals['total'],
            datetime=now,
            status=SaleStatus.COMPLETED.value,
        )
        for position, line in enumerate(totals['lines']):
            sale.lines.append(SaleLine(
                position=position,
                product_id=line['product_id'],
                qty=line['qty'],
                unit_price=line['unit_price'],
                line_total=line['line_total'],
                line_discount=line['line_discount'],
            ))

        # The customer must resolve before the sale is written
        customer = record_store.get_customer(session, customer_id, for_update=True)
        record_store.create_sale(session, sale)

        # 6. Create Payment
        payment = record_store.create_payment(session, Payment(
            sale_id=sale.id,
            amount=sale.total,
            method=method.value,
            status=PaymentStatus.COMPLETED.value,
            datetime=now,
        ))

        # 7. Update customer ledger
        customer.lifetime_value = (customer.lifetime_value or 0) + sale.total
        customer.total_purchases = (customer.total_purchases or 0) + 1
        customer.last_purchase_at = now
        record_store.save_customer(session, customer)

        return {'sale': sale, 'payment': payment}

    try:
        result = record_store.run_atomic(session, _unit_of_work)
    except ClearVueError as e:
        logger.warning(f"[SALES] Sale rejected for customer {customer_id}: {e.message}")
        _record_outcome(type(e).__name__)
        raise

    logger.info(
        f"[SALES] Sale #{result['sale'].id} committed for customer {customer_id}: "
        f"total={result['sale'].total} method={method.value}"
    )
    _record_outcome('completed')
    _invalidate_analytics_cache()
    return result


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _normalize_customer_id(customer_id) -> int:
    if customer_id is None or isinstance(customer_id, bool) or (
        isinstance(customer_id, float) and not customer_id.is_integer()
    ):
        raise InvalidInputError(f'Invalid customer_id: {customer_id!r}', payload={'field': 'customer_id'})
    try:
        return int(customer_id)
    except (TypeError, ValueError):
        raise InvalidInputError(f'Invalid customer_id: {customer_id!r}', payload={'field': 'customer_id'})


def _normalize_items(items) -> List[Dict[str, Any]]:
    """Validate the requested lines and coerce them to {'product_id', 'qty'}."""
    if not items:
        raise InvalidInputError('A sale needs at least one item', payload={'field': 'items'})

    normalized = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidInputError('Each item must be an object', payload={'field': 'items'})
        product_id = item.get('product_id', item.get('productId'))
        qty = item.get('quantity', item.get('qty'))
        if product_id is None or isinstance(product_id, bool):
            raise InvalidInputError('Each item needs a product_id', payload={'field': 'product_id'})
        try:
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise InvalidInputError(f'Invalid product_id: {product_id!r}', payload={'field': 'product_id'})
        if isinstance(qty, bool) or not isinstance(qty, int):
            try:
                as_float = float(qty)
            except (TypeError, ValueError):
                raise InvalidInputError('quantity must be a whole number', payload={'field': 'quantity'})
            if not as_float.is_integer():
                raise InvalidInputError('quantity must be a whole number', payload={'field': 'quantity'})
            qty = int(as_float)
        if qty < 1:
            raise InvalidInputError('quantity must be at least 1', payload={'field': 'quantity'})
        normalized.append({'product_id': product_id, 'qty': qty})
    return normalized


def _quantities_by_product(lines) -> Dict[Any, int]:
    """Total requested quantity per product (a product may appear on several lines)."""
    totals = OrderedDict()
    for line in lines:
        totals[line['product_id']] = totals.get(line['product_id'], 0) + line['qty']
    return totals


def _record_outcome(outcome: str):
    """Count the sale outcome in Prometheus."""
    from clearvue.blueprints.metrics import sales_processed_total
    sales_processed_total.labels(outcome=outcome).inc()


def _invalidate_analytics_cache():
    """Drop cached analytics after a committed sale."""
    from clearvue.services.cache_service import get_cache
    cache = get_cache()
    if cache is not None:
        cache.invalidate_module('analytics')
