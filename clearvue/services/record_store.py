"""
Record store - persistence contract used by the sales engine and analyzers.

Point lookups, keyed writes, the atomic unit of work (with retry on
concurrency failures) and the grouped sales aggregation all live here so the
services never build transactions by hand.
"""
import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import update, func, extract
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from clearvue.exceptions import (
    ClearVueError, ConflictError, CustomerNotFoundError, InvalidInputError,
    ProductNotFoundError, StockConflictError, StorageUnavailableError
)
from clearvue.models import Customer, Payment, Product, Sale, SaleLine
from clearvue.utils.settings import config_value

logger = logging.getLogger(__name__)

GROUP_KEYS = ('product', 'category', 'customer', 'month')


# =====================================================
# POINT LOOKUPS AND WRITES
# =====================================================

def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE and serializes writers instead.
    """
    return query.with_for_update()


def get_product(session, product_id, for_update: bool = False) -> Product:
    query = session.query(Product).filter(Product.id == product_id)
    if for_update:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def save_product(session, product: Product) -> Product:
    session.add(product)
    session.flush()
    return product


def deduct_stock(session, product: Product, qty: int) -> None:
    """
    Decrement stock only if enough is still on hand.

    The WHERE guard makes a lost race visible even where row locks are not
    honoured: zero affected rows means another sale consumed the stock first.
    """
    result = session.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock >= qty)
        .values(stock=Product.stock - qty)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StockConflictError(
            f'Stock for "{product.name}" changed while the sale was being processed',
            payload={'product_id': product.id}
        )
    session.expire(product, ['stock'])


def get_customer(session, customer_id, for_update: bool = False) -> Customer:
    query = session.query(Customer).filter(Customer.id == customer_id)
    if for_update:
        query = lock_for_update(query)
    customer = query.first()
    if customer is None:
        raise CustomerNotFoundError(customer_id)
    return customer


def save_customer(session, customer: Customer) -> Customer:
    session.add(customer)
    session.flush()
    return customer


def create_sale(session, sale: Sale) -> Sale:
    session.add(sale)
    session.flush()
    return sale


def create_payment(session, payment: Payment) -> Payment:
    session.add(payment)
    session.flush()
    return payment


# =====================================================
# ATOMIC UNIT OF WORK
# =====================================================

def run_atomic(session, unit_of_work: Callable[[Any], Any], *, attempts: Optional[int] = None,
               backoff_base: Optional[float] = None) -> Any:
    """
    Execute `unit_of_work(session)` and commit it as one all-or-nothing unit.

    Retries on OperationalError (locks, deadlocks, statement timeouts),
    StaleDataError and StockConflictError with exponential backoff; each retry
    starts from a clean transaction so validation sees fresh rows.
    Business errors roll back and propagate unchanged. Storage failures that
    outlive the retries surface as StorageUnavailableError.
    """
    attempts = attempts or int(config_value('DB_RETRY_ATTEMPTS', 3))
    if backoff_base is None:
        backoff_base = float(config_value('DB_RETRY_BACKOFF', 0.1))

    for attempt in range(attempts):
        try:
            result = unit_of_work(session)
            session.commit()
            return result
        except (OperationalError, StaleDataError, StockConflictError) as exc:
            session.rollback()
            if attempt >= attempts - 1:
                if isinstance(exc, StockConflictError):
                    raise
                logger.error(f"[STORE] Atomic unit failed after {attempts} attempts: {exc}", exc_info=True)
                raise StorageUnavailableError() from exc
            logger.warning(f"[STORE] Atomic unit attempt {attempt + 1} failed ({type(exc).__name__}), retrying")
            time.sleep(backoff_base * (2 ** attempt))
        except IntegrityError as exc:
            session.rollback()
            logger.warning(f"[STORE] Integrity violation in atomic unit: {exc.orig}")
            raise ConflictError('The operation conflicts with existing data') from exc
        except ClearVueError:
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(f"[STORE] Storage error in atomic unit: {exc}", exc_info=True)
            raise StorageUnavailableError() from exc
        except Exception:
            session.rollback()
            raise


# =====================================================
# AGGREGATION
# =====================================================

def _dec(value) -> Decimal:
    """Normalize aggregate results (float on SQLite, Decimal on PostgreSQL)."""
    if value is None:
        return Decimal('0')
    return Decimal(str(value))


def _apply_window(query, start: Optional[datetime], end: Optional[datetime]):
    if start is not None:
        query = query.filter(Sale.datetime >= start)
    if end is not None:
        query = query.filter(Sale.datetime < end)
    return query


def aggregate_sales(
    session,
    group_by: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    category: Optional[str] = None,
    customer_id=None,
    payment_status: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Group sales and reduce them.

    Line-level groupings (`product`, `category`) explode sale lines, join the
    catalog and reduce revenue as qty * captured unit price. Sale-level
    groupings (`customer`, `month`) reduce Sale.total.

    Args:
        session: SQLAlchemy session
        group_by: one of GROUP_KEYS
        start / end: half-open date window on Sale.datetime
        category: restrict to products of this category (line-level only)
        customer_id: restrict to one customer
        payment_status: restrict to sales whose payment has this status

    Returns:
        list of dicts, each with `key`, `revenue`, `units` (line-level),
        `count`, `price_total` (line-level), `first` and `last`, plus
        descriptive fields of the group (name, category, customer_name...).
        Order is unspecified; callers sort.
    """
    if group_by not in GROUP_KEYS:
        raise InvalidInputError(f'Unsupported grouping: {group_by!r}', payload={'group_by': group_by})

    first = func.min(Sale.datetime).label('first')
    last = func.max(Sale.datetime).label('last')

    if group_by in ('product', 'category'):
        revenue = func.sum(SaleLine.qty * SaleLine.unit_price).label('revenue')
        units = func.sum(SaleLine.qty).label('units')
        count = func.count(SaleLine.id).label('count')
        price_total = func.sum(SaleLine.unit_price).label('price_total')

        if group_by == 'product':
            columns = [Product.id.label('key'), Product.name.label('name'), Product.category.label('category')]
            group_columns = [Product.id, Product.name, Product.category]
        else:
            columns = [Product.category.label('key')]
            group_columns = [Product.category]

        query = (
            session.query(*columns, revenue, units, count, price_total, first, last)
            .select_from(SaleLine)
            .join(Sale, Sale.id == SaleLine.sale_id)
            .join(Product, Product.id == SaleLine.product_id)
        )
        if category is not None:
            query = query.filter(Product.category == category)
    else:
        revenue = func.sum(Sale.total).label('revenue')
        count = func.count(Sale.id).label('count')

        if group_by == 'customer':
            columns = [Sale.customer_id.label('key'), Customer.name.label('customer_name')]
            group_columns = [Sale.customer_id, Customer.name]
            query = (
                session.query(*columns, revenue, count, first, last)
                .select_from(Sale)
                .join(Customer, Customer.id == Sale.customer_id)
            )
        else:
            year = extract('year', Sale.datetime).label('year')
            month = extract('month', Sale.datetime).label('month')
            columns = [year, month]
            group_columns = [year, month]
            query = session.query(*columns, revenue, count, first, last).select_from(Sale)

    query = _apply_window(query, start, end)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    if payment_status is not None:
        query = query.join(Payment, Payment.sale_id == Sale.id).filter(Payment.status == payment_status)

    rows = query.group_by(*group_columns).all()

    results = []
    for row in rows:
        data = row._asdict()
        if group_by == 'month':
            data['key'] = (int(data.pop('year')), int(data.pop('month')))
        data['revenue'] = _dec(data['revenue'])
        data['count'] = int(data['count'] or 0)
        if 'units' in data:
            data['units'] = int(data['units'] or 0)
            data['price_total'] = _dec(data['price_total'])
        results.append(data)
    return results
