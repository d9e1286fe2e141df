"""
Sales rollup service.
Revenue and unit aggregates over named time windows, product performance,
quarterly revenue and the overdue payments report.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Dict, Any, Optional

from clearvue.exceptions import InvalidInputError
from clearvue.models import PaymentStatus
from clearvue.services import record_store
from clearvue.services.pricing_service import money
from clearvue.utils.settings import config_value
from clearvue.utils.timeframes import quarter_of, timeframe_start, year_range

ROLLUP_GROUPS = ('product', 'category')


def _revenue_row(row: Dict[str, Any], group_by: str) -> Dict[str, Any]:
    if group_by == 'product':
        result = {'product_id': row['key'], 'name': row['name'], 'category': row['category']}
    else:
        result = {'category': row['key']}
    result['total_revenue'] = money(row['revenue'])
    result['total_units'] = row['units']
    return result


def get_sales_analytics(
    session,
    timeframe: str,
    group_by: str = 'product',
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Revenue rollup for a named timeframe (daily, weekly, monthly, annual/yearly).

    Revenue is qty * unit price captured on each sale line, grouped by product
    or category and sorted by revenue, highest first.

    Raises:
        InvalidTimeframeError: unknown timeframe token
        InvalidInputError: unknown grouping or non-positive limit
    """
    now = now or datetime.now()
    start = timeframe_start(timeframe, now)

    if group_by not in ROLLUP_GROUPS:
        raise InvalidInputError(f'Invalid group_by: {group_by!r}', payload={'group_by': group_by})
    if limit is not None and limit < 1:
        raise InvalidInputError('limit must be at least 1', payload={'field': 'limit'})

    rows = record_store.aggregate_sales(session, group_by, start=start, end=now)
    results = sorted(
        (_revenue_row(row, group_by) for row in rows),
        key=lambda r: (-r['total_revenue'], str(r.get('name') or r.get('category') or ''))
    )
    if limit is not None:
        results = results[:limit]

    return {
        'timeframe': timeframe.strip().lower(),
        'group_by': group_by,
        'start': start,
        'end': now,
        'total_revenue': money(sum((r['total_revenue'] for r in results), Decimal('0'))),
        'total_units': sum(r['total_units'] for r in results),
        'rows': results,
    }


def get_product_performance(session, category: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    All-time product performance, optionally restricted to one category.

    Returns:
        list of dicts sorted by total_revenue desc:
        product_id, name, category, total_revenue, total_units,
        average_price (mean captured line price), revenue_per_unit
    """
    rows = record_store.aggregate_sales(session, 'product', category=category)

    performance = []
    for row in rows:
        units = row['units']
        performance.append({
            'product_id': row['key'],
            'name': row['name'],
            'category': row['category'],
            'total_revenue': money(row['revenue']),
            'total_units': units,
            'average_price': money(row['price_total'] / row['count']) if row['count'] else money(0),
            'revenue_per_unit': money(row['revenue'] / units) if units else money(0),
        })

    performance.sort(key=lambda r: (-r['total_revenue'], r['name']))
    return performance


def get_quarterly_revenue(session, year: Optional[int] = None) -> List[Dict[str, Any]]:
    """Sale totals of a calendar year grouped by quarter, in quarter order."""
    year = year or datetime.now().year
    start, end = year_range(year)

    quarters: Dict[int, Dict[str, Any]] = {}
    for row in record_store.aggregate_sales(session, 'month', start=start, end=end):
        _, month = row['key']
        quarter = quarter_of(month)
        bucket = quarters.setdefault(quarter, {'quarter': quarter, 'revenue': Decimal('0'), 'count': 0})
        bucket['revenue'] += row['revenue']
        bucket['count'] += row['count']

    return [
        {'year': year, 'quarter': q, 'revenue': money(quarters[q]['revenue']), 'count': quarters[q]['count']}
        for q in sorted(quarters)
    ]


def get_overdue_payments(session, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Customers with pending payments on sales older than the overdue window.

    Returns:
        list of dicts sorted by total_overdue desc:
        customer_id, customer_name, total_overdue, overdue_count, oldest_overdue
    """
    now = now or datetime.now()
    cutoff = now - timedelta(days=int(config_value('OVERDUE_DAYS', 30)))

    rows = record_store.aggregate_sales(
        session, 'customer', end=cutoff, payment_status=PaymentStatus.PENDING.value
    )
    overdue = [
        {
            'customer_id': row['key'],
            'customer_name': row['customer_name'],
            'total_overdue': money(row['revenue']),
            'overdue_count': row['count'],
            'oldest_overdue': row['first'],
        }
        for row in rows
    ]
    overdue.sort(key=lambda r: (-r['total_overdue'], r['customer_id']))
    return overdue
