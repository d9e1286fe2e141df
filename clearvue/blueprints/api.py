"""
JSON API blueprint.

Decodes requests into sales core calls and encodes the results. Errors raised
by the core are ClearVueError subclasses and are rendered by the application's
error handler.
"""
from flask import Blueprint, request, jsonify, current_app

from clearvue.database import get_session
from clearvue.exceptions import InvalidInputError
from clearvue.services.cache_service import get_cache
from clearvue.services.customer_value_service import calculate_customer_ltv
from clearvue.services.inventory_service import check_inventory_levels
from clearvue.services.rollup_service import (
    get_overdue_payments, get_product_performance, get_quarterly_revenue, get_sales_analytics
)
from clearvue.services.sales_service import process_sale
from clearvue.utils.serializers import serialize_sale_result, to_jsonable


api_bp = Blueprint('api', __name__, url_prefix='/api')


def _ok(data, status=200):
    return jsonify({'success': True, 'data': data}), status


def _int_arg(name):
    """Optional positive integer query argument."""
    raw = request.args.get(name)
    if raw is None or raw == '':
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidInputError(f'{name} must be an integer', payload={'field': name})


def _cached(key, loader):
    """Serve analytics through the cache when it is configured."""
    cache = get_cache()
    if cache is None:
        return to_jsonable(loader())
    return cache.memoize('analytics', key, loader)


# =====================================================
# SALES
# =====================================================

@api_bp.route('/sales', methods=['POST'])
def create_sale():
    """Process a complete sale."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidInputError('Request body must be a JSON object')

    customer_id = payload.get('customer_id', payload.get('customerId'))
    if customer_id is None:
        raise InvalidInputError('customer_id is required', payload={'field': 'customer_id'})

    result = process_sale(
        get_session(),
        customer_id,
        payload.get('items'),
        payload.get('payment_method', payload.get('paymentMethod')),
        idempotency_key=payload.get('idempotency_key') or request.headers.get('Idempotency-Key'),
    )
    return _ok(serialize_sale_result(result), 201)


@api_bp.route('/sales/analytics/<timeframe>')
def sales_analytics(timeframe):
    group_by = request.args.get('group_by', 'product')
    limit = _int_arg('limit')
    key = f'rollup:{timeframe.lower()}:{group_by}:{limit}'
    data = _cached(key, lambda: get_sales_analytics(get_session(), timeframe, group_by=group_by, limit=limit))
    return _ok(data)


@api_bp.route('/sales/quarterly')
def quarterly_revenue():
    year = _int_arg('year')
    data = _cached(f'quarterly:{year}', lambda: get_quarterly_revenue(get_session(), year))
    return _ok(data)


# =====================================================
# CUSTOMERS
# =====================================================

@api_bp.route('/customers/<int:customer_id>/ltv')
def customer_ltv(customer_id):
    return _ok(to_jsonable(calculate_customer_ltv(get_session(), customer_id)))


@api_bp.route('/customers/analytics/overdue')
def overdue_payments():
    return _ok(_cached('overdue', lambda: get_overdue_payments(get_session())))


# =====================================================
# INVENTORY
# =====================================================

@api_bp.route('/inventory/status')
def inventory_status():
    report = check_inventory_levels(get_session())
    current_app.logger.info(
        f"Inventory status served: {len(report['low_stock'])} low, {len(report['out_of_stock'])} out"
    )
    return _ok(to_jsonable(report))


@api_bp.route('/inventory/performance')
@api_bp.route('/inventory/performance/<category>')
def product_performance(category=None):
    data = _cached(
        f'performance:{category or ""}',
        lambda: get_product_performance(get_session(), category)
    )
    return _ok(data)
