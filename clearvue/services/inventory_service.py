"""
Inventory health service.
Flags out-of-stock and low-stock products from current stock versus the
trailing-window sales velocity, with a replenishment quantity for each.
"""
import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import Dict, Any, Optional

from clearvue.models import Product
from clearvue.services import record_store
from clearvue.utils.settings import config_value
from clearvue.utils.timeframes import trailing_window

logger = logging.getLogger(__name__)

THRESHOLD_RATIO = Decimal('0.2')
OUT_OF_STOCK_FACTOR = Decimal('1.5')
LOW_STOCK_FACTOR = Decimal('1.2')


def classify_stock(stock: int, monthly_sales: int) -> Optional[Dict[str, Any]]:
    """
    Classify one product. First match wins:

    - stock == 0                      -> out_of_stock, required = ceil(sales * 1.5)
    - stock < sales * 0.2 (threshold) -> low_stock, required = ceil(sales * 1.2) - stock

    Returns None for healthy products.
    """
    threshold = Decimal(monthly_sales) * THRESHOLD_RATIO

    if stock == 0:
        return {
            'status': 'out_of_stock',
            'current_stock': stock,
            'monthly_sales': monthly_sales,
            'required': math.ceil(Decimal(monthly_sales) * OUT_OF_STOCK_FACTOR),
        }
    if stock < threshold:
        return {
            'status': 'low_stock',
            'current_stock': stock,
            'monthly_sales': monthly_sales,
            'threshold': math.ceil(threshold),
            'required': math.ceil(Decimal(monthly_sales) * LOW_STOCK_FACTOR) - stock,
        }
    return None


def get_monthly_sales(session, now: Optional[datetime] = None) -> Dict[Any, int]:
    """Units sold per product id in the trailing inventory window."""
    days = int(config_value('INVENTORY_WINDOW_DAYS', 30))
    start, end = trailing_window(days, now)
    rows = record_store.aggregate_sales(session, 'product', start=start, end=end)
    return {row['key']: row['units'] for row in rows}


def check_inventory_levels(session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Check stock levels and flag low inventory.

    Returns:
        dict with keys:
            - low_stock: list of dicts (product_id, product, current_stock, threshold, required)
            - out_of_stock: list of dicts (product_id, product, current_stock, required)
            - timestamp: when the check ran
    """
    now = now or datetime.now()
    monthly_sales = get_monthly_sales(session, now)

    low_stock = []
    out_of_stock = []

    for product in session.query(Product).order_by(Product.id).all():
        entry = classify_stock(product.stock, monthly_sales.get(product.id, 0))
        if entry is None:
            continue

        status = entry.pop('status')
        entry = {'product_id': product.id, 'product': product.name, **entry}
        if status == 'out_of_stock':
            out_of_stock.append(entry)
        else:
            low_stock.append(entry)

    logger.info(f"[INVENTORY] Check: {len(low_stock)} low stock, {len(out_of_stock)} out of stock")

    return {
        'low_stock': low_stock,
        'out_of_stock': out_of_stock,
        'timestamp': now,
    }
