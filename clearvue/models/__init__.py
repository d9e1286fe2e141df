"""Models package - exports all SQLAlchemy models."""
from clearvue.models.product import Product
from clearvue.models.customer import Customer
from clearvue.models.sale import Sale, SaleStatus
from clearvue.models.sale_line import SaleLine
from clearvue.models.payment import Payment, PaymentMethod, PaymentStatus, normalize_payment_method

__all__ = [
    'Product', 'Customer',
    'Sale', 'SaleStatus', 'SaleLine',
    'Payment', 'PaymentMethod', 'PaymentStatus', 'normalize_payment_method',
]
