"""Payment model (one payment per sale)."""
import enum
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from clearvue.database import Base


class PaymentMethod(str, enum.Enum):
    CASH = 'cash'
    CARD = 'card'
    ONLINE = 'online'


class PaymentStatus(str, enum.Enum):
    PENDING = 'pending'
    COMPLETED = 'completed'


def normalize_payment_method(method):
    """Return the canonical PaymentMethod for a user supplied token, or None."""
    if isinstance(method, PaymentMethod):
        return method
    if not isinstance(method, str):
        return None
    try:
        return PaymentMethod(method.strip().lower())
    except ValueError:
        return None


class Payment(Base):
    """Payment settling a sale. `amount` always equals the sale total."""

    __tablename__ = 'payment'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    sale_id = Column(BigInteger, ForeignKey('sale.id', ondelete='CASCADE'), nullable=False, unique=True)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)
    datetime = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    sale = relationship('Sale', back_populates='payment')

    __table_args__ = (
        CheckConstraint("method IN ('cash', 'card', 'online')", name='check_payment_method'),
        CheckConstraint("status IN ('pending', 'completed')", name='check_payment_status'),
    )

    def __repr__(self):
        return f"<Payment(id={self.id}, sale_id={self.sale_id}, method={self.method}, amount={self.amount})>"
