"""Sale model."""
import enum
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from clearvue.database import Base


class SaleStatus(str, enum.Enum):
    """Sale status."""
    PENDING = 'pending'
    COMPLETED = 'completed'


class Sale(Base):
    """
    Sale header.

    `discount` is the legacy reported discount and is always 0; the volume
    discount actually applied to the lines is kept in `line_discount`.
    """

    __tablename__ = 'sale'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    customer_id = Column(BigInteger, ForeignKey('customer.id'), nullable=False, index=True)

    # Idempotency key to prevent duplicate sales on double-submit
    idempotency_key = Column(String(64), unique=True, nullable=True, index=True)

    subtotal = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    line_discount = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    total = Column(Numeric(12, 2), nullable=False)
    datetime = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    status = Column(String(20), nullable=False, default=SaleStatus.COMPLETED.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    customer = relationship('Customer', back_populates='sales')
    lines = relationship(
        'SaleLine', back_populates='sale', cascade='all, delete-orphan', order_by='SaleLine.position'
    )
    payment = relationship('Payment', back_populates='sale', uselist=False, cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'completed')", name='check_sale_status'),
    )

    def __repr__(self):
        return f"<Sale(id={self.id}, total={self.total}, status={self.status})>"
