"""Customer model."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from clearvue.database import Base


class Customer(Base):
    """Customer with cumulative purchase ledger."""

    __tablename__ = 'customer'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    # Ledger (only the sales engine writes these)
    lifetime_value = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    total_purchases = Column(Integer, nullable=False, default=0, server_default='0')
    last_purchase_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    sales = relationship('Sale', back_populates='customer')

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}', lifetime_value={self.lifetime_value})>"
