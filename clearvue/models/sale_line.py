"""Sale Line model."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from clearvue.database import Base


class SaleLine(Base):
    """Sale line; `unit_price` is the catalog price captured when the sale committed."""

    __tablename__ = 'sale_line'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    sale_id = Column(BigInteger, ForeignKey('sale.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    qty = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)
    line_discount = Column(Numeric(12, 2), nullable=False, default=0)

    # Relationships
    sale = relationship('Sale', back_populates='lines')
    product = relationship('Product')

    __table_args__ = (
        CheckConstraint('qty >= 1', name='check_sale_line_qty_positive'),
    )

    def __repr__(self):
        return f"<SaleLine(id={self.id}, product_id={self.product_id}, qty={self.qty})>"
