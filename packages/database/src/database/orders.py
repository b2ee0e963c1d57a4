from datetime import datetime
from typing import TYPE_CHECKING

from database.base import Base
from database.constraints import check_positive
from database.enums import OrderStatus
from sqlalchemy import DateTime, ForeignKey, Index, Integer
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from database.inventory import Product
    from database.locations import Location


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (Index("idx_orders_status", "status"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    location_id: Mapped[int] = mapped_column(ForeignKey("location.id"), nullable=False)
    ordered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            name="order_status",
            values_callable=lambda members: [member.value for member in members],
        ),
        default=OrderStatus.OPEN,
        nullable=False,
    )

    # Relationships
    location: Mapped["Location"] = relationship(back_populates="orders")
    rows: Mapped[list["OrderRow"]] = relationship(back_populates="order")


class OrderRow(Base):
    __tablename__ = "order_row"
    __table_args__ = (check_positive("pallet_amount", name="check_order_pallet_amount_pos"),)

    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("product.id"), primary_key=True)
    pallet_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    order: Mapped["Order"] = relationship(back_populates="rows")
    product: Mapped["Product"] = relationship(back_populates="order_rows")
