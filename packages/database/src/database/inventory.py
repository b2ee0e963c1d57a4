from datetime import datetime
from typing import TYPE_CHECKING

from database.base import Base
from database.constraints import check_non_negative
from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from database.locations import Location
    from database.orders import OrderRow


class Product(Base):
    __tablename__ = "product"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    pallet_size: Mapped[int] = mapped_column(
        Integer,
        check_non_negative("pallet_size"),
        nullable=False,
        default=0,
    )

    # Relationships
    storages: Mapped[list["Storage"]] = relationship(back_populates="product")
    order_rows: Mapped[list["OrderRow"]] = relationship(back_populates="product")


class Storage(Base):
    """
    Append-only stock snapshot: the absolute pallet amount of one product at
    one location from ``recorded_at`` onwards. Rows are never updated.
    """

    __tablename__ = "storage"
    __table_args__ = (
        check_non_negative("pallet_amount", name="check_pallet_amount_non_negative"),
        Index("ix_storage_location_product_recorded", "location_id", "product_id", "recorded_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    location_id: Mapped[int] = mapped_column(ForeignKey("location.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("product.id"), nullable=False)
    pallet_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    location: Mapped["Location"] = relationship(back_populates="storages")
    product: Mapped["Product"] = relationship(back_populates="storages")
