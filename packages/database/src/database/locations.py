from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from database.base import Base
from database.constraints import check_non_negative
from database.enums import LocationType
from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from database.inventory import Storage
    from database.orders import Order


class Location(Base):
    __tablename__ = "location"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    address: Mapped[str] = mapped_column(String, nullable=False, default="")
    post_code: Mapped[str] = mapped_column(String, nullable=False, default="")
    city: Mapped[str] = mapped_column(String, nullable=False, default="")
    location_type: Mapped[LocationType] = mapped_column(
        SAEnum(
            LocationType,
            name="location_type",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    )

    # Relationships
    prices: Mapped[list["LocationPrice"]] = relationship(back_populates="location")
    storages: Mapped[list["Storage"]] = relationship(back_populates="location")
    orders: Mapped[list["Order"]] = relationship(back_populates="location")


class LocationPrice(Base):
    """
    One version of the daily per-pallet price charged by a location.

    Rows are append-only; the price in effect on a day is the row with the
    greatest ``valid_from`` not after that day (ties: greatest ``id``).
    """

    __tablename__ = "location_price"
    __table_args__ = (
        check_non_negative("price", name="check_price_non_negative"),
        Index("ix_location_price_location_valid_from", "location_id", "valid_from"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    location_id: Mapped[int] = mapped_column(ForeignKey("location.id"), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    valid_from: Mapped[date] = mapped_column(Date, nullable=False)

    # Relationships
    location: Mapped["Location"] = relationship(back_populates="prices")
