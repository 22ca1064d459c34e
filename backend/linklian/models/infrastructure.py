# backend/linklian/models/infrastructure.py

from typing import List, Optional
from sqlalchemy import (
    String,
    Integer,
    ForeignKey,
    Index,
    Text,
    text,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .base import Base, TimestampMixin, SoftDeleteMixin


class Building(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "building"

    building_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    inst_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("institution.inst_id"), nullable=False
    )
    building_no: Mapped[Optional[str]] = mapped_column(String(50))
    building_name: Mapped[str] = mapped_column(String(255), nullable=False)
    remark: Mapped[Optional[str]] = mapped_column(Text)
    room_format: Mapped[Optional[str]] = mapped_column(String(50))

    rooms: Mapped[List["RoomLocation"]] = relationship(back_populates="building")

    __table_args__ = (
        Index(
            "uq_building_inst_name",
            "inst_id",
            "building_name",
            unique=True,
            postgresql_where=text("flag_valid"),
            sqlite_where=text("flag_valid"),
        ),
    )


class RoomLocation(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "room_location"

    room_location_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    building_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("building.building_id"), nullable=False
    )
    room_number: Mapped[str] = mapped_column(String(50), nullable=False)
    room_remark: Mapped[Optional[str]] = mapped_column(Text)
    floor: Mapped[Optional[str]] = mapped_column(String(10))

    building: Mapped["Building"] = relationship(back_populates="rooms")

    __table_args__ = (
        Index(
            "uq_room_location_building_number",
            "building_id",
            "room_number",
            unique=True,
            postgresql_where=text("flag_valid"),
            sqlite_where=text("flag_valid"),
        ),
    )
