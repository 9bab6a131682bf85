from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.config.table_names import TableNames
from src.models.base import Base, TimeStamp


class InvitationUnit(Base, TimeStamp):
    __tablename__ = TableNames.INVITATION_UNITS.value

    # Relationship to guest rows
    members: Mapped[list["GuestRow"]] = relationship(
        "GuestRow", back_populates="unit", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<InvitationUnit {self.id}>"


class GuestRow(Base, TimeStamp):
    __tablename__ = TableNames.GUESTS.value

    unit_id: Mapped[int] = mapped_column(
        ForeignKey(f"{TableNames.INVITATION_UNITS.value}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    unit: Mapped["InvitationUnit"] = relationship("InvitationUnit", back_populates="members")

    # Exactly one row per unit should be primary; not enforced by the schema
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    confirmed: Mapped[bool | None] = mapped_column(Boolean, default=False, nullable=True)

    # JSON with allergies and deleted_at, older rows hold legacy text
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<GuestRow {self.display_name} unit={self.unit_id} primary={self.is_primary}>"
