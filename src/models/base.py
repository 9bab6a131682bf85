from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

BaseModel = declarative_base()


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(BaseModel):
    __abstract__ = True

    id: Mapped[int] = mapped_column(sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True)


class TimeStamp(BaseModel):
    __abstract__ = True

    # Set client side as well so a flushed row carries it without a refresh
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=utcnow,
        server_default=sa.func.current_timestamp(),
        nullable=False,
    )
