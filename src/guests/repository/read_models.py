import abc

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.database import async_session_manager
from src.guests.dtos import GuestRowDTO
from src.guests.repository.orm_models import GuestRow


class GuestRowsReadModel(abc.ABC):
    @abc.abstractmethod
    async def list_rows(self) -> list[GuestRowDTO]:
        """
        Get every guest row, newest first.
        Returns DTOs, never ORM models.
        """
        raise NotImplementedError


class SqlGuestRowsReadModel(GuestRowsReadModel):
    """SQL implementation of the guest rows read model."""

    def __init__(self, session_overwrite: AsyncSession | None = None) -> None:
        self._session_overwrite = session_overwrite

    async def list_rows(self) -> list[GuestRowDTO]:
        async with async_session_manager(session_overwrite=self._session_overwrite) as session:
            # Rows of one unit share created_at, id keeps their insertion order
            stmt = select(GuestRow).order_by(GuestRow.created_at.desc(), GuestRow.id)
            result = await session.execute(stmt)
            return [GuestRowDTO.from_orm(row) for row in result.scalars().all()]
