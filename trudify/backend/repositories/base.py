"""
Repository base.

Repositories run queries and nothing else; they never decide whether a
caller may do something. State transitions go through update_where, a
single conditional UPDATE, so two requests racing on the same task cannot
both succeed.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trudify.backend.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id_or_none(self, id: str) -> ModelType | None:
        return await self.session.scalar(select(self.model).where(self.model.id == str(id)))

    async def create(self, **values: Any) -> ModelType:
        instance = self.model(**values)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update_where(self, id: str, expected: dict[str, Any], **values: Any) -> int:
        """
        Write ``values`` to row ``id`` only while every column in ``expected``
        still holds its value (None means IS NULL). An empty ``expected``
        makes it an unconditional update.

        Returns the number of rows written, 0 or 1. A loaded instance of the
        row is refreshed so callers see the new values.
        """
        conditions = [self.model.id == str(id)]
        for column, value in expected.items():
            attribute = getattr(self.model, column)
            conditions.append(attribute.is_(None) if value is None else attribute == value)

        result = await self.session.execute(
            update(self.model).where(*conditions).values(**values).execution_options(synchronize_session=False)
        )
        if result.rowcount:
            instance = await self.get_by_id_or_none(id)
            if instance is not None:
                await self.session.refresh(instance)
        return result.rowcount
