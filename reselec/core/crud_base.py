# reselec/core/crud_base.py

"""
Generic async CRUD (Create, Read, Update, Delete) base class.

Domain CRUD classes subclass `CRUDBase`, pass their table model and, when their read
schemas include relationships, the loader options needed to fetch them eagerly
(lazy loading is not available on async sessions). Options that reach across domains
are passed as a callable so that they are built once every model module is imported.
"""

import logging
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar, Union
from datetime import date, timedelta

from sqlalchemy import func, or_
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from pydantic import BaseModel

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base class holding the common CRUD operations for one table model.
    """
    search_fields: Tuple[str, ...] = ()

    def __init__(
        self,
        model: Type[ModelType],
        load_options: Union[Sequence[Any], Callable[[], Sequence[Any]]] = (),
    ):
        self.model = model
        self._load_options = load_options
        self._resolved_options: Optional[Tuple[Any, ...]] = None

    @property
    def load_options(self) -> Tuple[Any, ...]:
        # built on first use: relationship attributes need every model imported
        if self._resolved_options is None:
            options = self._load_options
            self._resolved_options = tuple(options() if callable(options) else options)
        return self._resolved_options

    def _select(self):
        return select(self.model).options(*self.load_options)

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        Fetches one record by primary key, with its relationships loaded.
        """
        statement = (
            self._select()
            .where(self.model.id == id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(statement)
        return result.scalars().one_or_none()

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 100, **kwargs: Any
    ) -> List[ModelType]:
        query = self._select().offset(skip).limit(limit)

        for field, value in kwargs.items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)

        result = await db.execute(query.order_by(self.model.id))
        return result.scalars().all()

    async def get_by_attribute(
        self, db: AsyncSession, *, attribute: str, value: Any
    ) -> Optional[ModelType]:
        statement = self._select().where(getattr(self.model, attribute) == value)
        response = await db.execute(statement)
        return response.scalars().first()

    def _conditions(
        self,
        *,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        date_range_field: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Any]:
        conditions = []

        # 1. attribute filters, None values are ignored
        for attribute, value in (filters or {}).items():
            if value is None:
                continue
            if hasattr(self.model, attribute):
                conditions.append(getattr(self.model, attribute) == value)
            else:
                logger.warning("Model %s has no attribute '%s'", self.model.__name__, attribute)

        # 2. free-text search over the configured columns
        if search and self.search_fields:
            # wildcards typed by the user match literally
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            conditions.append(
                or_(*[getattr(self.model, field).ilike(pattern, escape="\\") for field in self.search_fields])
            )

        # 3. date range, end date inclusive
        if date_range_field and hasattr(self.model, date_range_field):
            date_field = getattr(self.model, date_range_field)
            if start_date is not None:
                conditions.append(date_field >= start_date)
            if end_date is not None:
                conditions.append(date_field < end_date + timedelta(days=1))
        elif date_range_field:
            logger.warning("Model %s has no attribute '%s' for date range filtering.", self.model.__name__, date_range_field)

        return conditions

    def _ordered(self, query, order_by_field: Optional[str], order_desc: bool):
        if order_by_field and hasattr(self.model, order_by_field):
            column = getattr(self.model, order_by_field)
            query = query.order_by(column.desc() if order_desc else column.asc())
        elif order_by_field:
            logger.warning("Model %s has no attribute '%s' for ordering.", self.model.__name__, order_by_field)
        # id keeps the order stable between pages
        return query.order_by(self.model.id.desc() if order_desc else self.model.id.asc())

    async def count(self, db: AsyncSession, *conditions: Any) -> int:
        query = select(func.count()).select_from(self.model)
        if conditions:
            query = query.where(*conditions)
        result = await db.execute(query)
        return result.scalar_one()

    async def get_page(
        self,
        db: AsyncSession,
        *,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        date_range_field: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        extra_conditions: Sequence[Any] = (),
        order_by_field: Optional[str] = None,
        order_desc: bool = True,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[ModelType], int]:
        """
        One page of records plus the total number of matching records.
        """
        conditions = self._conditions(
            filters=filters, search=search, date_range_field=date_range_field,
            start_date=start_date, end_date=end_date,
        )
        conditions.extend(extra_conditions)

        total = await self.count(db, *conditions)

        query = self._select()
        if conditions:
            query = query.where(*conditions)
        query = self._ordered(query, order_by_field, order_desc).offset(skip).limit(limit)
        result = await db.execute(query)
        return result.scalars().all(), total

    async def create(self, db: AsyncSession, *, obj_in: CreateSchemaType, **extra: Any) -> ModelType:
        """
        Creates a record from the input schema. `extra` sets server-side fields (e.g. created_by_id).
        """
        db_obj = self.model.model_validate(obj_in, update=extra)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return await self.get(db, db_obj.id)

    async def update(
        self, db: AsyncSession, *, db_obj: ModelType, obj_in: UpdateSchemaType
    ) -> ModelType:
        update_data = obj_in.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_obj, key, value)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return await self.get(db, db_obj.id)

    async def delete(self, db: AsyncSession, *, id: Any) -> Optional[ModelType]:
        db_obj = await db.get(self.model, id)
        if db_obj:
            await db.delete(db_obj)
            await db.commit()
        return db_obj
