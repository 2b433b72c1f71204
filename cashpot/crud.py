from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from cashpot.db import Base

logger = logging.getLogger(__name__)

# (data, existing record or None) -> values to write
PrepareHook = Callable[[dict[str, Any], Optional[Any]], dict[str, Any]]


class MissingRecords(LookupError):
    def __init__(self, ids: Iterable[int]):
        self.ids = sorted(ids)
        super().__init__(f"missing ids: {self.ids}")


class EmptyFields(ValueError):
    def __init__(self, fields: Iterable[str]):
        self.fields = sorted(fields)
        super().__init__(f"fields cannot be empty: {', '.join(self.fields)}")


def to_dict(record: Base, hidden: Sequence[str] = ()) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for column in record.__table__.columns:
        if column.key in hidden:
            continue
        value = getattr(record, column.key)
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        data[column.key] = value
    return data


class Repository:
    """list/get/create/update/delete over one table.

    ``prepare`` runs on every write and may add or rewrite values, which is
    where derived fields are recomputed.
    """

    def __init__(self, db: Session, model: type[Base], prepare: Optional[PrepareHook] = None):
        self.db = db
        self.model = model
        self.prepare = prepare

    @property
    def name(self) -> str:
        return self.model.__tablename__

    def _column(self, field: str):
        column = self.model.__table__.columns.get(field)
        if column is None:
            raise ValueError(f"unknown field: {field}")
        return getattr(self.model, column.key)

    def _apply(self, record: Any, data: dict[str, Any], creating: bool = False) -> None:
        if self.prepare is not None:
            data = self.prepare(data, None if creating else record)
        columns = self.model.__table__.columns
        empty = [key for key, value in data.items()
                 if value is None and key in columns and not columns[key].nullable]
        if empty:
            raise EmptyFields(empty)
        for key, value in data.items():
            setattr(record, key, value)

    def query(
        self,
        sort: Optional[str] = None,
        search: Optional[str] = None,
        search_fields: Sequence[str] = (),
        **filters: Any,
    ):
        query = select(self.model)
        for field, value in filters.items():
            if value is not None:
                query = query.where(self._column(field) == value)
        if search and search_fields:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(*(func.lower(self._column(field)).like(pattern) for field in search_fields))
            )
        if sort:
            descending = sort.startswith("-")
            column = self._column(sort.lstrip("-"))
            query = query.order_by(column.desc() if descending else column.asc(), self.model.id)
        else:
            query = query.order_by(self.model.id)
        return query

    def list(self, sort: Optional[str] = None, **kwargs: Any) -> list[Any]:
        return list(self.db.scalars(self.query(sort=sort, **kwargs)))

    def count(self, query=None) -> int:
        query = query if query is not None else select(self.model)
        return self.db.scalar(select(func.count()).select_from(query.order_by(None).subquery()))

    def page(self, query, page: int, limit: int) -> tuple[list[Any], int]:
        total = self.count(query)
        rows = list(self.db.scalars(query.offset((page - 1) * limit).limit(limit)))
        return rows, total

    def get(self, record_id: int) -> Any | None:
        return self.db.get(self.model, record_id)

    def create(self, data: dict[str, Any]) -> Any:
        record = self.model()
        self._apply(record, data, creating=True)
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info("created %s id=%s", self.name, record.id)
        return record

    def update(self, record: Any, data: dict[str, Any]) -> Any:
        self._apply(record, data)
        self.db.commit()
        self.db.refresh(record)
        logger.info("updated %s id=%s fields=%s", self.name, record.id, sorted(data))
        return record

    def delete(self, record: Any) -> None:
        record_id = record.id
        self.db.delete(record)
        self.db.commit()
        logger.info("deleted %s id=%s", self.name, record_id)

    def _fetch_all(self, ids: Sequence[int]) -> list[Any]:
        wanted = set(ids)
        records = list(self.db.scalars(select(self.model).where(self.model.id.in_(wanted))))
        missing = wanted - {record.id for record in records}
        if missing:
            raise MissingRecords(missing)
        return records

    def bulk_update(self, ids: Sequence[int], data: dict[str, Any]) -> list[Any]:
        """Apply the same values to every id in one transaction.

        Raises MissingRecords before touching anything if an id is unknown.
        """
        records = self._fetch_all(ids)
        try:
            for record in records:
                self._apply(record, dict(data))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        for record in records:
            self.db.refresh(record)
        logger.info("bulk updated %s ids=%s fields=%s", self.name, sorted(set(ids)), sorted(data))
        return sorted(records, key=lambda record: record.id)

    def bulk_delete(self, ids: Sequence[int]) -> int:
        """Delete the given ids in one transaction; unknown ids are skipped."""
        records = list(self.db.scalars(select(self.model).where(self.model.id.in_(set(ids)))))
        for record in records:
            self.db.delete(record)
        self.db.commit()
        logger.info("bulk deleted %s count=%s", self.name, len(records))
        return len(records)
