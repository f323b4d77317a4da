from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db import models
from domain.errors import ConflictError, NotFoundError
from domain.quotation import Quotation
from domain.versioning import Clock, utc_now

logger = logging.getLogger(__name__)


class QuotationRepository:
    """Stores quotation aggregates as JSON documents.

    ``revision`` is the concurrency token: a store only succeeds when the row
    still carries the revision the caller loaded, and bumps it by one.
    """

    def __init__(self, session: Session, *, clock: Clock = utc_now) -> None:
        self._session = session
        self._clock = clock

    def load(self, quotation_id: str) -> Quotation:
        quotation = self.get(quotation_id)
        if quotation is None:
            raise NotFoundError(f"Quotation {quotation_id} not found", quotation_id=quotation_id)
        return quotation

    def get(self, quotation_id: str) -> Quotation | None:
        orm_quotation = self._session.get(models.QuotationOrm, quotation_id)
        if orm_quotation is None:
            return None
        return self._to_domain(orm_quotation)

    def list(self) -> list[Quotation]:
        orm_quotations = self._session.scalars(
            select(models.QuotationOrm).order_by(models.QuotationOrm.updated_at.desc())
        ).all()
        return [self._to_domain(orm_quotation) for orm_quotation in orm_quotations]

    def store(self, quotation: Quotation, expected_revision: int | None = None) -> Quotation:
        expected = quotation.revision if expected_revision is None else expected_revision
        stored = quotation.model_copy(update={"revision": expected + 1})
        values = self._column_values(stored)

        if expected == 0:
            self._insert(stored, values)
        else:
            self._compare_and_swap(stored, values, expected)

        logger.info("Stored quotation %s at revision %d", stored.id, stored.revision)
        return stored

    def delete(self, quotation_id: str) -> None:
        orm_quotation = self._session.get(models.QuotationOrm, quotation_id)
        if orm_quotation is None:
            raise NotFoundError(f"Quotation {quotation_id} not found", quotation_id=quotation_id)
        self._session.delete(orm_quotation)
        self._session.commit()

    def _insert(self, quotation: Quotation, values: dict[str, Any]) -> None:
        existing = self._current_revision(quotation.id)
        if existing is not None:
            raise ConflictError(quotation_id=quotation.id, expected_revision=0, actual_revision=existing)

        self._session.add(models.QuotationOrm(id=quotation.id, **values))
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError(
                quotation_id=quotation.id,
                expected_revision=0,
                actual_revision=self._current_revision(quotation.id),
            ) from exc

    def _compare_and_swap(self, quotation: Quotation, values: dict[str, Any], expected: int) -> None:
        result = self._session.execute(
            update(models.QuotationOrm)
            .where(models.QuotationOrm.id == quotation.id, models.QuotationOrm.revision == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._session.rollback()
            actual = self._current_revision(quotation.id)
            if actual is None:
                raise NotFoundError(f"Quotation {quotation.id} not found", quotation_id=quotation.id)
            raise ConflictError(quotation_id=quotation.id, expected_revision=expected, actual_revision=actual)
        self._session.commit()

    def _current_revision(self, quotation_id: str) -> int | None:
        return self._session.scalar(
            select(models.QuotationOrm.revision).where(models.QuotationOrm.id == quotation_id)
        )

    def _column_values(self, quotation: Quotation) -> dict[str, Any]:
        document = quotation.to_record()
        document.pop("revision", None)
        return {
            "title": quotation.title,
            "client_name": quotation.client.name,
            "status": quotation.status.value,
            "currency": quotation.currency,
            "total": quotation.total,
            "current_version": quotation.current_version,
            "revision": quotation.revision,
            "updated_at": self._clock(),
            "document": document,
        }

    @staticmethod
    def _to_domain(orm_quotation: models.QuotationOrm) -> Quotation:
        record = dict(orm_quotation.document)
        record["revision"] = orm_quotation.revision
        return Quotation.from_record(record)


__all__ = ["QuotationRepository"]
