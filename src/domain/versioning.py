from __future__ import annotations

import logging
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from pydantic import ValidationError as PydanticValidationError

from .errors import AlreadyLockedError, LockedVersionError, NotFoundError, ValidationError
from .quotation import Quotation, QuotationPatch, QuotationState, VersionRecord, VersionStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_STATE_FIELDS = ("days", "pricing_options", "subtotal", "markup", "total", "currency_settings")
_PRICING_FIELDS = frozenset({"subtotal", "markup", "total", "pricing_options"})
EDITABLE_FIELDS = frozenset(QuotationPatch.model_fields) | {"markup", "total", "currency_settings"}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _check_pricing(quotation: Quotation) -> None:
    options = quotation.pricing_options
    if (
        quotation.total != quotation.subtotal + quotation.markup
        or options.original_total_price != quotation.subtotal
        or options.final_total_price != quotation.total
    ):
        raise ValidationError(
            f"Quotation {quotation.id}: total {quotation.total} does not match subtotal {quotation.subtotal} "
            f"plus markup {quotation.markup} and its pricing options",
            field="total",
            value=quotation.total,
        )


class VersionManager:
    """State machine over a quotation's version history.

    Each version is Draft (unsaved edits), Saved (snapshot matches the working
    fields) or Locked (snapshot frozen). ``current_version`` always names the
    latest record, which is the only one that can change. Every operation
    returns a new aggregate and leaves its input untouched.
    """

    DEFAULT_LOCKED_BY = "Unknown user"
    INITIAL_DESCRIPTION = "Initial version"

    def __init__(self, *, clock: Clock = utc_now) -> None:
        self._clock = clock

    def create(self, quotation: Quotation, *, description: str | None = None) -> Quotation:
        if quotation.version_history:
            raise ValidationError(
                f"Quotation {quotation.id} already has a version history",
                field="versionHistory",
            )

        record = VersionRecord(
            version_number=1,
            created_at=self._clock(),
            description=description or self.INITIAL_DESCRIPTION,
            is_draft=True,
            state=quotation.working_state(),
        )
        logger.info("Quotation %s: created version 1", quotation.id)
        return quotation.model_copy(update={"version_history": [record], "current_version": 1}, deep=True)

    def active_record(self, quotation: Quotation) -> VersionRecord:
        record = quotation.find_version(quotation.current_version)
        if record is None:
            raise NotFoundError(
                f"Current version {quotation.current_version} not found in history of quotation {quotation.id}",
                quotation_id=quotation.id,
                version_number=quotation.current_version,
            )
        return record

    def status_of(self, quotation: Quotation) -> VersionStatus:
        return self.active_record(quotation).status

    def ensure_editable(self, quotation: Quotation) -> VersionRecord:
        record = self.active_record(quotation)
        if record.is_locked:
            raise LockedVersionError(
                quotation_id=quotation.id,
                version_number=record.version_number,
                locked_by=record.locked_by,
            )
        return record

    def edit(self, quotation: Quotation, changes: Mapping[str, Any]) -> Quotation:
        """Apply changes to the working fields; the active version becomes a draft.

        Only working fields may change. The result is validated as a whole and,
        when pricing fields are touched, must keep total = subtotal + markup.
        """
        self.ensure_editable(quotation)

        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields {unknown} cannot be edited", field=unknown[0], value=changes[unknown[0]])

        try:
            updated = Quotation.model_validate({**quotation.model_dump(), **deepcopy(dict(changes))})
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid changes to quotation {quotation.id}: {exc}", value=dict(changes)) from exc
        if _PRICING_FIELDS.intersection(changes):
            _check_pricing(updated)

        self.active_record(updated).is_draft = True
        return updated

    def save_draft(self, quotation: Quotation) -> Quotation:
        self.ensure_editable(quotation)

        updated = quotation.model_copy(deep=True)
        record = self.active_record(updated)
        record.state = updated.working_state()
        record.is_draft = False
        logger.info("Quotation %s: saved version %d", quotation.id, record.version_number)
        return updated

    def lock_version(self, quotation: Quotation, locked_by: str | None = None) -> Quotation:
        record = self.active_record(quotation)
        if record.is_locked:
            raise AlreadyLockedError(quotation_id=quotation.id, version_number=record.version_number)

        updated = quotation.model_copy(deep=True)
        record = self.active_record(updated)
        # The snapshot is what gets frozen, so capture any unsaved edits first.
        record.state = updated.working_state()
        record.is_draft = False
        record.is_locked = True
        record.locked_by = (locked_by or "").strip() or self.DEFAULT_LOCKED_BY
        record.locked_at = self._clock()
        logger.info("Quotation %s: locked version %d by %s", quotation.id, record.version_number, record.locked_by)
        return updated

    def create_version(self, quotation: Quotation, description: str) -> Quotation:
        if not description or not description.strip():
            raise ValidationError("Version description is required", field="description", value=description)
        self.active_record(quotation)

        updated = quotation.model_copy(deep=True)
        current = self.active_record(updated)
        if not current.is_locked:
            current.state = updated.working_state()
            current.is_draft = False

        next_number = current.version_number + 1
        updated.version_history.append(
            VersionRecord(
                version_number=next_number,
                created_at=self._clock(),
                description=description.strip(),
                is_draft=True,
                state=updated.working_state(),
            )
        )
        updated.current_version = next_number
        logger.info("Quotation %s: created version %d (%s)", quotation.id, next_number, description.strip())
        return updated

    def view(self, quotation: Quotation, version_number: int) -> VersionRecord:
        record = quotation.find_version(version_number)
        if record is None:
            raise NotFoundError(
                f"Version {version_number} not found in history of quotation {quotation.id}",
                quotation_id=quotation.id,
                version_number=version_number,
            )
        return record.model_copy(deep=True)

    def snapshot_of(self, quotation: Quotation, version_number: int) -> QuotationState:
        record = self.view(quotation, version_number)
        if record.state is None:
            raise NotFoundError(
                f"Version {version_number} of quotation {quotation.id} has no saved state",
                quotation_id=quotation.id,
                version_number=version_number,
            )
        return record.state

    def restore(self, quotation: Quotation, version_number: int) -> Quotation:
        """Copy a past version's snapshot into the working fields of the active version."""
        self.ensure_editable(quotation)
        state = self.snapshot_of(quotation, version_number)
        changes = {name: getattr(state, name) for name in _STATE_FIELDS}
        logger.info(
            "Quotation %s: restoring state of version %d into version %d",
            quotation.id,
            version_number,
            quotation.current_version,
        )
        return self.edit(quotation, changes)


__all__ = ["Clock", "EDITABLE_FIELDS", "VersionManager", "utc_now"]
