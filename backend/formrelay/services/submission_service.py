"""
FormRelay Backend — Submission Service (Quota-Gated Response Ingestion)
=========================================================================

What:  Admits form responses against the form creator's submission quota,
       one at a time or in bulk.
How:   Locks the creator's user row (SELECT ... FOR UPDATE), checks the
       remaining quota, inserts the responses and moves both counters, all
       inside one transaction. Live notifications go out after commit.
Who:   Called by POST /form/{formId}/submit and /submit/bulk.

Single Submission:
    ┌──────────┐   ┌────────────────┐   ┌─────────────────┐   ┌──────────┐
    │ Load form│──▶│ Lock creator,  │──▶│ Insert response │──▶│ Commit,  │
    │ (404)    │   │ quota > 0 (403)│   │ quota -1, rc +1 │   │ push     │
    └──────────┘   └────────────────┘   └─────────────────┘   └──────────┘

Bulk Submission:
    admit = min(len(submissions), quota, bulk_max_batch_size)
    The first `admit` payloads (input order) are inserted, the rest are
    reported back as unprocessed. Insert, counter moves and one aggregate
    FORM_SUBMITTED notification share the transaction. The lock wait and the
    work up to COMMIT each carry a timeout; on expiry everything rolls back.
    COMMIT itself runs outside the deadline.

Counter invariants:
    submission_count never drops below zero (also a CHECK constraint).
    response_count moves in lockstep with inserted rows.
"""

import asyncio
import json
import logging
from typing import Any, List, Optional
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.config import settings
from formrelay.exceptions import (
    DatabaseError,
    ForbiddenError,
    FormRelayError,
    NotFoundError,
    TransactionTimeoutError,
    ValidationError,
)
from formrelay.models.form import Form, FormResponse
from formrelay.models.notification import NotificationType
from formrelay.models.user import User, utcnow
from formrelay.schemas.form import BulkSubmissionResponse, SubmissionPayload
from formrelay.schemas.notification import NotificationPayload
from formrelay.services.notification_service import notification_service

logger = logging.getLogger(__name__)

NO_QUOTA_MESSAGE = "Form creator has no remaining submission quota"


def serialize_payload(value: Any) -> str:
    return json.dumps(value, default=str)


def build_throttle_message(
    requested: int,
    processed: int,
    quota: int,
    max_batch_size: int,
) -> str:
    """
    Explains a bulk outcome. Batch-size reason first, then quota reason.

    Example:
        Processed 5 of 8 submissions. 3 submissions were not processed due
        to creator's submission quota (5 remaining).
    """
    unprocessed = requested - processed
    if unprocessed <= 0:
        return f"Successfully processed all {requested} submissions."

    reasons = []
    if requested > max_batch_size:
        reasons.append(f"maximum batch size limit ({max_batch_size})")
    if requested > quota:
        reasons.append(f"creator's submission quota ({quota} remaining)")

    return (
        f"Processed {processed} of {requested} submissions. "
        f"{unprocessed} submissions were not processed due to {' and '.join(reasons)}."
    )


class SubmissionService:
    """
    Quota-gated submission workflow.

    Error Handling Strategy:
        Application errors (NotFound, Forbidden, Validation) roll back and
        propagate unchanged. SQLAlchemy errors roll back and are wrapped in
        DatabaseError. Bulk timeouts roll back and raise
        TransactionTimeoutError. Nothing is pushed live unless the commit
        succeeded.
    """

    def __init__(self, max_batch_size: Optional[int] = None):
        self._max_batch_size = max_batch_size

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size or settings.bulk_max_batch_size

    # ── Shared Steps ──────────────────────────────────────────────────────

    async def _get_form(self, db: AsyncSession, form_id: UUID) -> Form:
        form = await db.get(Form, form_id)
        if form is None:
            raise NotFoundError(resource="form", resource_id=str(form_id))
        return form

    async def _lock_owner(self, db: AsyncSession, form: Form) -> User:
        """
        Lock and re-read the creator's row.

        populate_existing refreshes an instance already in the identity map,
        so the quota read is the locked value and not a stale copy.
        """
        result = await db.execute(
            select(User)
            .where(User.id == form.user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        owner = result.scalar_one_or_none()
        if owner is None:
            raise NotFoundError(resource="form creator", resource_id=str(form.user_id))
        return owner

    async def _rollback(self, db: AsyncSession) -> None:
        try:
            await db.rollback()
        except SQLAlchemyError as e:
            # A cancelled statement can leave the connection unusable;
            # the pool discards it on return.
            logger.warning("Rollback after failed submission raised: %s", str(e))

    # ── Single Submission ─────────────────────────────────────────────────

    async def submit(
        self,
        db: AsyncSession,
        form_id: UUID,
        submitter_id: UUID,
        payload: SubmissionPayload,
    ) -> FormResponse:
        """
        Admit one response.

        Returns:
            The created FormResponse row (committed).

        Raises:
            NotFoundError:  Form (or its creator) does not exist.
            ForbiddenError: Creator's submission_count is zero.
            DatabaseError:  Insert or counter update failed.
        """
        notice: Optional[NotificationPayload] = None
        try:
            form = await self._get_form(db, form_id)
            owner = await self._lock_owner(db, form)

            if owner.submission_count <= 0:
                raise ForbiddenError(
                    message=NO_QUOTA_MESSAGE,
                    context={"form_id": str(form_id), "submission_count": owner.submission_count},
                )

            response = FormResponse(
                form_id=form.id,
                user_id=submitter_id,
                responses=serialize_payload(payload.responses),
                response_title=payload.response_title,
                submitted_at=utcnow(),
            )
            db.add(response)
            owner.submission_count -= 1
            owner.response_count += 1

            if owner.id != submitter_id:
                notice = NotificationPayload(
                    title="New form submission",
                    message=f'A new response was submitted to "{form.title}"',
                    type=NotificationType.FORM_SUBMITTED,
                    form_id=form.id,
                )
                await notification_service.record(db, owner.id, notice)

            await db.flush()
            await db.commit()

        except FormRelayError:
            await self._rollback(db)
            raise
        except SQLAlchemyError as e:
            await self._rollback(db)
            logger.error("Submission to form %s failed: %s", form_id, str(e))
            raise DatabaseError(
                message="Failed to save the response. Please try again.",
                context={"form_id": str(form_id), "error_type": type(e).__name__},
            )

        logger.info(
            "Response %s admitted to form %s (creator quota now %d)",
            response.id, form_id, owner.submission_count,
        )
        if notice is not None:
            await notification_service.deliver(owner.id, notice)
        return response

    # ── Bulk Submission ───────────────────────────────────────────────────

    def _parse_submissions(self, submissions: Any) -> List[SubmissionPayload]:
        if not isinstance(submissions, list) or not submissions:
            raise ValidationError(
                message="Submissions must be a non-empty array",
                field="submissions",
            )
        payloads = []
        for index, item in enumerate(submissions):
            try:
                payloads.append(SubmissionPayload.model_validate(item))
            except PydanticValidationError:
                raise ValidationError(
                    message=f"Submission at index {index} must be an object with a 'responses' field",
                    field="submissions",
                    context={"index": index},
                )
        return payloads

    async def submit_bulk(
        self,
        db: AsyncSession,
        form_id: UUID,
        submitter_id: UUID,
        submissions: Any,
    ) -> BulkSubmissionResponse:
        """
        Admit up to min(n, quota, batch cap) responses in one transaction.

        Partial admission is a success; the message says which limits applied.

        Raises:
            ValidationError:         submissions missing, empty or malformed.
            NotFoundError:           Form or creator missing.
            ForbiddenError:          Creator quota already zero.
            TransactionTimeoutError: Lock wait or transaction time limit exceeded.
            DatabaseError:           Any other persistence failure.
        """
        payloads = self._parse_submissions(submissions)
        timeout = settings.bulk_tx_timeout_seconds

        try:
            result, form, owner_id = await asyncio.wait_for(
                self._bulk_transaction(db, form_id, submitter_id, payloads),
                timeout=timeout,
            )
            # COMMIT runs outside the deadline: once sent, the outcome is success or DatabaseError
            await db.commit()
        except asyncio.TimeoutError:
            await self._rollback(db)
            logger.error("Bulk submission to form %s timed out after %ss", form_id, timeout)
            raise TransactionTimeoutError(
                timeout=timeout,
                context={"form_id": str(form_id), "requested": len(payloads)},
            )
        except FormRelayError:
            await self._rollback(db)
            raise
        except SQLAlchemyError as e:
            await self._rollback(db)
            logger.error("Bulk submission to form %s failed: %s", form_id, str(e))
            raise DatabaseError(
                message="Failed to save the submissions. No responses were recorded.",
                context={"form_id": str(form_id), "error_type": type(e).__name__},
            )

        logger.info(
            "Bulk submission to form %s: %d of %d admitted (creator quota now %d)",
            form_id, result.processed, result.requested, result.remaining_quota,
        )
        await notification_service.deliver(owner_id, self._batch_notice(form, result.processed))
        return result

    async def _bulk_transaction(
        self,
        db: AsyncSession,
        form_id: UUID,
        submitter_id: UUID,
        payloads: List[SubmissionPayload],
    ):
        form = await self._get_form(db, form_id)

        wait = settings.bulk_tx_max_wait_seconds
        try:
            owner = await asyncio.wait_for(self._lock_owner(db, form), timeout=wait)
        except asyncio.TimeoutError:
            raise TransactionTimeoutError(
                timeout=wait,
                context={"form_id": str(form_id), "stage": "lock_wait"},
            )

        quota = owner.submission_count
        if quota <= 0:
            raise ForbiddenError(
                message=NO_QUOTA_MESSAGE,
                context={"form_id": str(form_id), "submission_count": quota},
            )

        requested = len(payloads)
        admit = min(requested, quota, self.max_batch_size)
        now = utcnow()
        rows = [
            {
                "form_id": form.id,
                "user_id": submitter_id,
                "responses": serialize_payload(item.responses),
                "response_title": item.response_title,
                "submitted_at": now,
            }
            for item in payloads[:admit]
        ]
        await db.execute(insert(FormResponse), rows)

        owner.submission_count = quota - admit
        owner.response_count += admit
        await notification_service.record(db, owner.id, self._batch_notice(form, admit))

        # submit_bulk commits
        await db.flush()

        result = BulkSubmissionResponse(
            message=build_throttle_message(requested, admit, quota, self.max_batch_size),
            count=admit,
            processed=admit,
            requested=requested,
            unprocessed=requested - admit,
            remaining_quota=owner.submission_count,
        )
        return result, form, owner.id

    def _batch_notice(self, form: Form, processed: int) -> NotificationPayload:
        noun = "response" if processed == 1 else "responses"
        return NotificationPayload(
            title="New form submissions",
            message=f'{processed} new {noun} submitted to "{form.title}"',
            type=NotificationType.FORM_SUBMITTED,
            form_id=form.id,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
submission_service = SubmissionService()
