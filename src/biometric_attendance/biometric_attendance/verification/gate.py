from __future__ import annotations

import logging
import threading
from typing import Optional

from ..attendance.model import AttendanceRecord, Conflict, PendingMarkIn
from ..attendance.repository import CommitGateway
from ..core.exceptions import ValidationError, violation_for
from .model import VerificationRequest

logger = logging.getLogger(__name__)


class VerificationGate:
    """Holds one tentative mutation until a human confirms or cancels it.

    Nothing reaches the store before confirm(). A PersistenceError keeps
    the request held so the user can retry by hand with the same key.
    """

    def __init__(self, gateway: CommitGateway):
        self._gateway = gateway
        self._lock = threading.Lock()
        self._pending: Optional[VerificationRequest] = None

    @property
    def pending(self) -> Optional[VerificationRequest]:
        return self._pending

    def hold(self, request: VerificationRequest) -> VerificationRequest:
        with self._lock:
            if self._pending is not None:
                raise ValidationError("A verification is already awaiting confirmation")
            self._pending = request
        logger.info(
            "Holding %s verification %s for %s",
            request.mode.value,
            request.commit_key[:8],
            request.employee.employee_id,
        )
        return request

    def confirm(self, request_id: str) -> AttendanceRecord:
        request = self._require(request_id)
        mutation = request.mutation

        if isinstance(mutation, PendingMarkIn):
            result = self._gateway.create_in(
                employee_id=mutation.employee_id,
                work_date=mutation.work_date,
                in_time=mutation.in_time,
                payment=mutation.payment,
                remarks=mutation.remarks,
                commit_key=request.commit_key,
            )
        else:
            result = self._gateway.mark_out(
                record_id=mutation.record_id,
                out_time=mutation.out_time,
                frame_ref=request.frame_ref,
                resolved_employee_id=request.employee.employee_id,
                commit_key=request.commit_key,
            )

        self.discard(request_id)
        if isinstance(result, Conflict):
            logger.warning("Commit %s rejected: %s", request.commit_key[:8], result.reason.value)
            raise violation_for(result.reason, result.message)
        logger.info(
            "Committed %s for %s (record %s)",
            request.mode.value,
            request.employee.employee_id,
            result.record.record_id,
        )
        return result.record

    def cancel(self, request_id: Optional[str] = None) -> None:
        if request_id is not None:
            self._require(request_id)
        with self._lock:
            request, self._pending = self._pending, None
        if request is not None:
            logger.info("Cancelled verification %s", request.commit_key[:8])

    def discard(self, request_id: str) -> None:
        with self._lock:
            if self._pending is not None and self._pending.commit_key == request_id:
                self._pending = None

    def _require(self, request_id: str) -> VerificationRequest:
        request = self._pending
        if request is None or request.commit_key != request_id:
            raise ValidationError("No matching verification is awaiting confirmation")
        return request
