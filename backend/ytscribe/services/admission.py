"""
Payment admission for transcript jobs.

Decides whether a job may run, based on the session id it presents and
the entitlement bound to that session. Free-plan sessions are issued
locally; paid sessions are looked up with the payment processor when the
session store has not seen them yet.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from ytscribe.models.schemas import EntitlementRecord, PlanId, VideoRequest
from ytscribe.services.errors import ErrorKind
from ytscribe.services.payment_client import PaymentClient, PaymentError
from ytscribe.services.session_store import SessionStore

logger = logging.getLogger(__name__)

FREE_SESSION_PREFIX = "free_"


@dataclass(frozen=True)
class AdmissionDecision:
    """Admit, or reject with a reason."""

    admitted: bool
    reason: ErrorKind | None = None
    entitlement: EntitlementRecord | None = None

    @classmethod
    def admit(cls, entitlement: EntitlementRecord | None = None) -> "AdmissionDecision":
        return cls(admitted=True, entitlement=entitlement)

    @classmethod
    def reject(cls, reason: ErrorKind) -> "AdmissionDecision":
        return cls(admitted=False, reason=reason)


def entitlement_from_metadata(
    session_id: str,
    metadata: dict[str, str],
    is_free: bool = False,
) -> EntitlementRecord:
    """
    Build an entitlement from checkout session metadata.

    Args:
        session_id: Checkout session id
        metadata: Metadata written at checkout (videoId, targetLanguage, planId)
        is_free: Whether the session was issued locally

    Raises:
        ValueError: If metadata has no video id or an unknown plan
    """
    video_id = metadata.get("videoId")
    if not video_id:
        raise ValueError(f"Session {session_id} metadata has no videoId")

    return EntitlementRecord(
        session_id=session_id,
        video_id=video_id,
        target_language=metadata.get("targetLanguage") or None,
        plan=PlanId(metadata.get("planId") or PlanId.BASIC.value),
        issued_at=datetime.now(timezone.utc),
        is_free=is_free,
    )


class PaymentAdmission:
    """
    Admission check binding a paid (or free) session to one job.

    Example:
        admission = PaymentAdmission(store, payment_client, payment_required=True)
        decision = await admission.check(request)
        if not decision.admitted:
            emit_error(decision.reason)
    """

    def __init__(
        self,
        store: SessionStore,
        payment_client: PaymentClient | None,
        payment_required: bool = True,
    ):
        """
        Initialize admission.

        Args:
            store: Session store shared by all jobs
            payment_client: Processor client (None or unconfigured = offline)
            payment_required: False admits every job unconditionally
        """
        self.store = store
        self.payment_client = payment_client
        self.payment_required = payment_required

    @property
    def processor_usable(self) -> bool:
        return self.payment_client is not None and self.payment_client.is_configured

    async def check(self, request: VideoRequest) -> AdmissionDecision:
        """
        Decide whether a job may run.

        Args:
            request: Job input with resolved video id and optional session id

        Returns:
            AdmissionDecision (admitted, or rejected with an ErrorKind reason)
        """
        if not self.payment_required:
            logger.debug("Admission disabled, admitting job")
            return AdmissionDecision.admit()

        session_id = request.session_id
        if not session_id:
            logger.info(f"Rejected {request.video_id}: no session id")
            return AdmissionDecision.reject(ErrorKind.PAYMENT_REQUIRED)

        record = self.store.lookup(session_id)
        if record is None:
            decision = await self.load_session(session_id)
            if not decision.admitted:
                return decision
            record = decision.entitlement

        if not record.authorizes(request.video_id, request.target_language):
            logger.info(
                f"Rejected {session_id[:16]}...: entitlement is for "
                f"({record.video_id}, {record.target_language}), "
                f"request is ({request.video_id}, {request.target_language})"
            )
            return AdmissionDecision.reject(ErrorKind.ENTITLEMENT_MISMATCH)

        logger.info(f"Admitted {session_id[:16]}... plan={record.plan.value} video={record.video_id}")
        return AdmissionDecision.admit(record)

    async def verify_session(self, session_id: str) -> EntitlementRecord | None:
        """
        Entitlement for a session, asking the processor on a store miss.

        Returns:
            The entitlement if the session is free or paid, else None
        """
        record = self.store.lookup(session_id)
        if record is not None:
            return record
        return (await self.load_session(session_id)).entitlement

    async def load_session(self, session_id: str) -> AdmissionDecision:
        """Cold store: ask the processor and cache a paid session."""
        if not self.processor_usable:
            logger.warning(f"Cannot verify {session_id[:16]}...: payment processor not configured")
            return AdmissionDecision.reject(ErrorKind.VERIFICATION_FAILED)

        try:
            session = await self.payment_client.retrieve_session(session_id)
        except PaymentError as e:
            logger.warning(f"Payment verification failed for {session_id[:16]}...: {e.message}")
            return AdmissionDecision.reject(ErrorKind.VERIFICATION_FAILED)

        if not session.paid:
            logger.info(f"Session {session_id[:16]}... not paid (status={session.payment_status})")
            return AdmissionDecision.reject(ErrorKind.PAYMENT_NOT_COMPLETED)

        try:
            record = entitlement_from_metadata(session_id, session.metadata)
        except ValueError as e:
            logger.warning(f"Paid session has unusable metadata: {e}")
            return AdmissionDecision.reject(ErrorKind.VERIFICATION_FAILED)

        self.store.insert(session_id, record)
        return AdmissionDecision.admit(record)

    def issue_free_entitlement(self, video_id: str, target_language: str | None) -> str:
        """
        Issue a free-plan session bound to one (video id, target language) pair.

        Returns:
            New session id, already present in the store
        """
        session_id = f"{FREE_SESSION_PREFIX}{uuid.uuid4().hex}"
        record = EntitlementRecord(
            session_id=session_id,
            video_id=video_id,
            target_language=target_language,
            plan=PlanId.FREE,
            issued_at=datetime.now(timezone.utc),
            is_free=True,
        )
        self.store.insert(session_id, record)
        logger.info(f"Issued free session {session_id[:16]}... for {video_id}")
        return session_id
