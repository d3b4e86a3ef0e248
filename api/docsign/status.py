"""Document status resolution.

The stored ``Document.status`` is only part of the picture: recipients and
completion artifacts can prove a different state. ``resolve_status`` computes
the status a document should display without touching the database; callers
that want to persist it use ``apply_status`` and commit themselves.
"""
from enum import Enum
from typing import Iterable, Sequence


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"
    VOIDED = "voided"
    TRASHED = "trashed"


class RecipientStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    VIEWED = "viewed"
    SIGNED = "signed"
    REJECTED = "rejected"


class VersionLabel(str, Enum):
    DRAFT = "draft"
    FINAL = "final"


# Statuses that follow recipient activity rather than an explicit owner action.
IN_FLIGHT_STATUSES = frozenset({
    DocumentStatus.SENT.value,
    DocumentStatus.VIEWED.value,
    DocumentStatus.IN_PROGRESS.value,
    DocumentStatus.REJECTED.value,
    DocumentStatus.TRASHED.value,
})

SIGNABLE_STATUSES = frozenset({
    DocumentStatus.SENT.value,
    DocumentStatus.VIEWED.value,
    DocumentStatus.IN_PROGRESS.value,
})


def _signers(recipients: Iterable) -> list:
    return [r for r in recipients if r.role == "signer"]


def _viewers(recipients: Iterable) -> list:
    return [r for r in recipients if r.role == "viewer"]


def all_signers_signed(recipients: Sequence) -> bool:
    signers = _signers(recipients)
    return bool(signers) and all(r.status == RecipientStatus.SIGNED for r in signers)


def has_completion_evidence(document, recipients: Sequence) -> bool:
    if document.status == DocumentStatus.COMPLETED:
        return True
    if document.completed_at or document.final_key:
        return True
    if all_signers_signed(recipients):
        return True
    viewers = _viewers(recipients)
    if not _signers(recipients) and viewers:
        return all(r.viewed_at is not None or r.status == RecipientStatus.VIEWED for r in viewers)
    return False


def _progress_status(stored: DocumentStatus, recipients: Sequence) -> DocumentStatus:
    if any(r.status == RecipientStatus.SIGNED for r in _signers(recipients)):
        return DocumentStatus.IN_PROGRESS
    if any(r.status == RecipientStatus.VIEWED for r in recipients):
        return DocumentStatus.VIEWED
    if any(r.status == RecipientStatus.SENT for r in recipients):
        return DocumentStatus.SENT
    if stored in (DocumentStatus.TRASHED, DocumentStatus.REJECTED):
        return DocumentStatus.DRAFT
    return stored


def resolve_status(document, recipients: Sequence) -> DocumentStatus:
    """Compute the displayed status of ``document``.

    Completion evidence wins over everything, then any rejection. Owner
    decisions (draft, voided) are kept as stored; statuses driven by
    recipient activity are recomputed from the recipient list.
    """
    if has_completion_evidence(document, recipients):
        return DocumentStatus.COMPLETED
    if any(r.status == RecipientStatus.REJECTED for r in recipients):
        return DocumentStatus.REJECTED
    stored = DocumentStatus(document.status)
    if stored.value in IN_FLIGHT_STATUSES:
        return _progress_status(stored, recipients)
    return stored


def apply_status(document, recipients: Sequence) -> DocumentStatus:
    status = resolve_status(document, recipients)
    document.status = status.value
    return status


def restored_status(document, recipients: Sequence) -> DocumentStatus:
    """Status a trashed document returns to when it is restored."""
    if document.status_before_delete and document.status_before_delete != DocumentStatus.TRASHED:
        return DocumentStatus(document.status_before_delete)
    if has_completion_evidence(document, recipients):
        return DocumentStatus.COMPLETED
    return resolve_status(document, recipients)


def display_status(document, recipients: Sequence) -> DocumentStatus:
    """Status shown for a document in listings, including trashed ones."""
    if document.deleted_at is None and document.status != DocumentStatus.TRASHED:
        return DocumentStatus(document.status)
    return restored_status(document, recipients)


def next_sequential_order(recipients: Sequence):
    """Lowest routing order among signers that have not signed yet."""
    remaining = [r.routing_order for r in _signers(recipients) if r.status != RecipientStatus.SIGNED]
    return min(remaining) if remaining else None


def is_recipient_turn(recipient, recipients: Sequence) -> bool:
    next_order = next_sequential_order(recipients)
    return next_order is not None and recipient.routing_order == next_order
