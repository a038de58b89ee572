"""Resource stores built on the revalidating cache."""

from .assignments import ASSIGNMENT_TTL, AssignmentStore
from .documents import (
    DOCUMENTS_TTL,
    DocumentBundle,
    DocumentStore,
    days_until,
    document_type_label,
    expiry_status,
    nearest_expiry_days,
)

__all__ = [
    "ASSIGNMENT_TTL",
    "DOCUMENTS_TTL",
    "AssignmentStore",
    "DocumentBundle",
    "DocumentStore",
    "days_until",
    "document_type_label",
    "expiry_status",
    "nearest_expiry_days",
]
