"""Link mapping, validation, reconciliation, batch creation and name indexes."""

from .batch import LinkBatchCreator, RollbackSuppressedError
from .name_index import NameIndexBuilder
from .reconciler import LinkReconciler, ReconcileResult
from .validation import (
    DuplicatePartnerError,
    InvalidRelationshipError,
    LinkValidationError,
    MissingPartnerError,
    MissingPrimaryError,
)

__all__ = [
    "DuplicatePartnerError",
    "InvalidRelationshipError",
    "LinkBatchCreator",
    "LinkReconciler",
    "LinkValidationError",
    "MissingPartnerError",
    "MissingPrimaryError",
    "NameIndexBuilder",
    "ReconcileResult",
    "RollbackSuppressedError",
]
