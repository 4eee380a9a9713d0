"""Modified-file change sets: models, commit applier and review workflow."""

from .models import CommitReport, CommitResult, ModifiedFile
from .applier import apply_change, apply_changes
from .review import ChangeReview, ReviewState

__all__ = [
    "ChangeReview",
    "CommitReport",
    "CommitResult",
    "ModifiedFile",
    "ReviewState",
    "apply_change",
    "apply_changes",
]
