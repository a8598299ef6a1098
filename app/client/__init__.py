from app.client.api import ApiError, FlashcardApiClient
from app.client.reconciliation import (
    CardEntry,
    CardState,
    LocalRecentCard,
    LocalSetProgress,
    ProgressReconciler,
    StudySessionState,
    merge_recent_cards,
)
from app.client.refresh import DashboardRefresher
from app.client.session import StudySessionController

__all__ = [
    "ApiError",
    "CardEntry",
    "CardState",
    "DashboardRefresher",
    "FlashcardApiClient",
    "LocalRecentCard",
    "LocalSetProgress",
    "ProgressReconciler",
    "StudySessionController",
    "StudySessionState",
    "merge_recent_cards",
]
