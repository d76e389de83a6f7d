"""Domain error taxonomy.

Every rejection carries a stable ``kind`` and a human-readable ``detail``;
the global error handler renders both, so clients never see a rejected
action as a silent success.
"""

from __future__ import annotations


class StorraError(Exception):
    """Base class for client-visible domain errors."""

    kind: str = "error"
    status_code: int = 400
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthenticationRequired(StorraError):
    kind = "authentication_required"
    status_code = 401
    default_detail = "Unauthorized"


class AlreadyClaimedToday(StorraError):
    kind = "already_claimed_today"
    status_code = 409
    default_detail = "You already claimed today's reward"


class AllowanceExhausted(StorraError):
    kind = "allowance_exhausted"
    status_code = 409
    default_detail = "No spin chances available"


class AchievementNotClaimable(StorraError):
    kind = "achievement_not_claimable"
    status_code = 409
    default_detail = "Achievement cannot be claimed"


class UnknownQuestionReference(StorraError):
    kind = "unknown_question_reference"
    status_code = 400
    default_detail = "Submitted answer references an unknown question"


class InvalidInput(StorraError):
    kind = "invalid_input"
    status_code = 422
    default_detail = "Validation error"


class NotFound(StorraError):
    kind = "not_found"
    status_code = 404
    default_detail = "Resource not found"


class ConcurrentUpdate(StorraError):
    kind = "concurrent_update"
    status_code = 409
    default_detail = "The record was modified by another request, please retry"
