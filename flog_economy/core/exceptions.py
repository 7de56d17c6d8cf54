"""
Custom exception classes for the economy engine
Every error is a recoverable, caller-visible outcome with a stable error code
"""

from fastapi import HTTPException, status
from typing import Any, Dict, Optional

class EconomyException(HTTPException):
    """Base exception class for the economy engine"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

    def __str__(self) -> str:
        return f"{self.error_code}: {self.detail}"

class BadRequestException(EconomyException):
    """400 Bad Request"""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code
        )

class NotFoundException(EconomyException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ConflictException(EconomyException):
    """409 Conflict"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )

class ValidationException(EconomyException):
    """422 Unprocessable Entity"""

    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )

# Business logic exceptions
class InvalidAmountException(ValidationException):
    """Amount must be strictly positive"""

    def __init__(self, amount: Any):
        super().__init__(
            detail=f"Amount must be greater than zero, got {amount}",
            error_code="INVALID_AMOUNT"
        )

class InsufficientFundsException(BadRequestException):
    """Wallet balance too low for a debit"""

    def __init__(self, balance: Any, required: Any):
        super().__init__(
            detail=f"Insufficient FLOG balance: {balance} available, {required} required",
            error_code="INSUFFICIENT_FUNDS"
        )
        self.balance = balance
        self.required = required

class InsufficientStakeException(BadRequestException):
    """Staked amount too low for an unstake"""

    def __init__(self, staked: Any, required: Any):
        super().__init__(
            detail=f"Insufficient staked FLOG: {staked} staked, {required} requested",
            error_code="INSUFFICIENT_STAKE"
        )

class BoxNotFoundException(NotFoundException):

    def __init__(self, box_id: str):
        super().__init__(
            detail=f"Mystery box '{box_id}' not found",
            error_code="BOX_NOT_FOUND"
        )

class AchievementNotFoundException(NotFoundException):

    def __init__(self, achievement_id: str):
        super().__init__(
            detail=f"Achievement '{achievement_id}' not found",
            error_code="ACHIEVEMENT_NOT_FOUND"
        )

class QuestNotFoundException(NotFoundException):

    def __init__(self, detail: str = "Quest not found"):
        super().__init__(
            detail=detail,
            error_code="QUEST_NOT_FOUND"
        )

class QuestNotCompletedException(BadRequestException):

    def __init__(self, detail: str = "Quest not completed yet"):
        super().__init__(
            detail=detail,
            error_code="QUEST_NOT_COMPLETED"
        )

class RewardAlreadyClaimedException(ConflictException):

    def __init__(self, detail: str = "Reward already claimed"):
        super().__init__(
            detail=detail,
            error_code="REWARD_ALREADY_CLAIMED"
        )
