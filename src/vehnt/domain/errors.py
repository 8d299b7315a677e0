from __future__ import annotations

from enum import StrEnum


class StakingErrorCode(StrEnum):
    ARITHMETIC_ERROR = "ARITHMETIC_ERROR"
    POSITION_ALREADY_FINALIZED = "POSITION_ALREADY_FINALIZED"
    POSITION_ALREADY_CLOSED = "POSITION_ALREADY_CLOSED"
    FAILED_VOTING_POWER_CALCULATION = "FAILED_VOTING_POWER_CALCULATION"
    INVALID_SCHEDULE = "INVALID_SCHEDULE"
    POSITION_NOT_FOUND = "POSITION_NOT_FOUND"
    POOL_NOT_FOUND = "POOL_NOT_FOUND"
    LOCKUP_NOT_FOUND = "LOCKUP_NOT_FOUND"
    SCHEDULER_UNAVAILABLE = "SCHEDULER_UNAVAILABLE"


class StakingError(RuntimeError):
    code: StakingErrorCode = StakingErrorCode.ARITHMETIC_ERROR

    def __init__(self, message: str, **details: object) -> None:
        super().__init__(message)
        self.details = details

    def to_payload(self) -> dict[str, object]:
        return {"code": self.code.value, "message": str(self), **self.details}


class LedgerArithmeticError(StakingError, ArithmeticError):
    code = StakingErrorCode.ARITHMETIC_ERROR


class PositionAlreadyFinalizedError(StakingError):
    code = StakingErrorCode.POSITION_ALREADY_FINALIZED


class PositionAlreadyClosedError(StakingError):
    code = StakingErrorCode.POSITION_ALREADY_CLOSED


class FailedVotingPowerCalculationError(StakingError):
    code = StakingErrorCode.FAILED_VOTING_POWER_CALCULATION


class ScheduleBuildError(StakingError, ValueError):
    code = StakingErrorCode.INVALID_SCHEDULE


class RecordNotFoundError(StakingError, LookupError):
    def __init__(self, code: StakingErrorCode, message: str, **details: object) -> None:
        super().__init__(message, **details)
        self.code = code


class SchedulerUnavailableError(StakingError):
    code = StakingErrorCode.SCHEDULER_UNAVAILABLE
