from keel.utils import StrEnum


class Commitment(StrEnum):
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    def __lt__(self, other: "Commitment") -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return _order.index(self) < _order.index(other)

    def __le__(self, other: "Commitment") -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return _order.index(self) <= _order.index(other)

    def __gt__(self, other: "Commitment") -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return _order.index(self) > _order.index(other)

    def __ge__(self, other: "Commitment") -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return _order.index(self) >= _order.index(other)


_order = [Commitment.PROCESSED, Commitment.CONFIRMED, Commitment.FINALIZED]


class TransactionStatusEnum(StrEnum):
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    EXPIRED = "expired"

    @property
    def terminal(self) -> bool:
        return self in {
            TransactionStatusEnum.CONFIRMED,
            TransactionStatusEnum.FAILED,
            TransactionStatusEnum.EXPIRED,
        }


class FailureActionEnum(StrEnum):
    ABORT = "abort"
    CONTINUE = "continue"


class StepStatusEnum(StrEnum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
