from enum import Enum


class InspectionStatus(str, Enum):
    """Per-path inspection state. PENDING is never written; it is the absence of a status."""
    PENDING = 'PENDING'
    SUCCESS = 'SUCCESS'
    FAILURE = 'FAILURE'

    def __str__(self) -> str:
        return self.value


class UpdateStatus(str, Enum):
    UP_TO_DATE = 'UP_TO_DATE'
    OUT_OF_DATE = 'OUT_OF_DATE'

    def __str__(self) -> str:
        return self.value


class PolicyStatusType(str, Enum):
    IN_VIOLATION = 'IN_VIOLATION'
    IN_VIOLATION_OVERRIDDEN = 'IN_VIOLATION_OVERRIDDEN'
    NOT_IN_VIOLATION = 'NOT_IN_VIOLATION'

    def __str__(self) -> str:
        return self.value
