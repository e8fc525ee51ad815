from __future__ import annotations

from enum import Enum

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class LoanApplicationStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ApplicationFeeStatus(str, Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"


class SuccessResponse(CamelModel):
    success: bool = True
    message: str | None = None


def page_count(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return -(-total // limit)
