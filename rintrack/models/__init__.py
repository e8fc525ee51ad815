from rintrack.models.loan import Loan
from rintrack.models.loan_application import LoanApplication
from rintrack.models.user import User

__all__ = [
    "Loan",
    "LoanApplication",
    "User",
]
