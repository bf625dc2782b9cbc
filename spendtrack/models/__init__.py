# Models package init: importing registers every table on Base.metadata
from spendtrack.models.user import User
from spendtrack.models.expense import Expense

__all__ = ["User", "Expense"]
