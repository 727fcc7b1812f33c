from src.modules.credits.allocation import AllocationCatchUpService
from src.modules.credits.benefits import UserBenefitsService
from src.modules.credits.constants import DeductionStrategy
from src.modules.credits.deduction import CreditDeductionService
from src.modules.credits.exceptions import CreditValidationError
from src.modules.credits.grants import CreditGrantService
from src.modules.credits.models import DeductionResult, UserBenefits

__all__ = [
    "AllocationCatchUpService",
    "CreditDeductionService",
    "CreditGrantService",
    "CreditValidationError",
    "DeductionResult",
    "DeductionStrategy",
    "UserBenefits",
    "UserBenefitsService",
]
