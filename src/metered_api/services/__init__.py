"""Services module."""

from metered_api.services.account_service import AccountService
from metered_api.services.credit_gate import CreditGate, GateError, GateResult
from metered_api.services.item_service import ItemService
from metered_api.services.recharge_service import RechargeController, RechargeError, RechargeResult
from metered_api.services.usage_recorder import UsageRecorder
from metered_api.services.user_service import UserService

__all__ = [
    "AccountService",
    "CreditGate",
    "GateError",
    "GateResult",
    "ItemService",
    "RechargeController",
    "RechargeError",
    "RechargeResult",
    "UsageRecorder",
    "UserService",
]
