from .dashboard_statistic import DashboardStatistic
from .package import VoucherPackage
from .router import RouterConfiguration, RouterLog
from .support_contact import SupportContact
from .transaction import Transaction
from .transaction_charge import TransactionCharge
from .user import User
from .voucher import Voucher

__all__ = [
    "DashboardStatistic",
    "RouterConfiguration",
    "RouterLog",
    "SupportContact",
    "Transaction",
    "TransactionCharge",
    "User",
    "Voucher",
    "VoucherPackage",
]
