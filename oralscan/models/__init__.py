from .account import Account
from .enums import Region, Role, ScanType
from .scan import Scan
from .user_profile import UserProfile

__all__ = [
    "Account",
    "Region",
    "Role",
    "Scan",
    "ScanType",
    "UserProfile",
]
