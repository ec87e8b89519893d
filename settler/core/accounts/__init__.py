from settler.core.accounts.directory import AccountDirectory, normalize
from settler.core.accounts.models import Account, AccountStatus, Role

__all__ = [
    "Account",
    "AccountDirectory",
    "AccountStatus",
    "Role",
    "normalize",
]
