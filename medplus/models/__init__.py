"""Database models."""

from medplus.models.company import Company
from medplus.models.profile import Profile
from medplus.models.permission import UserPermission

__all__ = ["Company", "Profile", "UserPermission"]
