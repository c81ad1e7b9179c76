"""
Users module - applicants, officers and admins.
"""

from visa_api.modules.users.models import Permission, User, UserRole
from visa_api.modules.users.repository import UserRepository

__all__ = ["Permission", "User", "UserRole", "UserRepository"]
