"""Shared model base and response envelope."""

from visa_api.modules.shared.models import BaseModel
from visa_api.modules.shared.schemas import ApiResponse, ok

__all__ = ["ApiResponse", "BaseModel", "ok"]
