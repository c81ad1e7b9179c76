"""Visa types module - catalogue of visa categories and fees."""

from visa_api.modules.visa_types.router import router

__all__ = ["router"]
