"""
Payments Module

Visa fee collection through Stripe PaymentIntents.
"""

from .router import router

__all__ = ["router"]
