"""
Service layer (store/account state consulted by the pipeline)
"""

from services.base import BaseService
from services.plan_service import BasePlanService, StaticPlanService

__all__ = [
    "BaseService",
    "BasePlanService",
    "StaticPlanService",
]
