"""
Plan tier and feature flag lookup
"""

import logging
from abc import abstractmethod
from typing import Dict, Iterable, Optional

from services.base import BaseService
from core.config import settings

logger = logging.getLogger(__name__)

PLAN_FREE = "free"
PLAN_PRO = "pro"
PLAN_UNLIMITED = "unlimited"

FEATURE_BASIC_CHAT = "basic_chat"
FEATURE_PROACTIVE_TRIGGERS = "proactive_triggers"
FEATURE_CUSTOM_MESSAGES = "custom_messages"
FEATURE_ADD_TO_CART = "add_to_cart"
FEATURE_AUTO_COUPON = "auto_coupon"
FEATURE_UPSELL_CROSSSELL = "upsell_crosssell"
FEATURE_WHITE_LABEL = "white_label"
FEATURE_ADVANCED_AI = "advanced_ai"
FEATURE_CHAT_RECOVERY = "chat_recovery"

PLAN_FEATURES: Dict[str, Dict[str, bool]] = {
    PLAN_FREE: {
        FEATURE_BASIC_CHAT: True,
        FEATURE_PROACTIVE_TRIGGERS: False,
        FEATURE_CUSTOM_MESSAGES: False,
        FEATURE_ADD_TO_CART: False,
        FEATURE_AUTO_COUPON: False,
        FEATURE_UPSELL_CROSSSELL: False,
        FEATURE_WHITE_LABEL: False,
        FEATURE_ADVANCED_AI: False,
        FEATURE_CHAT_RECOVERY: False,
    },
    PLAN_PRO: {
        FEATURE_BASIC_CHAT: True,
        FEATURE_PROACTIVE_TRIGGERS: True,
        FEATURE_CUSTOM_MESSAGES: True,
        FEATURE_ADD_TO_CART: False,
        FEATURE_AUTO_COUPON: False,
        FEATURE_UPSELL_CROSSSELL: False,
        FEATURE_WHITE_LABEL: False,
        FEATURE_ADVANCED_AI: False,
        FEATURE_CHAT_RECOVERY: False,
    },
    PLAN_UNLIMITED: {
        FEATURE_BASIC_CHAT: True,
        FEATURE_PROACTIVE_TRIGGERS: True,
        FEATURE_CUSTOM_MESSAGES: True,
        FEATURE_ADD_TO_CART: True,
        FEATURE_AUTO_COUPON: True,
        FEATURE_UPSELL_CROSSSELL: True,
        FEATURE_WHITE_LABEL: True,
        FEATURE_ADVANCED_AI: True,
        FEATURE_CHAT_RECOVERY: True,
    },
}


class BasePlanService(BaseService):
    """Plan/entitlement collaborator consulted by the pipeline"""

    @abstractmethod
    async def get_current_plan(self) -> str:
        pass

    @abstractmethod
    async def is_feature_enabled(self, feature: str) -> bool:
        pass


class StaticPlanService(BasePlanService):
    """
    Plan service backed by configuration.

    Features come from the plan table; names listed in `enabled_features`
    are switched on regardless of plan. Unknown plans fall back to free.
    """

    def __init__(self, plan_tier: Optional[str] = None, enabled_features: Optional[Iterable[str]] = None):
        plan_tier = (plan_tier or settings.plan_tier).lower()
        if plan_tier not in PLAN_FEATURES:
            logger.warning(f"Unknown plan tier '{plan_tier}', falling back to '{PLAN_FREE}'")
            plan_tier = PLAN_FREE
        self.plan_tier = plan_tier
        if enabled_features is None:
            enabled_features = settings.enabled_feature_list
        self.overrides = {f.strip() for f in enabled_features if f and f.strip()}

    async def get_current_plan(self) -> str:
        return self.plan_tier

    async def is_feature_enabled(self, feature: str) -> bool:
        if feature in self.overrides:
            return True
        return PLAN_FEATURES[self.plan_tier].get(feature, False)
