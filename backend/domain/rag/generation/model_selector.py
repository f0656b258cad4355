"""
Model and generation parameter selection
"""

import logging
from typing import Optional

from domain.rag.types import ContextWindow, ModelSelection, ResponseMode
from core.config import settings

logger = logging.getLogger(__name__)

ECONOMY, STANDARD, PREMIUM = 0, 1, 2

# Highest model tier each plan may use; unknown plans get the entry tier
PLAN_TIERS = {
    "free": ECONOMY,
    "pro": STANDARD,
    "unlimited": PREMIUM,
}

# Estimated-token thresholds for escalating the model tier
LARGE_CONTEXT_TOKENS = 2500
MODERATE_CONTEXT_TOKENS = 1000

TEMPERATURES = {
    ResponseMode.DETAILED: 0.7,
    ResponseMode.CONCISE: 0.3,
}
DEFAULT_TEMPERATURE = 0.5

MAX_TOKENS = {
    ResponseMode.DETAILED: 800,
    ResponseMode.CONCISE: 200,
}
DEFAULT_MAX_TOKENS = 400


def context_size_tier(estimated_tokens: int) -> int:
    if estimated_tokens > LARGE_CONTEXT_TOKENS:
        return PREMIUM
    if estimated_tokens > MODERATE_CONTEXT_TOKENS:
        return STANDARD
    return ECONOMY


class ModelSelector:
    """
    Picks a model tier from plan entitlement and context size.

    The tier is the lower of what the plan allows and what the context needs,
    so it never decreases when either grows. The premium model additionally
    requires the advanced_ai feature.
    """

    def __init__(
        self,
        economy_model: Optional[str] = None,
        standard_model: Optional[str] = None,
        premium_model: Optional[str] = None,
    ):
        self.models = {
            ECONOMY: economy_model or settings.llm_model_economy,
            STANDARD: standard_model or settings.llm_model_standard,
            PREMIUM: premium_model or settings.llm_model_premium,
        }

    def select(
        self,
        window: ContextWindow,
        plan_tier: Optional[str],
        response_mode: str = ResponseMode.STANDARD,
        advanced_ai: bool = False,
    ) -> ModelSelection:
        plan_rank = PLAN_TIERS.get((plan_tier or "").lower(), ECONOMY)
        tier = min(plan_rank, context_size_tier(window.metadata.estimated_tokens))
        if tier == PREMIUM and not advanced_ai:
            tier = STANDARD

        selection = ModelSelection(
            model=self.models[tier],
            temperature=TEMPERATURES.get(response_mode, DEFAULT_TEMPERATURE),
            max_tokens=MAX_TOKENS.get(response_mode, DEFAULT_MAX_TOKENS),
        )
        logger.debug(
            f"Selected model {selection.model} (plan={plan_tier}, "
            f"tokens={window.metadata.estimated_tokens}, mode={response_mode})"
        )
        return selection
