"""
Pydantic models for chat request/response schemas
"""

from typing import Optional

from pydantic import BaseModel, Field

from domain.rag.types import ConversationContext, RagOptions, RagResult, ResponseMode, SafetyLevel


class ChatOptions(BaseModel):
    """Per-request pipeline options; omitted values use server defaults"""
    similarity_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_chunks: Optional[int] = Field(default=None, ge=1, le=50)
    enable_reranking: bool = True
    response_mode: str = ResponseMode.STANDARD
    safety_level: str = SafetyLevel.MODERATE

    def to_rag_options(self, default_threshold: float, default_max_chunks: int) -> RagOptions:
        return RagOptions(
            similarity_threshold=(
                default_threshold if self.similarity_threshold is None else self.similarity_threshold
            ),
            max_chunks=self.max_chunks or default_max_chunks,
            enable_reranking=self.enable_reranking,
            response_mode=self.response_mode,
            safety_level=self.safety_level,
        )


class ChatRequest(BaseModel):
    """Request model for the chat respond endpoint"""
    query: str
    context: ConversationContext = Field(default_factory=ConversationContext)
    options: ChatOptions = Field(default_factory=ChatOptions)

    class Config:
        json_schema_extra = {
            "example": {
                "query": "What is your return policy?",
                "context": {
                    "conversation_id": "conv-123",
                    "page_context": {"type": "product", "title": "Blue Hoodie"},
                    "user_context": {"type": "customer", "intent": "purchase"},
                    "product_context": {"id": "42"},
                    "recent_products": ["42", "17"],
                    "message_history": [{"role": "user", "content": "Hi"}],
                },
                "options": {"response_mode": "standard", "safety_level": "moderate"},
            }
        }


class ChatResponse(RagResult):
    """Response model for the chat respond endpoint"""
    pass


class ErrorDetail(BaseModel):
    """Error body returned in HTTPException detail"""
    code: str
    message: str


class ErrorResponse(BaseModel):
    detail: ErrorDetail
