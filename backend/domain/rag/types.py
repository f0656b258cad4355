"""
RAG pipeline data types
"""

from datetime import datetime
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResponseMode:
    """Response generation modes"""
    STANDARD = "standard"
    DETAILED = "detailed"
    CONCISE = "concise"


class SafetyLevel:
    """Safety screening levels"""
    STRICT = "strict"
    MODERATE = "moderate"
    RELAXED = "relaxed"


class Chunk(BaseModel):
    """
    A retrieved knowledge fragment.

    `rerank_score` stays None until the ReRanker has scored the chunk.
    """
    model_config = ConfigDict(frozen=True)

    content: str = Field(..., min_length=1)
    content_type: str = "unknown"  # policy, product, faq, post, page, ...
    source_title: str = ""
    source_url: str = ""
    similarity_score: float = Field(..., ge=0.0, le=1.0)
    rerank_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    last_modified: Optional[datetime] = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("chunk content must not be blank")
        return v

    @property
    def relevance(self) -> float:
        """Re-rank score when present, otherwise the raw similarity"""
        return self.rerank_score if self.rerank_score is not None else self.similarity_score


class RawMatch(BaseModel):
    """Single match as returned by a vector store"""
    chunk_id: str = ""
    content: str
    content_type: str = "unknown"
    source_title: str = ""
    source_url: str = ""
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)
    last_modified: Optional[datetime] = None


class SearchResponse(BaseModel):
    """Similarity search result from a vector store"""
    matches: List[RawMatch] = Field(default_factory=list)
    total: int = 0


class RetrievalOptions(BaseModel):
    """Options that shape a retrieval call (and its cache key)"""
    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    max_candidates: int = Field(default=20, ge=1)


class RetrievalOutcome(BaseModel):
    """Normalized retrieval result"""
    chunks: List[Chunk] = Field(default_factory=list)
    total_found: int = 0
    search_time: float = 0.0
    cache_hit: bool = False


class ConversationTurn(BaseModel):
    """Prior message in the conversation"""
    role: str
    content: str


class ConversationContext(BaseModel):
    """
    Conversation and page context supplied by the caller.

    Unknown keys are kept so callers can pass extra annotations through.
    """
    model_config = ConfigDict(extra="allow")

    conversation_id: Optional[str] = None
    page_context: Dict[str, Any] = Field(default_factory=dict)  # type, title, url
    user_context: Dict[str, Any] = Field(default_factory=dict)  # type, intent, session_time
    product_context: Dict[str, Any] = Field(default_factory=dict)  # id
    recent_products: List[str] = Field(default_factory=list)
    message_history: List[ConversationTurn] = Field(default_factory=list)

    @field_validator("recent_products", mode="before")
    @classmethod
    def stringify_product_ids(cls, v):
        if v is None:
            return []
        return [str(item) for item in v]

    @property
    def page_type(self) -> Optional[str]:
        return self.page_context.get("type")

    @property
    def intent(self) -> Optional[str]:
        return self.user_context.get("intent")

    def summary(self) -> Dict[str, Any]:
        """User context summary carried by the context window"""
        return {
            "current_page": self.page_context.get("title"),
            "user_type": self.user_context.get("type") or "visitor",
            "session_duration": self.user_context.get("session_time"),
        }


class ContextItem(BaseModel):
    """One piece of content admitted into the context window"""
    content: str
    type: str
    source: str
    relevance_score: float
    truncated: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ContextWindowMetadata(BaseModel):
    total_chunks: int = 0
    estimated_tokens: int = 0
    truncated_chunks: int = 0
    context_types: List[str] = Field(default_factory=list)


class ContextWindow(BaseModel):
    """Token-budgeted assembly of chunks for a single request"""
    query: str
    relevant_content: List[ContextItem] = Field(default_factory=list)
    metadata: ContextWindowMetadata = Field(default_factory=ContextWindowMetadata)
    user_context: Dict[str, Any] = Field(default_factory=dict)


class ModelSelection(BaseModel):
    """Model and generation parameters chosen for a request"""
    model: str
    temperature: float
    max_tokens: int


class GenerationResult(BaseModel):
    """Raw output of a language model call"""
    response: str
    model: str
    generation_time: float = 0.0


class SourceReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    title: str
    url: Optional[str] = None
    relevance: float


class RetrievalStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    chunks_considered: int
    chunks_used: int
    average_relevance: float
    content_types: List[str] = Field(default_factory=list)
    cache_hit: bool = False


class ResponseMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    response_mode: str
    model_used: str
    generation_time: float
    temperature: float
    max_tokens: int
    plan_tier: Optional[str] = None


class RagResult(BaseModel):
    """Pipeline output; immutable once produced"""
    model_config = ConfigDict(frozen=True)

    response: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    sources_used: List[SourceReference] = Field(default_factory=list)
    retrieval_stats: RetrievalStats
    safety_passed: bool = True
    response_metadata: ResponseMetadata


class RagOptions(BaseModel):
    """Per-request options for the public entry point"""
    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    max_chunks: int = Field(default=8, ge=1)
    enable_reranking: bool = True
    response_mode: str = ResponseMode.STANDARD
    safety_level: str = SafetyLevel.MODERATE
