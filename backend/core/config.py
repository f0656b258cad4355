"""
Unified configuration and settings
Combines LLM, embedding, vector store and RAG pipeline config
"""

from pathlib import Path
from typing import List
from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Values can be set via:
    1. Environment variables (highest priority)
    2. .env file (loaded by load_dotenv())
    3. Default values below (lowest priority)
    """

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"

    # ------------------------
    # Store context (rendered into prompts)
    # ------------------------

    store_name: str = "Our Store"
    store_url: str = ""
    store_currency: str = "USD"

    # ------------------------
    # LLM
    # ------------------------

    llm_provider: str = "groq"  # Only "groq" is implemented
    llm_model_economy: str = "llama-3.1-8b-instant"
    llm_model_standard: str = "llama-3.3-70b-versatile"
    llm_model_premium: str = "openai/gpt-oss-120b"
    llm_timeout: int = 60

    # ------------------------
    # Embedding: Jina Embedding API
    # ------------------------

    jina_api_key: str = ""
    jina_api_url: str = "https://api.jina.ai/v1/embeddings"
    jina_model: str = "jina-embeddings-v3"
    jina_timeout: int = 30
    jina_max_retries: int = 3

    # ------------------------
    # Vector Store
    # ------------------------

    vector_store_backend: str = "memory"  # Options: "memory", "chromadb_embedded", "chromadb_cloud"
    vector_store_collection_name: str = "store_knowledge"

    # Dev: Embedded
    single_vector_store_path: Path = Path("./data/single_vector_db")
    # Prod: Cloud managed service
    chromadb_cloud_api_key: str = ""
    chromadb_cloud_tenant: str = ""
    chromadb_cloud_database: str = ""

    # ------------------------
    # RAG
    # ------------------------

    # Retrieval
    rag_similarity_threshold: float = 0.7
    rag_max_initial_retrieval: int = 20
    rag_max_final_chunks: int = 8

    # Context window
    rag_max_context_tokens: int = 4000
    rag_max_chunk_chars: int = 1200
    rag_chars_per_token: int = 4
    rag_history_token_share: float = 0.3  # Share of the token budget usable by history

    # Caching
    rag_cache_ttl: int = 300  # 5 minutes
    rag_cache_prefix: str = "storefront_rag_"

    # Per-request deadline in seconds (0 disables)
    rag_request_timeout: float = 30.0

    # ------------------------
    # Plan / feature flags
    # ------------------------

    plan_tier: str = "free"  # free, pro, unlimited
    enabled_features: str = ""  # Comma separated overrides, e.g. "advanced_ai"

    class Config:
        """
        Pydantic configuration for settings loading.

        - env_file: Which .env file to read
        - env_file_encoding: File encoding
        - extra: What to do with extra fields in .env that aren't in this class
        """
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra .env vars (like GROQ_API_KEY used by the SDK)

    @property
    def enabled_feature_list(self) -> List[str]:
        """Feature overrides parsed from the comma separated setting"""
        return [f.strip() for f in self.enabled_features.split(",") if f.strip()]


# Singleton settings instance
settings = Settings()
