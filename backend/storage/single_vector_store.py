"""
Store knowledge base in ChromaDB.
Embedded persistence for development, ChromaDB Cloud for production.
"""

import logging
from pathlib import Path
from typing import List, Dict, Any, Optional

import chromadb
from chromadb.config import Settings as ChromaSettings

from storage.base import BaseVectorStore, record_to_match
from domain.rag.types import SearchResponse
from core.config import settings
from core.exceptions import StorageError

logger = logging.getLogger(__name__)

CHROMA_BACKENDS = ("chromadb_embedded", "chromadb_cloud")


def build_where_clause(filter: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Translate a flat equality filter into ChromaDB `where` syntax.

    - {"page_type": "product"} -> {"page_type": "product"}
    - list values become {"$in": [...]}
    - several keys are combined with $and
    - empty filters become None (ChromaDB rejects an empty dict)
    """
    if not filter:
        return None

    clauses = []
    for key, value in filter.items():
        if isinstance(value, list):
            if not value:
                continue
            clauses.append({key: {"$in": value}})
        elif value is not None:
            clauses.append({key: value})

    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def resolve_store_path(store_path: Optional[Path] = None) -> Path:
    """Persistent store directory; relative paths are anchored at the backend directory"""
    store_path = Path(store_path or settings.single_vector_store_path)
    if not store_path.is_absolute():
        store_path = (Path(__file__).parent.parent / store_path).resolve()
    return store_path


def create_chroma_client(backend_type: str):
    """
    ChromaDB client for the given backend.

    Raises:
        StorageError: Unknown backend or missing cloud credentials
    """
    chroma_settings = ChromaSettings(anonymized_telemetry=False)

    if backend_type == "chromadb_embedded":
        store_path = resolve_store_path()
        store_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Opening embedded ChromaDB knowledge base at {store_path}")
        return chromadb.PersistentClient(path=str(store_path), settings=chroma_settings)

    if backend_type == "chromadb_cloud":
        if not settings.chromadb_cloud_api_key or not settings.chromadb_cloud_tenant:
            raise StorageError(
                "ChromaDB Cloud needs CHROMADB_CLOUD_API_KEY and CHROMADB_CLOUD_TENANT"
            )
        return chromadb.CloudClient(
            tenant=settings.chromadb_cloud_tenant,
            database=settings.chromadb_cloud_database,
            api_key=settings.chromadb_cloud_api_key,
            settings=chroma_settings,
        )

    raise StorageError(
        f"Unsupported vector store backend: {backend_type}. Supported: {', '.join(CHROMA_BACKENDS)}"
    )


class SingleVectorStore(BaseVectorStore):
    """
    Store knowledge chunks in one cosine-space ChromaDB collection.

    Chunk annotations (content_type, source_title, source_url, last_modified,
    page_type, related_products, ...) live in the Chroma metadata and are
    filterable with `where`.
    """

    def __init__(
        self,
        backend_type: Optional[str] = None,
        collection_name: Optional[str] = None,
        client=None,
    ):
        backend_type = backend_type or settings.vector_store_backend
        collection_name = collection_name or settings.vector_store_collection_name

        self.client = client or create_chroma_client(backend_type)
        self.collection = self.client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"}
        )
        logger.info(f"Knowledge base collection '{collection_name}' ready ({backend_type})")

    async def add(
        self,
        chunk_id: str,
        embedding: List[float],
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        try:
            self.collection.add(
                ids=[chunk_id],
                embeddings=[embedding],
                documents=[content],
                metadatas=[metadata or None]
            )
        except Exception as e:
            logger.error(f"Error adding chunk {chunk_id}: {e}")
            raise StorageError(f"Failed to add chunk: {e}")

    async def search_similar(
        self,
        query_vector: List[float],
        top_k: int = 10,
        filter: Optional[Dict[str, Any]] = None
    ) -> SearchResponse:
        """Cosine distances come back from Chroma and are reported as 1 - distance"""
        try:
            if not query_vector:
                raise ValueError("query_vector must not be empty")

            results = self.collection.query(
                query_embeddings=[query_vector],
                n_results=top_k,
                where=build_where_clause(filter),
                include=["documents", "metadatas", "distances"],
            )

            matches = []
            ids = results["ids"][0] if results["ids"] else []
            for i, chunk_id in enumerate(ids):
                document = results["documents"][0][i] if results.get("documents") else ""
                metadata = results["metadatas"][0][i] if results.get("metadatas") else {}
                score = 1.0 - results["distances"][0][i]
                matches.append(record_to_match(chunk_id, document, metadata, score))

            return SearchResponse(matches=matches, total=len(matches))

        except Exception as e:
            logger.error(f"Knowledge base search failed: {e}")
            raise StorageError(f"Failed to query vectors: {e}")

    async def delete(self, chunk_id: str) -> None:
        try:
            self.collection.delete(ids=[chunk_id])
        except Exception as e:
            logger.error(f"Error deleting chunk {chunk_id}: {e}")
            raise StorageError(f"Failed to delete chunk: {e}")
