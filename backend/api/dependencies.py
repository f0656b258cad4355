"""
FastAPI dependencies
"""

from fastapi import Request, HTTPException

from domain.rag.orchestrator import RagOrchestrator


def get_rag_orchestrator(request: Request) -> RagOrchestrator:
    orchestrator = getattr(request.app.state, "rag_orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="RAG system is not initialized")
    return orchestrator
