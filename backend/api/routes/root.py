"""
Root and health check endpoints
"""

from fastapi import APIRouter, Request

from core.config import settings

router = APIRouter(tags=["root"])


@router.get("/")
async def root():
    """API root endpoint - returns API information"""
    return {
        "name": "Storefront Assistant API",
        "version": "0.1.0",
        "docs": "/docs",
        "endpoints": {
            "chat": "/api/v1/chat/respond",
            "health": "/health",
        }
    }


@router.get("/health")
async def health(request: Request):
    """Liveness plus whether the RAG pipeline has been wired"""
    return {
        "status": "ok",
        "environment": settings.environment,
        "rag_ready": getattr(request.app.state, "rag_orchestrator", None) is not None,
    }
