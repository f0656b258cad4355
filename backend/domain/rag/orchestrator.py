"""
RAG orchestrator - runs a chat query through the retrieval-augmented pipeline
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Dict, Optional, Union

from domain.llm.base import BaseLLMClient
from domain.rag.cancellation import CancellationScope
from domain.rag.context.builder import ContextBuilder
from domain.rag.generation.model_selector import ModelSelector
from domain.rag.generation.prompt import PromptBuilder
from domain.rag.postprocess import ResponsePostProcessor
from domain.rag.retrieval.reranker import Reranker
from domain.rag.retrieval.retriever import Retriever
from domain.rag.safety import SafetyChecker, SAFETY_VIOLATION_MESSAGE
from domain.rag.types import ConversationContext, RagOptions, RagResult, RetrievalOptions
from services.plan_service import BasePlanService, FEATURE_ADVANCED_AI
from core.config import settings
from core.exceptions import (
    ErrorCode,
    GENERIC_ERROR_MESSAGE,
    InvalidQueryError,
    RagResponseError,
    RequestCancelledError,
    SafetyViolationError,
)

logger = logging.getLogger(__name__)

INVALID_QUERY_MESSAGE = "Query cannot be empty"
CANCELLED_MESSAGE = "Request was cancelled"


class PipelineState(str, Enum):
    IDLE = "idle"
    SAFETY_CHECK = "safety_check"
    RETRIEVE = "retrieve"
    RERANK = "rerank"
    BUILD_CONTEXT = "build_context"
    BUILD_PROMPT = "build_prompt"
    GENERATE = "generate"
    POST_PROCESS = "post_process"
    DONE = "done"
    ERROR = "error"


class PipelineRun:
    """State of one pipeline invocation"""

    def __init__(self):
        self.state = PipelineState.IDLE
        self.started_at = time.perf_counter()

    def advance(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline {self.state.value} -> {state.value}")
        self.state = state

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self.started_at


class RagOrchestrator:
    """
    Sequential RAG pipeline:
    safety check -> retrieve -> re-rank -> build context -> build prompt/select model
    -> generate -> post-process.

    Every collaborator is injected. Failures of any step end the run; callers only
    ever see a RagResponseError with a user-safe message.
    """

    def __init__(
        self,
        retriever: Retriever,
        llm_client: BaseLLMClient,
        plan_service: BasePlanService,
        reranker: Optional[Reranker] = None,
        context_builder: Optional[ContextBuilder] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        model_selector: Optional[ModelSelector] = None,
        safety_checker: Optional[SafetyChecker] = None,
        post_processor: Optional[ResponsePostProcessor] = None,
        max_candidates: Optional[int] = None,
        request_timeout: Optional[float] = None,
    ):
        self.retriever = retriever
        self.llm_client = llm_client
        self.plan_service = plan_service
        self.reranker = reranker or Reranker()
        self.context_builder = context_builder or ContextBuilder()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.model_selector = model_selector or ModelSelector()
        self.safety_checker = safety_checker or SafetyChecker()
        self.post_processor = post_processor or ResponsePostProcessor()
        self.max_candidates = max_candidates or settings.rag_max_initial_retrieval
        self.request_timeout = settings.rag_request_timeout if request_timeout is None else request_timeout

    async def generate_rag_response(
        self,
        query: str,
        context: Union[ConversationContext, Dict[str, Any], None] = None,
        options: Union[RagOptions, Dict[str, Any], None] = None,
        cancel_event: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> RagResult:
        """
        Generate a grounded response for a chat query.

        Args:
            query: Raw user query
            context: Conversation/page context
            options: Threshold, chunk count, re-ranking toggle, response mode, safety level
            cancel_event: Set to abort the request in flight
            timeout: Deadline in seconds for the whole request (defaults from settings)

        Returns:
            RagResult

        Raises:
            RagResponseError: code is one of invalid_query, safety_check_failed,
                request_cancelled or rag_engine_error
        """
        run = PipelineRun()
        logger.info(f"RAG request received (query length={len(query or '')})")

        try:
            result = await self._run(query, context, options, cancel_event, timeout, run)
        except InvalidQueryError as e:
            raise self._fail(run, ErrorCode.INVALID_QUERY, INVALID_QUERY_MESSAGE) from e
        except SafetyViolationError as e:
            raise self._fail(run, ErrorCode.SAFETY_CHECK_FAILED, SAFETY_VIOLATION_MESSAGE) from e
        except RequestCancelledError as e:
            raise self._fail(run, ErrorCode.REQUEST_CANCELLED, CANCELLED_MESSAGE) from e
        except Exception as e:
            logger.error(f"RAG pipeline failed during {run.state.value}: {e}", exc_info=True)
            raise self._fail(run, ErrorCode.RAG_ENGINE_ERROR, GENERIC_ERROR_MESSAGE) from e

        logger.info(
            f"RAG response generated in {run.elapsed:.3f}s "
            f"(chunks used={result.retrieval_stats.chunks_used}, confidence={result.confidence:.2f})"
        )
        return result

    async def _run(
        self,
        query: str,
        context: Union[ConversationContext, Dict[str, Any], None],
        options: Union[RagOptions, Dict[str, Any], None],
        cancel_event: Optional[asyncio.Event],
        timeout: Optional[float],
        run: PipelineRun,
    ) -> RagResult:
        if not query or not query.strip():
            raise InvalidQueryError(INVALID_QUERY_MESSAGE)

        context = self._coerce_context(context)
        options = self._coerce_options(options)
        scope = CancellationScope(
            timeout=self.request_timeout if timeout is None else timeout,
            cancel_event=cancel_event,
        )

        run.advance(PipelineState.SAFETY_CHECK)
        self.safety_checker.check(query, options.safety_level)
        scope.raise_if_cancelled("retrieval")

        run.advance(PipelineState.RETRIEVE)
        retrieval = await self.retriever.retrieve(
            query,
            context,
            RetrievalOptions(
                similarity_threshold=options.similarity_threshold,
                max_candidates=self.max_candidates,
            ),
            scope,
        )

        run.advance(PipelineState.RERANK)
        if options.enable_reranking and retrieval.chunks:
            final_chunks = self.reranker.rerank(query, retrieval.chunks, context, options.max_chunks)
        else:
            final_chunks = retrieval.chunks[:options.max_chunks]

        run.advance(PipelineState.BUILD_CONTEXT)
        window = self.context_builder.build(query, final_chunks, context.summary(), options.max_chunks)
        used_chunks = final_chunks[:window.metadata.total_chunks]

        run.advance(PipelineState.BUILD_PROMPT)
        plan_tier = await self.plan_service.get_current_plan()
        advanced_ai = await self.plan_service.is_feature_enabled(FEATURE_ADVANCED_AI)
        selection = self.model_selector.select(window, plan_tier, options.response_mode, advanced_ai)
        prompt = self.prompt_builder.build(query, window, context.message_history, options.response_mode)

        run.advance(PipelineState.GENERATE)
        generation = await scope.run(
            self.llm_client.generate_response(
                prompt,
                model=selection.model,
                temperature=selection.temperature,
                max_tokens=selection.max_tokens,
            ),
            "response generation",
        )

        run.advance(PipelineState.POST_PROCESS)
        result = self.post_processor.process(
            generation,
            used_chunks,
            selection,
            response_mode=options.response_mode,
            chunks_considered=len(retrieval.chunks),
            cache_hit=retrieval.cache_hit,
            plan_tier=plan_tier,
        )

        run.advance(PipelineState.DONE)
        return result

    def _fail(self, run: PipelineRun, code: ErrorCode, message: str) -> RagResponseError:
        stage = run.state.value
        run.advance(PipelineState.ERROR)
        if code != ErrorCode.RAG_ENGINE_ERROR:
            logger.info(f"RAG request rejected during {stage}: {code.value}")
        return RagResponseError(code, message, stage=stage)

    @staticmethod
    def _coerce_context(context) -> ConversationContext:
        if context is None:
            return ConversationContext()
        if isinstance(context, ConversationContext):
            return context
        return ConversationContext.model_validate(context)

    @staticmethod
    def _coerce_options(options) -> RagOptions:
        if isinstance(options, RagOptions):
            return options
        defaults = {
            "similarity_threshold": settings.rag_similarity_threshold,
            "max_chunks": settings.rag_max_final_chunks,
        }
        return RagOptions.model_validate({**defaults, **(options or {})})
