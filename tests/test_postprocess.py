"""Tests for response post-processing."""

import pytest

from core.exceptions import PipelineError
from domain.rag.postprocess import (
    ResponsePostProcessor,
    calculate_average_relevance,
    calculate_response_confidence,
    extract_sources_used,
)
from domain.rag.types import GenerationResult, ModelSelection

RESPONSE = "You can return unused items within 30 days of delivery for a full refund to your card."


def scored(chunk, score):
    return chunk.model_copy(update={"rerank_score": score})


class TestConfidence:

    @pytest.mark.parametrize("response", ["", "ok", RESPONSE, "x" * 5000])
    def test_no_chunks_gives_fixed_low_confidence(self, response):
        assert calculate_response_confidence([], response) == 0.3

    def test_several_sources_beat_a_single_comparable_source(self, make_chunk):
        single = [scored(make_chunk(), 0.8)]
        several = [scored(make_chunk(), 0.8), scored(make_chunk(content_type="faq"), 0.8)]

        assert calculate_response_confidence(several, RESPONSE) > calculate_response_confidence(single, RESPONSE)

    def test_three_sources_beat_two(self, make_chunk):
        two = [scored(make_chunk(), 0.7)] * 2
        three = [scored(make_chunk(), 0.7)] * 3
        assert calculate_response_confidence(three, RESPONSE) > calculate_response_confidence(two, RESPONSE)

    def test_bounded_to_unit_interval(self, make_chunk):
        chunks = [scored(make_chunk(), 1.0)] * 5
        assert calculate_response_confidence(chunks, RESPONSE) == 1.0
        assert calculate_response_confidence([scored(make_chunk(), 0.0)], RESPONSE) == 0.0

    def test_empty_response_penalized(self, make_chunk):
        chunks = [scored(make_chunk(), 0.8)] * 2
        assert calculate_response_confidence(chunks, "") < calculate_response_confidence(chunks, RESPONSE)

    def test_implausible_length_penalized(self, make_chunk):
        chunks = [scored(make_chunk(), 0.8)] * 2
        normal = calculate_response_confidence(chunks, RESPONSE)
        assert calculate_response_confidence(chunks, "Yes.") < normal
        assert calculate_response_confidence(chunks, "word " * 1000) < normal


def test_average_relevance(make_chunk):
    assert calculate_average_relevance([]) == 0.0
    chunks = [scored(make_chunk(), 0.6), make_chunk(similarity_score=0.8)]
    assert calculate_average_relevance(chunks) == pytest.approx(0.7)


def test_sources_use_rerank_then_similarity(make_chunk):
    chunks = [scored(make_chunk(similarity_score=0.9), 0.65), make_chunk(content_type="faq", similarity_score=0.75, source_url="")]

    sources = extract_sources_used(chunks)

    assert [s.relevance for s in sources] == [0.65, 0.75]
    assert sources[0].type == "policy"
    assert sources[0].title == "Return Policy"
    assert sources[0].url == "https://shop.example.com/returns"
    assert sources[1].url is None


def test_process_builds_complete_result(make_chunk):
    chunks = [scored(make_chunk(), 0.8), scored(make_chunk(content_type="faq"), 0.6)]
    selection = ModelSelection(model="standard-model", temperature=0.5, max_tokens=400)
    generation = GenerationResult(response=f"  {RESPONSE}  ", model="standard-model", generation_time=1.5)

    result = ResponsePostProcessor().process(
        generation, chunks, selection, "standard", chunks_considered=5, cache_hit=True, plan_tier="pro"
    )

    assert result.response == RESPONSE
    assert result.safety_passed is True
    assert len(result.sources_used) == 2
    assert result.retrieval_stats.chunks_used == 2
    assert result.retrieval_stats.chunks_considered == 5
    assert result.retrieval_stats.average_relevance == pytest.approx(0.7)
    assert result.retrieval_stats.content_types == ["policy", "faq"]
    assert result.retrieval_stats.cache_hit is True
    assert result.response_metadata.model_used == "standard-model"
    assert result.response_metadata.generation_time == 1.5
    assert result.response_metadata.plan_tier == "pro"
    assert 0.0 <= result.confidence <= 1.0


def test_process_without_chunks(make_chunk):
    selection = ModelSelection(model="economy-model", temperature=0.5, max_tokens=400)
    generation = GenerationResult(response=RESPONSE, model="", generation_time=0.1)

    result = ResponsePostProcessor().process(generation, [], selection, "standard", chunks_considered=0)

    assert result.sources_used == []
    assert result.retrieval_stats.chunks_used == 0
    assert result.retrieval_stats.average_relevance == 0.0
    assert result.confidence == 0.3
    assert result.response_metadata.model_used == "economy-model"


def test_invalid_result_raises_pipeline_error():
    selection = ModelSelection(model="economy-model", temperature=0.5, max_tokens=400)
    generation = GenerationResult(response=RESPONSE, model="economy-model")

    with pytest.raises(PipelineError):
        ResponsePostProcessor().process(generation, [], selection, "standard", chunks_considered="several")
