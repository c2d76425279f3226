"""
Tests for the embedding service: content-addressed caching, batching, similarity and failures.
"""

import os
import time
import asyncio

import numpy as np
import pytest

from conftest import FailingBackend
from model_manager import HashingEmbeddingBackend
from services import SemanticEmbeddingService
from services.data_models import EmbeddingPriority
from services.exceptions import EmbeddingUnavailableError


class SlowBackend(HashingEmbeddingBackend):
    def encode(self, texts):
        time.sleep(0.3)
        return super().encode(texts)


class CountingBackend(HashingEmbeddingBackend):
    def __init__(self):
        super().__init__()
        self.batches = []

    def encode(self, texts):
        self.batches.append(list(texts))
        return super().encode(texts)


class TestCaching:
    """Repeated texts are served from the cache with identical vectors."""

    def test_second_call_is_cache_hit_and_bit_identical(self, embedding_service):
        first  = asyncio.run(embedding_service.embed(["Governing law clause"]))[0]
        second = asyncio.run(embedding_service.embed(["Governing law clause"]))[0]

        stats = embedding_service.get_stats()
        assert stats["model_computations"] == 1
        assert stats["memory_hits"] == 1
        assert np.array_equal(first, second)
        assert first.tobytes() == second.tobytes()

    def test_expired_disk_entries_are_pruned(self, disk_cache):
        disk_cache.put("stale", np.ones(4, dtype = np.float32))
        disk_cache.put("fresh", np.ones(4, dtype = np.float32))

        stale_path = disk_cache.cache_dir / "stale.npy"
        old        = time.time() - 2 * disk_cache.ttl_seconds
        os.utime(stale_path, (old, old))

        assert disk_cache.get("stale") is None
        assert disk_cache.clear_expired() == 1
        assert not stale_path.exists()
        assert disk_cache.get("fresh") is not None

    def test_returned_vectors_are_read_only(self, embedding_service):
        vector = asyncio.run(embedding_service.embed(["Confidential information"]))[0]

        assert vector.dtype == np.float32
        assert not vector.flags.writeable
        with pytest.raises(ValueError):
            vector[0] = 1.0

    def test_normalization_maps_variants_to_one_entry(self, memory_embedding_service):
        vectors = asyncio.run(memory_embedding_service.embed(["Governing   LAW!!", "governing law"]))

        assert np.array_equal(vectors[0], vectors[1])
        assert memory_embedding_service.get_stats()["model_computations"] == 1

    def test_cache_key_depends_on_model_version(self, hashing_backend):
        other     = HashingEmbeddingBackend(model_version = "hashing-v2")
        service_a = SemanticEmbeddingService(backend = hashing_backend, use_disk_cache = False)
        service_b = SemanticEmbeddingService(backend = other, use_disk_cache = False)

        assert service_a.cache_key("term") != service_b.cache_key("term")

    def test_disk_cache_survives_a_new_service(self, hashing_backend, disk_cache):
        first_service  = SemanticEmbeddingService(backend = hashing_backend, disk_cache = disk_cache)
        first          = asyncio.run(first_service.embed(["Trade secrets survive termination"]))[0]

        second_service = SemanticEmbeddingService(backend = FailingBackend(), disk_cache = disk_cache)
        second         = asyncio.run(second_service.embed(["Trade secrets survive termination"]))[0]

        assert second_service.get_stats()["disk_hits"] == 1
        assert first.tobytes() == second.tobytes()

    def test_memory_eviction_keeps_results_complete(self, hashing_backend):
        service = SemanticEmbeddingService(backend = hashing_backend, use_disk_cache = False, memory_cache_limit = 4)
        texts   = [f"clause number {index}" for index in range(6)]

        vectors = asyncio.run(service.embed(texts, priority = EmbeddingPriority.HIGH))
        stats   = service.get_stats()

        assert len(vectors) == 6
        assert stats["memory_cache_size"] <= 4
        assert stats["evictions"] == 2

    def test_expired_memory_entries_are_recomputed(self, hashing_backend):
        service = SemanticEmbeddingService(backend = hashing_backend, use_disk_cache = False, cache_ttl = 3600)
        asyncio.run(service.embed(["Governing law clause"], priority = EmbeddingPriority.HIGH))

        for entry in service._memory.values():
            entry.created_at -= 2 * 3600

        asyncio.run(service.embed(["Governing law clause"], priority = EmbeddingPriority.HIGH))
        stats = service.get_stats()

        assert stats["model_computations"] == 2
        assert stats["memory_expired"] == 1
        assert stats["memory_hits"] == 0
        assert stats["memory_cache_size"] == 1

    def test_new_entry_survives_eviction(self, hashing_backend):
        service = SemanticEmbeddingService(backend = hashing_backend, use_disk_cache = False, memory_cache_limit = 4)
        texts   = [f"clause number {index}" for index in range(4)]

        asyncio.run(service.embed(texts, priority = EmbeddingPriority.HIGH))
        asyncio.run(service.embed(texts, priority = EmbeddingPriority.HIGH))
        asyncio.run(service.embed(["fresh clause"], priority = EmbeddingPriority.HIGH))
        asyncio.run(service.embed(["fresh clause"], priority = EmbeddingPriority.HIGH))
        stats   = service.get_stats()

        assert stats["evictions"] == 1
        assert stats["model_computations"] == 5
        assert stats["memory_hits"] == 5

    def test_clear_memory_cache(self, memory_embedding_service):
        asyncio.run(memory_embedding_service.embed(["one", "two"]))

        assert memory_embedding_service.clear_memory_cache() == 2
        assert memory_embedding_service.get_stats()["memory_cache_size"] == 0


class TestBatching:
    """Priority handling and queue flushing."""

    def test_high_priority_bypasses_queue(self, memory_embedding_service):
        asyncio.run(memory_embedding_service.embed(["urgent text"], priority = EmbeddingPriority.HIGH))

        stats = memory_embedding_service.get_stats()
        assert stats["immediate_batches"] == 1
        assert stats["batches_flushed"] == 0

    def test_concurrent_requests_share_batches(self):
        backend = CountingBackend()
        service = SemanticEmbeddingService(backend = backend, use_disk_cache = False, batch_size = 4, batch_timeout = 0.05)

        async def scenario():
            return await asyncio.gather(service.embed(["alpha"]),
                                        service.embed(["beta", "gamma"]),
                                        service.embed(["alpha", "delta"]),
                                       )

        results = asyncio.run(scenario())

        assert [len(result) for result in results] == [1, 2, 2]
        assert np.array_equal(results[0][0], results[2][0])
        assert service.get_stats()["batches_flushed"] >= 1
        assert sum(len(batch) for batch in backend.batches) == 4

    def test_service_works_across_event_loops(self, memory_embedding_service):
        first  = asyncio.run(memory_embedding_service.embed(["loop one"]))
        second = asyncio.run(memory_embedding_service.embed(["loop two"]))

        assert len(first) == len(second) == 1


class TestSimilarity:
    """Cosine similarity bounds and ranking."""

    def test_self_similarity_is_one(self, memory_embedding_service):
        vector = asyncio.run(memory_embedding_service.embed(["governed by the laws of England"]))[0]

        assert SemanticEmbeddingService.similarity(vector, vector) == pytest.approx(1.0, abs = 1e-6)

    @pytest.mark.parametrize("vector_a, vector_b", [([0.0, 0.0], [1.0, 2.0]),
                                                    ([1.0, 2.0, 3.0], [1.0, 2.0]),
                                                    ([float("nan"), 1.0], [1.0, 1.0]),
                                                    ([], []),
                                                   ])
    def test_degenerate_vectors_score_zero(self, vector_a, vector_b):
        assert SemanticEmbeddingService.similarity(vector_a, vector_b) == 0.0

    def test_similarity_is_bounded(self):
        assert SemanticEmbeddingService.similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
        assert -1.0 <= SemanticEmbeddingService.similarity([3.0, 4.0], [4.0, 3.0]) <= 1.0

    def test_compute_similarity_prefers_shared_vocabulary(self, memory_embedding_service):
        close = asyncio.run(memory_embedding_service.compute_similarity("governed by the laws of Singapore",
                                                                        "governed by the laws of England"))
        far   = asyncio.run(memory_embedding_service.compute_similarity("governed by the laws of Singapore",
                                                                        "lunch menu for tuesday"))

        assert close > far

    def test_find_most_similar_orders_and_filters(self, memory_embedding_service):
        corpus = ["disputes resolved by arbitration in Singapore",
                  "the cafeteria opens at noon",
                  "arbitration in Singapore under SIAC rules",
                 ]

        hits = asyncio.run(memory_embedding_service.find_most_similar("SIAC arbitration in Singapore", corpus, top_k = 2, threshold = 0.1))

        assert 1 <= len(hits) <= 2
        assert hits[0].index in (0, 2)
        assert all(hit.similarity >= 0.1 for hit in hits)
        assert hits == sorted(hits, key = lambda hit: hit.similarity, reverse = True)

    def test_find_most_similar_empty_corpus(self, memory_embedding_service):
        assert asyncio.run(memory_embedding_service.find_most_similar("anything", [])) == []


class TestFailures:
    """Model failures surface as EmbeddingUnavailableError."""

    def test_backend_error_raises_unavailable(self):
        service = SemanticEmbeddingService(backend = FailingBackend(), use_disk_cache = False, batch_timeout = 0.01)

        with pytest.raises(EmbeddingUnavailableError):
            asyncio.run(service.embed(["text"]))

        assert service.get_stats()["model_failures"] == 1

    def test_timeout_raises_unavailable(self):
        service = SemanticEmbeddingService(backend = SlowBackend(), use_disk_cache = False, model_timeout = 0.05)

        with pytest.raises(EmbeddingUnavailableError):
            asyncio.run(service.embed(["slow text"], priority = EmbeddingPriority.HIGH))

    def test_warmup_counts_texts_and_tolerates_failure(self, memory_embedding_service):
        assert asyncio.run(memory_embedding_service.warmup(["a clause", "another clause"])) == 2

        failing = SemanticEmbeddingService(backend = FailingBackend(), use_disk_cache = False, batch_timeout = 0.01)
        assert asyncio.run(failing.warmup(["a clause"])) == 0

    def test_default_warmup_uses_playbook_texts(self, memory_embedding_service):
        warmed = asyncio.run(memory_embedding_service.warmup())

        assert warmed > 3
        assert memory_embedding_service.get_stats()["memory_cache_size"] > 0
