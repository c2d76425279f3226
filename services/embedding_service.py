# DEPENDENCIES
import sys
import time
import asyncio
import hashlib
import numpy as np
from typing import Any
from typing import Dict
from typing import List
from pathlib import Path
from typing import Optional
from typing import Sequence
from dataclasses import field
from dataclasses import dataclass

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from utils.logger import log_error
from utils.logger import log_warning
from config.settings import settings
from config.model_config import ModelConfig
from utils.text_processor import TextProcessor
from config.playbook_rules import PlaybookRules
from services.data_models import SimilarityHit
from services.data_models import EmbeddingPriority
from model_manager.model_cache import EmbeddingDiskCache
from services.exceptions import EmbeddingUnavailableError
from model_manager.embedding_backends import EmbeddingBackend
from model_manager.embedding_backends import create_embedding_backend


@dataclass
class _MemoryEntry:
    vector     : np.ndarray
    created_at : float
    hits       : int = 0


@dataclass
class _PendingRequest:
    rank     : int
    sequence : int
    key      : str
    text     : str
    future   : asyncio.Future = field(repr = False)


class SemanticEmbeddingService:
    """
    Embedding and similarity service with a two tier cache and a batching queue

    Lookup order for every text: in-process memory map, then the persistent disk store,
    then the model. Model work is queued and flushed when the batch fills up or after
    a short timeout; HIGH priority requests skip the queue
    """
    def __init__(self, backend: Optional[EmbeddingBackend] = None, disk_cache: Optional[EmbeddingDiskCache] = None, use_disk_cache: bool = None,
                 batch_size: Optional[int] = None, batch_timeout: Optional[float] = None, model_timeout: Optional[float] = None,
                 memory_cache_limit: Optional[int] = None, cache_ttl: Optional[int] = None):
        """
        Initialize the embedding service

        Arguments:
        ----------
            backend            : EmbeddingBackend strategy (defaults to settings.EMBEDDING_BACKEND)

            disk_cache         : Persistent tier; built from settings when omitted and enabled

            use_disk_cache     : Enable the persistent tier (defaults to settings.ENABLE_CACHE)

            batch_size         : Queue flush size

            batch_timeout      : Seconds before a partial batch is flushed

            model_timeout      : Seconds allowed per model call

            memory_cache_limit : Entry count that triggers memory eviction

            cache_ttl          : Seconds a cached vector stays valid (defaults to settings.EMBEDDING_CACHE_TTL)
        """
        config                  = ModelConfig.EMBEDDING_MODEL
        use_disk_cache          = settings.ENABLE_CACHE if (use_disk_cache is None) else use_disk_cache

        self.backend            = backend or create_embedding_backend(settings.EMBEDDING_BACKEND)
        self.disk_cache         = disk_cache

        if ((self.disk_cache is None) and use_disk_cache):
            self.disk_cache = EmbeddingDiskCache(cache_dir   = settings.embedding_cache_dir,
                                                 ttl_seconds = settings.EMBEDDING_CACHE_TTL,
                                                )
            self.disk_cache.clear_expired()

        self.batch_size         = batch_size or config["batch_size"]
        self.batch_timeout      = config["batch_timeout"] if (batch_timeout is None) else batch_timeout
        self.model_timeout      = model_timeout or settings.EMBEDDING_TIMEOUT
        self.memory_cache_limit = memory_cache_limit or config["memory_cache_limit"]
        self.cache_ttl          = settings.EMBEDDING_CACHE_TTL if (cache_ttl is None) else cache_ttl
        self.retain_fraction    = config["retain_fraction"]
        self.max_text_length    = config["max_text_length"]

        self._memory            : Dict[str, _MemoryEntry] = dict()

        # Queue state belongs to one event loop and is rebound when the loop changes
        self._loop              = None
        self._queue_lock        = None
        self._queue             : List[_PendingRequest]   = list()
        self._sequence          = 0
        self._flush_handle      = None
        self._flush_tasks       = set()

        self._stats             = {"total_requests"        : 0,
                                   "memory_hits"           : 0,
                                   "memory_expired"        : 0,
                                   "disk_hits"             : 0,
                                   "model_computations"    : 0,
                                   "batches_flushed"       : 0,
                                   "immediate_batches"     : 0,
                                   "evictions"             : 0,
                                   "model_failures"        : 0,
                                   "total_processing_time" : 0.0,
                                  }

        log_info("SemanticEmbeddingService initialized",
                 model_version  = self.model_version,
                 batch_size     = self.batch_size,
                 batch_timeout  = self.batch_timeout,
                 disk_cache     = self.disk_cache is not None,
                )


    @property
    def model_version(self) -> str:
        return self.backend.model_version


    def normalize_text(self, text: str) -> str:
        return TextProcessor.normalize_for_embedding(text, max_length = self.max_text_length)


    def cache_key(self, normalized_text: str) -> str:
        """
        Content address of a normalized text under the current model version
        """
        return hashlib.md5((normalized_text + self.model_version).encode("utf-8")).hexdigest()


    async def embed(self, texts: Sequence[str], priority: EmbeddingPriority = EmbeddingPriority.NORMAL) -> List[np.ndarray]:
        """
        Vectors for texts, in input order

        Arguments:
        ----------
            texts    { list }              : Raw texts

            priority { EmbeddingPriority } : HIGH computes immediately, others go through the batch queue

        Returns:
        --------
                     { list }              : One read-only float32 vector per text; the same normalized
                                             text always maps to the same cached vector

        Raises:
        -------
            EmbeddingUnavailableError      : Model failure or timeout
        """
        start_time = time.perf_counter()
        texts      = list(texts)
        keys       = list()
        misses     = dict()
        resolved   = dict()

        self._stats["total_requests"] += len(texts)

        for text in texts:
            normalized = self.normalize_text(text)
            key        = self.cache_key(normalized)
            keys.append(key)

            if ((key in misses) or (key in resolved)):
                continue

            cached = self._lookup_cached(key)

            if cached is None:
                misses[key] = normalized

            else:
                resolved[key] = cached

        if misses:
            if (priority == EmbeddingPriority.HIGH):
                computed = await self._compute_now(misses)

            else:
                computed = await self._enqueue(misses, priority)

            for key, vector in computed.items():
                resolved[key] = self._store(key, vector)

        vectors = [resolved[key] for key in keys]

        self._stats["total_processing_time"] += time.perf_counter() - start_time

        return vectors


    def _lookup_cached(self, key: str) -> Optional[np.ndarray]:
        entry = self._memory.get(key)

        if ((entry is not None) and self._is_expired(entry)):
            del self._memory[key]
            self._stats["memory_expired"] += 1
            entry = None

        if entry is not None:
            entry.hits += 1
            self._stats["memory_hits"] += 1
            return entry.vector

        if self.disk_cache is None:
            return None

        vector = self.disk_cache.get(key)

        if vector is None:
            return None

        self._stats["disk_hits"] += 1

        return self._remember(key, vector, hits = 1)


    def _store(self, key: str, vector: np.ndarray) -> np.ndarray:
        entry = self._memory.get(key)

        if ((entry is not None) and not self._is_expired(entry)):
            return entry.vector

        frozen = self._remember(key, vector)

        if self.disk_cache is not None:
            self.disk_cache.put(key, frozen)

        return frozen


    def _remember(self, key: str, vector: np.ndarray, hits: int = 0) -> np.ndarray:
        frozen = np.array(vector, dtype = np.float32, copy = True)
        frozen.setflags(write = False)

        self._memory[key] = _MemoryEntry(vector = frozen, created_at = time.time(), hits = hits)

        if (len(self._memory) > self.memory_cache_limit):
            self._evict(protected_key = key)

        return frozen


    def _is_expired(self, entry: _MemoryEntry) -> bool:
        return (time.time() - entry.created_at) > self.cache_ttl


    def _evict(self, protected_key: Optional[str] = None):
        """
        Keep the most frequently hit share of entries, drop the rest

        Ties on hits go to the newer entry; protected_key (the entry just stored) is always kept
        """
        keep_count = max(int(len(self._memory) * self.retain_fraction), 1)
        ranked     = sorted(self._memory.items(), key = lambda item: (item[0] == protected_key, item[1].hits, item[1].created_at), reverse = True)
        dropped    = len(ranked) - keep_count

        self._memory = dict(ranked[:keep_count])
        self._stats["evictions"] += dropped

        log_info("Embedding memory cache evicted", dropped = dropped, retained = keep_count)


    async def _compute(self, texts: List[str]) -> np.ndarray:
        """
        Run the backend in a worker thread under a timeout
        """
        try:
            vectors = await asyncio.wait_for(asyncio.to_thread(self.backend.encode, texts), timeout = self.model_timeout)

        except asyncio.TimeoutError as e:
            self._stats["model_failures"] += 1
            log_error(e, context = {"component" : "SemanticEmbeddingService", "operation" : "compute", "reason" : "timeout", "batch_size" : len(texts)})

            raise EmbeddingUnavailableError(f"Embedding model timed out after {self.model_timeout}s") from e

        except Exception as e:
            self._stats["model_failures"] += 1
            log_error(e, context = {"component" : "SemanticEmbeddingService", "operation" : "compute", "batch_size" : len(texts)})

            raise EmbeddingUnavailableError(f"Embedding model failed: {e}") from e

        vectors = np.asarray(vectors, dtype = np.float32)

        if ((vectors.ndim != 2) or (vectors.shape[0] != len(texts))):
            self._stats["model_failures"] += 1
            raise EmbeddingUnavailableError(f"Embedding model returned shape {vectors.shape} for {len(texts)} texts")

        self._stats["model_computations"] += len(texts)

        return vectors


    async def _compute_now(self, misses: Dict[str, str]) -> Dict[str, np.ndarray]:
        keys    = list(misses.keys())
        vectors = await self._compute([misses[key] for key in keys])

        self._stats["immediate_batches"] += 1

        return dict(zip(keys, vectors))


    def _ensure_loop_state(self):
        loop = asyncio.get_running_loop()

        if loop is not self._loop:
            self._loop         = loop
            self._queue_lock   = asyncio.Lock()
            self._queue        = list()
            self._flush_handle = None
            self._flush_tasks  = set()


    async def _enqueue(self, misses: Dict[str, str], priority: EmbeddingPriority) -> Dict[str, np.ndarray]:
        self._ensure_loop_state()

        futures = dict()

        async with self._queue_lock:
            for key, text in misses.items():
                self._sequence += 1
                future          = self._loop.create_future()
                futures[key]    = future

                self._queue.append(_PendingRequest(rank     = priority.rank,
                                                   sequence = self._sequence,
                                                   key      = key,
                                                   text     = text,
                                                   future   = future,
                                                  ))

            batch_ready = (len(self._queue) >= self.batch_size)

            if not batch_ready:
                self._arm_timer()

        if batch_ready:
            await self._flush()

        results = await asyncio.gather(*futures.values(), return_exceptions = True)

        for result in results:
            if isinstance(result, BaseException):
                raise result

        return dict(zip(futures.keys(), results))


    def _arm_timer(self):
        # Caller holds the queue lock
        if (self._flush_handle is None) and self._queue:
            self._flush_handle = self._loop.call_later(self.batch_timeout, self._on_timer)


    def _on_timer(self):
        self._flush_handle = None
        task               = self._loop.create_task(self._flush())

        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)


    async def _flush(self):
        """
        Drain the queue batch by batch; each batch is taken off the queue under the lock
        so no request is ever flushed twice
        """
        while True:
            async with self._queue_lock:
                if not self._queue:
                    return

                self._queue.sort(key = lambda request: (request.rank, request.sequence))

                batch       = self._queue[:self.batch_size]
                self._queue = self._queue[self.batch_size:]
                more_ready  = (len(self._queue) >= self.batch_size)

                if (not self._queue) and (self._flush_handle is not None):
                    self._flush_handle.cancel()
                    self._flush_handle = None

            await self._resolve_batch(batch)

            if not more_ready:
                async with self._queue_lock:
                    self._arm_timer()
                return


    async def _resolve_batch(self, batch: List[_PendingRequest]):
        unique = dict()

        for request in batch:
            unique.setdefault(request.key, request.text)

        self._stats["batches_flushed"] += 1

        try:
            vectors = await self._compute(list(unique.values()))

        except EmbeddingUnavailableError as e:
            for request in batch:
                if not request.future.done():
                    request.future.set_exception(e)
            return

        by_key = dict(zip(unique.keys(), vectors))

        for request in batch:
            if not request.future.done():
                request.future.set_result(by_key[request.key])


    @staticmethod
    def similarity(vector_a: Any, vector_b: Any) -> float:
        """
        Cosine similarity in [-1, 1]; 0.0 for zero-magnitude or incompatible vectors
        """
        try:
            a      = np.asarray(vector_a, dtype = np.float64).ravel()
            b      = np.asarray(vector_b, dtype = np.float64).ravel()

            if (a.shape != b.shape) or (a.size == 0):
                return 0.0

            norm_a = float(np.linalg.norm(a))
            norm_b = float(np.linalg.norm(b))

            if (norm_a == 0.0) or (norm_b == 0.0):
                return 0.0

            score  = float(np.dot(a, b) / (norm_a * norm_b))

        except (TypeError, ValueError):
            return 0.0

        if (score != score):
            return 0.0

        return max(-1.0, min(1.0, score))


    async def compute_similarity(self, text_a: str, text_b: str, priority: EmbeddingPriority = EmbeddingPriority.NORMAL) -> float:
        vector_a, vector_b = await self.embed([text_a, text_b], priority = priority)

        return self.similarity(vector_a, vector_b)


    async def find_most_similar(self, query: str, corpus: Sequence[str], top_k: int = 5, threshold: float = 0.5,
                                priority: EmbeddingPriority = EmbeddingPriority.NORMAL) -> List[SimilarityHit]:
        """
        Rank corpus entries by similarity to query

        Returns:
        --------
            { list } : SimilarityHit entries with similarity >= threshold, best first, at most top_k
        """
        corpus = list(corpus)

        if not corpus:
            return list()

        vectors = await self.embed([query] + corpus, priority = priority)
        query_v = vectors[0]
        hits    = list()

        for index, (text, vector) in enumerate(zip(corpus, vectors[1:])):
            score = self.similarity(query_v, vector)

            if (score >= threshold):
                hits.append(SimilarityHit(index = index, text = text, similarity = score))

        hits.sort(key = lambda hit: hit.similarity, reverse = True)

        return hits[:top_k]


    async def warmup(self, texts: Optional[Sequence[str]] = None) -> int:
        """
        Pre-compute embeddings for frequently used reference texts

        Returns:
        --------
            { int } : Number of texts warmed, 0 when the model is unavailable
        """
        if texts is None:
            texts = [clause["exemplar_text"] for clause in PlaybookRules.get_clause_types()]
            texts += [rule["example_language"] for rule in PlaybookRules.RULES if rule.get("example_language")]

        try:
            await self.embed(texts, priority = EmbeddingPriority.LOW)

        except EmbeddingUnavailableError as e:
            log_warning("Embedding warmup skipped", reason = str(e))
            return 0

        log_info("Embedding cache warmed", texts = len(texts))

        return len(texts)


    def clear_memory_cache(self) -> int:
        count        = len(self._memory)
        self._memory = dict()

        return count


    def get_stats(self) -> Dict[str, Any]:
        requests   = self._stats["total_requests"]
        hits       = self._stats["memory_hits"] + self._stats["disk_hits"]
        batches    = self._stats["batches_flushed"] + self._stats["immediate_batches"]
        efficiency = (self._stats["model_computations"] / (batches * self.batch_size)) if batches else 0.0

        return {"model_version"           : self.model_version,
                "total_requests"          : requests,
                "cache_hits"              : hits,
                "memory_hits"             : self._stats["memory_hits"],
                "disk_hits"               : self._stats["disk_hits"],
                "cache_hit_rate"          : round(hits / requests, 4) if requests else 0.0,
                "model_computations"      : self._stats["model_computations"],
                "model_failures"          : self._stats["model_failures"],
                "batches_flushed"         : self._stats["batches_flushed"],
                "immediate_batches"       : self._stats["immediate_batches"],
                "batch_efficiency"        : round(min(1.0, efficiency), 4),
                "avg_processing_time"     : round(self._stats["total_processing_time"] / requests, 6) if requests else 0.0,
                "memory_cache_size"       : len(self._memory),
                "evictions"               : self._stats["evictions"],
                "memory_expired"          : self._stats["memory_expired"],
                "model_load_time_seconds" : round(self.backend.load_seconds(), 3),
                "disk_cache"              : self.disk_cache.get_stats() if self.disk_cache else None,
               }
