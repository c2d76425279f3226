import os
import random
import tempfile
from pathlib import Path

# Isolate settings, logs and caches before any project module is imported
_TEST_HOME = Path(tempfile.mkdtemp(prefix = "clause-engine-tests-"))

os.environ.setdefault("EMBEDDING_BACKEND", "hashing")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("CACHE_DIR", str(_TEST_HOME / "cache"))
os.environ.setdefault("LOG_DIR", str(_TEST_HOME / "logs"))
os.environ.setdefault("CLAUSE_ENGINE_LOG_DIR", str(_TEST_HOME / "logs"))

import pytest

from database import DatabaseManager
from database import SQLRuleRepository
from database import SQLFeedbackRepository
from database import FeatureWeightsRepository
from model_manager import EmbeddingDiskCache
from model_manager import HashingEmbeddingBackend
from services import StaticRuleProvider
from services import HierarchicalRuleStore
from services import ClauseAnalysisEngine
from services import FeatureWeightsRegistry
from services import SemanticEmbeddingService
from services.exceptions import TextGenerationError


GOVERNING_LAW_TEXT = ("This Agreement shall be governed by the laws of Singapore with disputes "
                      "resolved via SIAC arbitration.")

UNRELATED_TEXT     = "Lunch is served at noon every Tuesday in our cafeteria near a lobby."


class StubGenerator:
    """Text generator double that records prompts."""

    def __init__(self, reply: str = "Suggested clause language."):
        self.reply   = reply
        self.prompts = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


class FailingGenerator:
    """Text generator double that always fails."""

    def __init__(self):
        self.calls = 0

    def generate(self, prompt: str) -> str:
        self.calls += 1
        raise TextGenerationError("generation backend offline")


class FailingBackend(HashingEmbeddingBackend):
    """Embedding backend whose model call always raises."""

    def encode(self, texts):
        raise RuntimeError("model crashed")


class RecordingStore:
    """Analysis result store double."""

    def __init__(self):
        self.saved = []

    def save_analysis(self, analysis):
        self.saved.append(analysis)


@pytest.fixture
def hashing_backend() -> HashingEmbeddingBackend:
    return HashingEmbeddingBackend()


@pytest.fixture
def disk_cache(tmp_path: Path) -> EmbeddingDiskCache:
    return EmbeddingDiskCache(cache_dir = tmp_path / "embeddings", ttl_seconds = 3600)


@pytest.fixture
def embedding_service(hashing_backend, disk_cache) -> SemanticEmbeddingService:
    return SemanticEmbeddingService(backend = hashing_backend, disk_cache = disk_cache, batch_timeout = 0.01)


@pytest.fixture
def memory_embedding_service(hashing_backend) -> SemanticEmbeddingService:
    return SemanticEmbeddingService(backend = hashing_backend, use_disk_cache = False, batch_timeout = 0.01)


@pytest.fixture
def rule_store() -> HierarchicalRuleStore:
    return HierarchicalRuleStore(provider = StaticRuleProvider())


@pytest.fixture
def weights_registry() -> FeatureWeightsRegistry:
    return FeatureWeightsRegistry()


@pytest.fixture
def engine(rule_store, memory_embedding_service, weights_registry) -> ClauseAnalysisEngine:
    return ClauseAnalysisEngine(rule_store        = rule_store,
                                embedding_service = memory_embedding_service,
                                weights_registry  = weights_registry,
                                rng               = random.Random(7),
                               )


@pytest.fixture
def database():
    db = DatabaseManager(database_url = "sqlite:///:memory:")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def seeded_rules(database) -> SQLRuleRepository:
    repository = SQLRuleRepository(database)
    repository.seed_playbook()
    return repository


@pytest.fixture
def feedback_repository(database) -> SQLFeedbackRepository:
    return SQLFeedbackRepository(database)


@pytest.fixture
def weights_repository(database) -> FeatureWeightsRepository:
    return FeatureWeightsRepository(database)
