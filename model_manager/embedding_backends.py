# DEPENDENCIES
import re
import sys
import hashlib
import numpy as np
from typing import List
from pathlib import Path
from typing import Optional

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from config.model_config import ModelConfig
from model_manager.model_loader import ModelLoader


class EmbeddingBackend:
    """
    Strategy interface for turning texts into fixed-length vectors

    encode() is synchronous and may block; the embedding service runs it in a worker thread
    """
    model_version : str = "unknown"
    dimension     : int = 0

    def encode(self, texts: List[str]) -> np.ndarray:
        raise NotImplementedError

    def load_seconds(self) -> float:
        return 0.0


class SentenceTransformerBackend(EmbeddingBackend):
    """
    Legal-BERT sentence embeddings through sentence-transformers
    """
    def __init__(self, loader: Optional[ModelLoader] = None, batch_size: Optional[int] = None):
        config             = ModelConfig.EMBEDDING_MODEL

        self.loader        = loader or ModelLoader()
        self.model_version = config["model_version"]
        self.dimension     = config["dimension"]
        self.batch_size    = batch_size or config["batch_size"]
        self.normalize     = config["normalize"]


    def encode(self, texts: List[str]) -> np.ndarray:
        model   = self.loader.load_embedding_model()
        vectors = model.encode(texts,
                               batch_size           = self.batch_size,
                               convert_to_numpy     = True,
                               normalize_embeddings = self.normalize,
                               show_progress_bar    = False,
                              )

        return np.asarray(vectors, dtype = np.float32)


    def load_seconds(self) -> float:
        return self.loader.get_load_seconds()


class HashingEmbeddingBackend(EmbeddingBackend):
    """
    Deterministic feature-hashing embeddings (word unigrams and bigrams, signed buckets)

    No model download; texts sharing vocabulary get high cosine similarity, which keeps
    semantic stages meaningful in tests and offline runs
    """
    TOKEN_PATTERN = re.compile(r"[a-z0-9]+")

    def __init__(self, dimension: Optional[int] = None, model_version: Optional[str] = None):
        config             = ModelConfig.HASHING_EMBEDDING

        self.dimension     = dimension or config["dimension"]
        self.model_version = model_version or config["model_version"]
        self.ngram_range   = config["ngram_range"]


    def _features(self, text: str) -> List[str]:
        tokens   = self.TOKEN_PATTERN.findall(text.lower())
        features = list()

        for n in range(self.ngram_range[0], self.ngram_range[1] + 1):
            features.extend(" ".join(tokens[i:i + n]) for i in range(len(tokens) - n + 1))

        return features


    def _embed_one(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype = np.float32)

        for feature in self._features(text):
            digest  = hashlib.md5(feature.encode("utf-8")).digest()
            bucket  = int.from_bytes(digest[:4], "little") % self.dimension
            sign    = 1.0 if (digest[4] & 1) else -1.0
            vector[bucket] += sign

        norm = float(np.linalg.norm(vector))

        return (vector / norm) if (norm > 0) else vector


    def encode(self, texts: List[str]) -> np.ndarray:
        if not texts:
            return np.zeros((0, self.dimension), dtype = np.float32)

        return np.vstack([self._embed_one(text) for text in texts]).astype(np.float32)


def create_embedding_backend(name: str) -> EmbeddingBackend:
    """
    Backend factory keyed by the EMBEDDING_BACKEND setting
    """
    if (name == "hashing"):
        backend = HashingEmbeddingBackend()

    elif (name in ("sentence-transformers", "sentence_transformers")):
        backend = SentenceTransformerBackend()

    else:
        raise ValueError(f"Unknown embedding backend: {name}")

    log_info("Embedding backend selected", backend = name, model_version = backend.model_version)

    return backend
