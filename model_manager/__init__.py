# DEPENDENCIES
from .llm_manager import LLMManager
from .llm_manager import LLMProvider
from .llm_manager import LLMResponse
from .model_registry import ModelInfo
from .model_registry import ModelType
from .model_loader import ModelLoader
from .model_registry import ModelStatus
from .model_registry import ModelRegistry
from .model_cache import EmbeddingDiskCache
from .embedding_backends import EmbeddingBackend
from .embedding_backends import HashingEmbeddingBackend
from .embedding_backends import create_embedding_backend
from .embedding_backends import SentenceTransformerBackend


__all__ = ['ModelInfo',
           'ModelType',
           'LLMManager',
           'ModelStatus',
           'ModelLoader',
           'LLMProvider',
           'LLMResponse',
           'ModelRegistry',
           'EmbeddingBackend',
           'EmbeddingDiskCache',
           'HashingEmbeddingBackend',
           'create_embedding_backend',
           'SentenceTransformerBackend',
          ]
