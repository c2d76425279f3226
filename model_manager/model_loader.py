# DEPENDENCIES
import sys
import time
import torch
from pathlib import Path
from datetime import datetime
from sentence_transformers import models
from sentence_transformers import SentenceTransformer

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from utils.logger import log_error
from config.settings import settings
from config.model_config import ModelConfig
from model_manager.model_registry import ModelInfo
from model_manager.model_registry import ModelType
from model_manager.model_registry import ModelStatus
from model_manager.model_registry import ModelRegistry


class ModelLoader:
    """
    Loads the legal-domain embedding model once per process, with local disk caching and GPU support
    """
    def __init__(self, use_gpu: bool = None):
        self.registry = ModelRegistry()
        self.config   = ModelConfig()
        use_gpu       = settings.USE_GPU if (use_gpu is None) else use_gpu
        self.device   = "cuda" if (use_gpu and torch.cuda.is_available()) else "cpu"

        log_info("ModelLoader initialized", device = self.device, gpu_available = torch.cuda.is_available())


    @staticmethod
    def _has_saved_model(local_path: Path) -> bool:
        return (local_path / "modules.json").exists()


    def _build_from_hub(self, config: dict) -> SentenceTransformer:
        """
        Wrap the raw transformer checkpoint with a mean pooling head
        """
        word_model = models.Transformer(config["model_name"], max_seq_length = config["max_seq_length"])
        pooling    = models.Pooling(word_model.get_word_embedding_dimension(), pooling_mode = config["pooling"])

        return SentenceTransformer(modules = [word_model, pooling], device = self.device)


    def load_embedding_model(self) -> SentenceTransformer:
        """
        Load (or fetch from the registry) the sentence embedding model
        """
        with self.registry.load_lock:
            if self.registry.is_loaded(ModelType.EMBEDDING):
                return self.registry.get(ModelType.EMBEDDING).model

            config     = self.config.EMBEDDING_MODEL
            local_path = Path(config["local_path"])

            self.registry.register(ModelType.EMBEDDING, ModelInfo(name = config["model_name"], type = ModelType.EMBEDDING, status = ModelStatus.LOADING))

            start_time = time.perf_counter()

            try:
                if self._has_saved_model(local_path):
                    log_info("Loading embedding model from local cache", path = str(local_path))
                    model = SentenceTransformer(str(local_path), device = self.device)

                else:
                    log_info("Downloading embedding model from HuggingFace", model_name = config["model_name"])
                    model = self._build_from_hub(config)

                    local_path.mkdir(parents = True, exist_ok = True)
                    model.save(str(local_path))
                    log_info("Embedding model saved to local cache", path = str(local_path))

                load_seconds = time.perf_counter() - start_time

                self.registry.register(ModelType.EMBEDDING,
                                       ModelInfo(name         = config["model_name"],
                                                 type         = ModelType.EMBEDDING,
                                                 status       = ModelStatus.LOADED,
                                                 model        = model,
                                                 loaded_at    = datetime.now(),
                                                 load_seconds = load_seconds,
                                                 metadata     = {"device"    : self.device,
                                                                 "dimension" : model.get_sentence_embedding_dimension(),
                                                                },
                                                )
                                      )

                log_info("Embedding model loaded successfully",
                         device       = self.device,
                         load_seconds = round(load_seconds, 3),
                        )

                return model

            except Exception as e:
                log_error(e, context = {"component" : "ModelLoader", "operation" : "load_embedding_model", "model_name" : config["model_name"]})

                self.registry.register(ModelType.EMBEDDING,
                                       ModelInfo(name          = config["model_name"],
                                                 type          = ModelType.EMBEDDING,
                                                 status        = ModelStatus.ERROR,
                                                 error_message = str(e),
                                                )
                                      )
                raise


    def get_load_seconds(self) -> float:
        info = self.registry.get(ModelType.EMBEDDING)

        return info.load_seconds if info else 0.0
