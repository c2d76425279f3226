# DEPENDENCIES
import sys
import threading
from enum import Enum
from typing import Any
from typing import Dict
from pathlib import Path
from typing import Optional
from dataclasses import field
from datetime import datetime
from dataclasses import dataclass

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info


class ModelType(Enum):
    """
    Models the engine can hold in memory
    """
    EMBEDDING = "embedding"


class ModelStatus(Enum):
    """
    Model loading status
    """
    NOT_LOADED = "not_loaded"
    LOADING    = "loading"
    LOADED     = "loaded"
    ERROR      = "error"


@dataclass
class ModelInfo:
    """
    Model metadata and state
    """
    name           : str
    type           : ModelType
    status         : ModelStatus        = ModelStatus.NOT_LOADED
    model          : Optional[Any]      = None
    loaded_at      : Optional[datetime] = None
    load_seconds   : float              = 0.0
    error_message  : Optional[str]      = None
    access_count   : int                = 0
    metadata       : Dict[str, Any]     = field(default_factory = dict)


class ModelRegistry:
    """
    Thread-safe singleton registry of loaded models, shared by every embedding backend
    in the process so a model is loaded once
    """
    _instance = None
    _lock     = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance              = super().__new__(cls)
                    cls._instance._initialized = False

        return cls._instance


    def __init__(self):
        if self._initialized:
            return

        self._registry : Dict[ModelType, ModelInfo] = dict()
        self._model_lock                            = threading.RLock()
        self._initialized                           = True


    @property
    def load_lock(self) -> threading.RLock:
        """
        Held while a model is being loaded so concurrent first callers load it once
        """
        return self._model_lock


    def register(self, model_type: ModelType, model_info: ModelInfo):
        with self._model_lock:
            self._registry[model_type] = model_info

        log_info(f"Model registered: {model_type.value}",
                 model_name = model_info.name,
                 status     = model_info.status.value,
                )


    def get(self, model_type: ModelType) -> Optional[ModelInfo]:
        with self._model_lock:
            info = self._registry.get(model_type)

            if info:
                info.access_count += 1

            return info


    def is_loaded(self, model_type: ModelType) -> bool:
        info = self.get(model_type)

        return (info is not None) and (info.status == ModelStatus.LOADED)


    def get_stats(self) -> Dict[str, Any]:
        with self._model_lock:
            return {model_type.value : {"name"          : info.name,
                                        "status"        : info.status.value,
                                        "load_seconds"  : round(info.load_seconds, 3),
                                        "access_count"  : info.access_count,
                                        "error_message" : info.error_message,
                                        **info.metadata,
                                       }
                    for model_type, info in self._registry.items()}
