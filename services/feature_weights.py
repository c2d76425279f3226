# DEPENDENCIES
import sys
import threading
from typing import Any
from typing import Dict
from pathlib import Path
from typing import Mapping
from typing import Optional
from datetime import datetime
from types import MappingProxyType
from dataclasses import field
from dataclasses import dataclass

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from config.model_config import ModelConfig
from services.exceptions import WeightsVersionConflict


@dataclass(frozen = True)
class FeatureWeights:
    """
    Immutable, versioned snapshot of the linear confidence model weights
    """
    weights    : Mapping[str, float]
    version    : int      = 1
    updated_at : datetime = field(default_factory = datetime.now)

    def __post_init__(self):
        # Freeze a private copy so callers can't mutate a published snapshot
        object.__setattr__(self, "weights", MappingProxyType({str(k): float(v) for k, v in dict(self.weights).items()}))

    @classmethod
    def defaults(cls) -> "FeatureWeights":
        return cls(weights = ModelConfig.ML_SCORING["default_feature_weights"], version = 1)

    def get(self, name: str, default: float = 0.0) -> float:
        return self.weights.get(name, default)

    def weighted_sum(self, inputs: Mapping[str, float]) -> float:
        return sum(self.weights.get(name, 0.0) * value for name, value in inputs.items())

    def with_updates(self, deltas: Mapping[str, float], bound: float = 1.0) -> "FeatureWeights":
        """
        Next snapshot with deltas added and every weight clamped to [-bound, bound]
        """
        updated = dict(self.weights)

        for name, delta in deltas.items():
            updated[name] = max(-bound, min(bound, updated.get(name, 0.0) + delta))

        return FeatureWeights(weights = updated, version = self.version + 1)

    def to_dict(self) -> Dict[str, Any]:
        return {"version"    : self.version,
                "updated_at" : self.updated_at.isoformat(),
                "weights"    : {name: round(value, 6) for name, value in sorted(self.weights.items())},
               }


class FeatureWeightsRegistry:
    """
    Holder of the current FeatureWeights snapshot

    Readers take one snapshot reference per computation; the learning step publishes
    a complete replacement under a lock, so no reader ever sees a half-applied update
    """
    def __init__(self, initial: Optional[FeatureWeights] = None):
        self._current = initial or FeatureWeights.defaults()
        self._lock    = threading.Lock()

    def current(self) -> FeatureWeights:
        return self._current

    @property
    def version(self) -> int:
        return self._current.version

    def swap(self, new_weights: FeatureWeights, expected_version: Optional[int] = None) -> FeatureWeights:
        """
        Publish new_weights; with expected_version set, refuse if another writer got there first

        Returns:
        --------
            { FeatureWeights } : The snapshot that was replaced
        """
        with self._lock:
            previous = self._current

            if ((expected_version is not None) and (previous.version != expected_version)):
                raise WeightsVersionConflict(f"Expected weights version {expected_version}, found {previous.version}")

            self._current = new_weights

        log_info("Feature weights swapped",
                 previous_version = previous.version,
                 new_version      = new_weights.version,
                )

        return previous

    def reset_to_defaults(self) -> FeatureWeights:
        """
        Explicit retraining reset
        """
        with self._lock:
            defaults      = FeatureWeights(weights = ModelConfig.ML_SCORING["default_feature_weights"],
                                           version = self._current.version + 1,
                                          )
            self._current = defaults

        log_info("Feature weights reset to defaults", version = defaults.version)

        return defaults
