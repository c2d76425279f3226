# DEPENDENCIES
import sys
import math
import random
from typing import Union
from pathlib import Path
from typing import Optional

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_error
from utils.logger import log_warning
from services.data_models import RuleTier
from config.model_config import ModelConfig
from services.data_models import FeatureVector
from services.rule_store import HierarchicalRuleStore
from services.data_models import PartyPerspective
from services.data_models import ConfidenceComponents
from services.feature_weights import FeatureWeightsRegistry


class ConfidenceAdjuster:
    """
    Adjusts a rule's base confidence with a linear feature model, rule history, context cues
    and an override penalty

    Any internal failure switches to degraded mode: base confidence plus a small bounded
    jitter, never an exception
    """
    def __init__(self, rule_store: HierarchicalRuleStore, weights_registry: Optional[FeatureWeightsRegistry] = None, rng: Optional[random.Random] = None):
        self.rule_store       = rule_store
        self.weights_registry = weights_registry or FeatureWeightsRegistry()
        self.rng              = rng or random.Random()
        self.config           = ModelConfig.ML_SCORING


    def _clamp_final(self, value: float) -> float:
        if math.isnan(value):
            return self.config["min_score"]

        return max(self.config["min_score"], min(self.config["max_score"], value))


    def adjust_confidence(self, base_confidence: float, features: FeatureVector, rule_id: str, perspective: Union[PartyPerspective, str],
                          tier: Optional[RuleTier] = None) -> ConfidenceComponents:
        """
        Combine the four adjustment components into a final score

        Arguments:
        ----------
            base_confidence { float }            : Rule's static confidence

            features        { FeatureVector }    : Features of the candidate span

            rule_id         { str }              : Rule under evaluation (history lookup)

            perspective     { PartyPerspective } : Party the analysis is tuned for

            tier            { RuleTier }         : Rule tier, looked up from the store when omitted

        Returns:
        --------
            { ConfidenceComponents }             : Components and final_score in [0.1, 1.0]
        """
        try:
            perspective  = perspective if isinstance(perspective, PartyPerspective) else PartyPerspective(perspective)
            weights      = self.weights_registry.current()
            performance  = self.rule_store.get_performance(rule_id)

            if tier is None:
                rule = self.rule_store.get_rule(rule_id)
                tier = rule.tier if rule else None

            if (performance is None) or (performance.sample_size == 0):
                historical_accuracy = self.config["default_historical_accuracy"]
                override_rate       = self.config["default_override_rate"]
                history_component   = 0.0

            else:
                historical_accuracy = performance.f1_score
                override_rate       = performance.override_rate
                history_component   = self._history_component(performance.f1_score, performance.sample_size)

            inputs            = features.model_inputs(historical_accuracy = historical_accuracy, user_override_rate = override_rate)
            bound             = self.config["adjustment_bound"]
            ml_adjustment     = max(-bound, min(bound, weights.weighted_sum(inputs)))
            context_component = self._context_component(features, perspective, tier)
            override_penalty  = self.config["override_penalty"] if (override_rate > self.config["override_rate_threshold"]) else 0.0

            final_score       = self._clamp_final(float(base_confidence) + ml_adjustment + history_component + context_component + override_penalty)

            return ConfidenceComponents(base_confidence   = float(base_confidence),
                                        ml_adjustment     = ml_adjustment,
                                        history_component = history_component,
                                        context_component = context_component,
                                        override_penalty  = override_penalty,
                                        final_score       = final_score,
                                        inputs            = inputs,
                                        weights_version   = weights.version,
                                       )

        except Exception as e:
            log_error(e, context = {"component" : "ConfidenceAdjuster", "operation" : "adjust_confidence", "rule_id" : rule_id})

            return self._degraded(base_confidence, rule_id)


    def _history_component(self, f1_score: float, sample_size: int) -> float:
        if (sample_size < self.config["min_history_samples"]):
            return 0.0

        if (f1_score > self.config["f1_high_water"]):
            return self.config["history_boost"]

        if (f1_score < self.config["f1_low_water"]):
            return self.config["history_penalty"]

        return 0.0


    def _context_component(self, features: FeatureVector, perspective: PartyPerspective, tier: Optional[RuleTier]) -> float:
        component        = 0.0
        low, high        = self.config["length_range"]

        if (features.legal_term_density > self.config["legal_density_threshold"]):
            component += self.config["legal_density_boost"]

        if (features.has_numbered_lists or features.has_subsections):
            component += self.config["structure_boost"]

        if (low <= features.span_length <= high):
            component += self.config["length_boost"]

        # Expected tone: restrictive language suits a receiving party's review, permissive a disclosing one
        expected_tone    = ((perspective == PartyPerspective.RECEIVING and features.sentiment_score < 0) or
                            (perspective == PartyPerspective.DISCLOSING and features.sentiment_score > 0))

        if expected_tone:
            component += self.config["tone_boost_unacceptable"] if (tier == RuleTier.UNACCEPTABLE) else self.config["tone_boost"]

        return component


    def _degraded(self, base_confidence: float, rule_id: str) -> ConfidenceComponents:
        try:
            base = float(base_confidence)

        except (TypeError, ValueError):
            base = self.config["min_score"]

        jitter = self.rng.uniform(-self.config["degraded_jitter"], self.config["degraded_jitter"])
        final  = self._clamp_final(base + jitter)

        log_warning("Confidence adjustment degraded", rule_id = rule_id, final_score = round(final, 4))

        return ConfidenceComponents(base_confidence   = base,
                                    ml_adjustment     = 0.0,
                                    history_component = 0.0,
                                    context_component = 0.0,
                                    override_penalty  = 0.0,
                                    final_score       = final,
                                    degraded          = True,
                                   )
