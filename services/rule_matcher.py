# DEPENDENCIES
import re
import sys
from typing import List
from typing import Tuple
from typing import Union
from pathlib import Path
from typing import Optional
from typing import Sequence
from dataclasses import dataclass

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from utils.logger import log_debug
from config.model_config import ModelConfig
from services.data_models import MatchMethod
from services.data_models import MatchResult
from services.rule_store import RuleNode
from services.data_models import RuleFeatureHints
from services.data_models import PartyPerspective
from services.feature_extractor import FeatureExtractor
from services.rule_store import HierarchicalRuleStore
from services.confidence_adjuster import ConfidenceAdjuster


@dataclass(frozen = True)
class ScoringWeights:
    """
    Weights of the traversal score components
    """
    keyword     : float = 0.4
    ml          : float = 0.3
    performance : float = 0.2
    base        : float = 0.1

    @classmethod
    def from_config(cls) -> "ScoringWeights":
        return cls(**ModelConfig.RULE_MATCHING["scoring_weights"])


class HierarchicalRuleMatcher:
    """
    Scores every rule of a hierarchy against document text and returns the ranked matches

    Each node is scored independently (no inherited scores):
        keyword overlap * 0.4 + ML-adjusted confidence * 0.3 + historical F1 * 0.2 + base confidence * 0.1
    """
    def __init__(self, rule_store: HierarchicalRuleStore, feature_extractor: FeatureExtractor, confidence_adjuster: ConfidenceAdjuster,
                 scoring_weights: Optional[ScoringWeights] = None):
        self.rule_store          = rule_store
        self.feature_extractor   = feature_extractor
        self.confidence_adjuster = confidence_adjuster
        self.scoring_weights     = scoring_weights or ScoringWeights.from_config()
        self.config              = ModelConfig.RULE_MATCHING

        log_info("HierarchicalRuleMatcher initialized", scoring_weights = self.scoring_weights.__dict__)


    def find_best_matches(self, text: str, clause_type_id: str, perspective: Union[PartyPerspective, str], max_results: int = 5,
                          confidence_threshold: float = 0.3, use_ml_features: bool = True, prefer_higher_levels: bool = True) -> List[MatchResult]:
        """
        Traverse the hierarchy and collect matches at or above the threshold

        Arguments:
        ----------
            text                 { str }   : Document text

            clause_type_id       { str }   : Clause type whose rules are evaluated

            perspective          { str }   : Party perspective

            max_results          { int }   : Maximum number of matches returned

            confidence_threshold { float } : Minimum score kept

            use_ml_features      { bool }  : Run the feature extractor and confidence adjuster

            prefer_higher_levels { bool }  : Rank shallower rules first, then by confidence

        Returns:
        --------
                   { list }                : MatchResult list, best first
        """
        hierarchy = self.rule_store.get_hierarchy(clause_type_id, perspective)

        if hierarchy.is_empty:
            log_info("No rule hierarchy available", clause_type_id = clause_type_id, perspective = str(perspective))
            return list()

        matches   = list()

        for node in hierarchy.walk():
            match = self._evaluate_node(text, node, hierarchy.perspective, use_ml_features)

            if (match is not None) and (match.confidence >= confidence_threshold):
                matches.append(match)

        # sorted() is stable, so ties keep traversal order
        if prefer_higher_levels:
            matches = sorted(matches, key = lambda match: (match.depth, -match.confidence))

        else:
            matches = sorted(matches, key = lambda match: -match.confidence)

        log_debug("Hierarchy traversal complete",
                  clause_type_id = clause_type_id,
                  evaluated      = len(hierarchy),
                  matched        = len(matches),
                 )

        return matches[:max_results]


    def _evaluate_node(self, text: str, node: RuleNode, perspective: PartyPerspective, use_ml_features: bool) -> Optional[MatchResult]:
        rule                      = node.rule
        keyword_score, found      = self.calculate_keyword_score(text, rule.keywords)
        hint_score                = self.calculate_pattern_score(text, rule.ml_features)

        # Without keyword or pattern evidence the rule does not apply to this text
        if (keyword_score == 0.0) and (hint_score == 0.0):
            return None

        span                      = self.feature_extractor.locate_candidate_span(text, rule.keywords)
        features                  = self.feature_extractor.extract_features(text, span, context = {"keywords": rule.keywords})
        components                = None
        reasoning                 = list()

        if found:
            reasoning.append(f"Keyword matches: {', '.join(found)}")

        if use_ml_features:
            components = self.confidence_adjuster.adjust_confidence(base_confidence = rule.confidence_score,
                                                                    features        = features,
                                                                    rule_id         = rule.id,
                                                                    perspective     = perspective,
                                                                    tier            = rule.tier,
                                                                   )
            ml_score   = components.final_score

            if not rule.ml_features.is_empty:
                ml_score = (ml_score + hint_score) / 2.0

            reasoning.append(f"ML adjusted confidence: {ml_score * 100:.1f}%")

        else:
            ml_score   = hint_score

            if not rule.ml_features.is_empty:
                reasoning.append(f"Pattern confidence: {hint_score * 100:.1f}%")

        performance               = self.rule_store.get_performance(rule.id)
        f1_score                  = performance.f1_score if (performance is not None) else 0.0

        if (performance is not None) and (performance.sample_size > 0):
            reasoning.append(f"Historical accuracy: {f1_score * 100:.1f}%")

        weights                   = self.scoring_weights
        confidence                = (keyword_score * weights.keyword +
                                     ml_score * weights.ml +
                                     f1_score * weights.performance +
                                     rule.confidence_score * weights.base)
        confidence                = max(0.0, min(1.0, confidence))

        return MatchResult(rule               = rule,
                           confidence         = confidence,
                           match_method       = self.match_method_for(confidence),
                           reasoning          = "; ".join(reasoning),
                           hierarchy_path     = list(node.path),
                           suggested_language = rule.example_language or None,
                           depth              = node.depth,
                           keyword_matches    = found,
                           span               = span,
                           feature_inputs     = dict(components.inputs) if components else features.model_inputs(),
                           components         = components,
                          )


    @staticmethod
    def calculate_keyword_score(text: str, keywords: Sequence[str]) -> Tuple[float, List[str]]:
        """
        Average keyword credit over the rule's keywords

        An exact (case-insensitive) substring earns full credit; otherwise the share of the
        keyword's longer words found in the text earns half credit

        Returns:
        --------
            { tuple } : (score capped at 1.0, keywords credited)
        """
        if not keywords:
            return 0.0, list()

        config        = ModelConfig.RULE_MATCHING
        lowered       = text.lower()
        total         = 0.0
        found         = list()

        for keyword in keywords:
            keyword_lower = keyword.lower()

            if keyword_lower in lowered:
                total += 1.0
                found.append(keyword)
                continue

            words         = [word for word in keyword_lower.split() if len(word) >= config["min_word_length"]]
            present       = [word for word in words if word in lowered]

            if present:
                total += (len(present) / len(words)) * config["partial_credit"]
                found.append(keyword)

        return min(total / len(keywords), 1.0), found


    @staticmethod
    def calculate_pattern_score(text: str, hints: RuleFeatureHints) -> float:
        """
        Credit for regex hints and sentiment indicator terms; invalid patterns are skipped
        """
        if hints.is_empty:
            return 0.0

        config  = ModelConfig.RULE_MATCHING
        lowered = text.lower()
        score   = 0.0

        for pattern in hints.patterns:
            try:
                if re.search(pattern, text, re.IGNORECASE):
                    score += config["pattern_hit_score"]

            except re.error as e:
                log_debug("Skipping invalid rule pattern", pattern = pattern, error = str(e))

        for indicator in hints.sentiment_indicators:
            if indicator.lower() in lowered:
                score += config["sentiment_hit_score"]

        return min(score, 1.0)


    @staticmethod
    def match_method_for(confidence: float) -> MatchMethod:
        cutoffs = ModelConfig.RULE_MATCHING["match_type_cutoffs"]

        if (confidence > cutoffs["exact"]):
            return MatchMethod.EXACT

        if (confidence > cutoffs["semantic"]):
            return MatchMethod.SEMANTIC

        if (confidence > cutoffs["keyword"]):
            return MatchMethod.KEYWORD

        return MatchMethod.FALLBACK
