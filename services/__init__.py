# DEPENDENCIES
from .rule_store import RuleNode
from .rule_store import RuleHierarchy
from .rule_store import RuleDataProvider
from .rule_store import StaticRuleProvider
from .feature_weights import FeatureWeights
from .rule_matcher import ScoringWeights
from .rule_store import HierarchicalRuleStore
from .feedback_learner import FeedbackLearner
from .feature_extractor import FeatureExtractor
from .clause_analyzer import AnalysisState
from .clause_analyzer import ClauseAnalysisEngine
from .confidence_adjuster import ConfidenceAdjuster
from .rule_matcher import HierarchicalRuleMatcher
from .keyword_detector import KeywordClauseDetector
from .feature_weights import FeatureWeightsRegistry
from .semantic_detector import SemanticClauseDetector
from .clause_analyzer import ClauseAnalysisStateMachine
from .embedding_service import SemanticEmbeddingService



__all__ = ['RuleNode',
           'AnalysisState',
           'RuleHierarchy',
           'FeatureWeights',
           'ScoringWeights',
           'FeedbackLearner',
           'RuleDataProvider',
           'FeatureExtractor',
           'StaticRuleProvider',
           'ConfidenceAdjuster',
           'ClauseAnalysisEngine',
           'HierarchicalRuleStore',
           'KeywordClauseDetector',
           'FeatureWeightsRegistry',
           'SemanticClauseDetector',
           'HierarchicalRuleMatcher',
           'SemanticEmbeddingService',
           'ClauseAnalysisStateMachine',
          ]
