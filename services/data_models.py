# DEPENDENCIES
import uuid
from enum import Enum
from typing import Any
from typing import Dict
from typing import List
from typing import Tuple
from typing import Optional
from datetime import datetime
from dataclasses import field
from dataclasses import replace
from dataclasses import dataclass


class PartyPerspective(Enum):
    """
    Negotiating stance the analysis is tuned for
    """
    RECEIVING  = "receiving"
    DISCLOSING = "disclosing"
    MUTUAL     = "mutual"


class RuleTier(Enum):
    """
    Severity classification of a playbook rule
    """
    PREFERRED    = "preferred"
    FALLBACK     = "fallback"
    UNACCEPTABLE = "unacceptable"

    @property
    def severity_rank(self) -> int:
        return _TIER_RANKS[self]


_TIER_RANKS = {RuleTier.PREFERRED    : 0,
               RuleTier.FALLBACK     : 1,
               RuleTier.UNACCEPTABLE : 2,
              }


class ResolvedTier(Enum):
    """
    Outcome of a clause analysis: a rule tier or missing
    """
    PREFERRED    = "preferred"
    FALLBACK     = "fallback"
    UNACCEPTABLE = "unacceptable"
    MISSING      = "missing"

    @classmethod
    def from_rule_tier(cls, tier: RuleTier) -> "ResolvedTier":
        return cls(tier.value)


class MatchMethod(Enum):
    """
    How strongly a single rule matched during traversal
    """
    EXACT    = "exact"
    SEMANTIC = "semantic"
    KEYWORD  = "keyword"
    FALLBACK = "fallback"


class DetectionMethod(Enum):
    """
    Which stages of the fallback chain produced the final clause result
    """
    HIERARCHICAL = "hierarchical"
    SEMANTIC     = "semantic"
    KEYWORD      = "keyword"
    HYBRID       = "hybrid"
    NONE         = "none"


class EmbeddingPriority(Enum):
    HIGH   = "high"
    NORMAL = "normal"
    LOW    = "low"

    @property
    def rank(self) -> int:
        return {"high": 0, "normal": 1, "low": 2}[self.value]


class ReviewerAction(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    MODIFIED = "modified"


class BatchStatus(Enum):
    PENDING    = "pending"
    PROCESSING = "processing"
    COMPLETED  = "completed"
    FAILED     = "failed"


@dataclass(frozen = True)
class ClauseType:
    """
    Reference data for one category of provision, with the material used by the
    semantic and keyword detectors
    """
    id              : str
    name            : str
    display_order   : int
    exemplar_text   : str             = ""
    patterns        : Tuple[str, ...] = ()
    keywords        : Tuple[str, ...] = ()
    header_patterns : Tuple[str, ...] = ()
    position_hint   : Optional[str]   = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClauseType":
        return cls(id              = data["id"],
                   name            = data.get("name", data["id"]),
                   display_order   = int(data.get("display_order", 0)),
                   exemplar_text   = data.get("exemplar_text") or "",
                   patterns        = tuple(data.get("patterns") or ()),
                   keywords        = tuple(data.get("keywords") or ()),
                   header_patterns = tuple(data.get("header_patterns") or ()),
                   position_hint   = data.get("position_hint"),
                  )

    def to_dict(self) -> Dict[str, Any]:
        return {"id"              : self.id,
                "name"            : self.name,
                "display_order"   : self.display_order,
                "exemplar_text"   : self.exemplar_text,
                "patterns"        : list(self.patterns),
                "keywords"        : list(self.keywords),
                "header_patterns" : list(self.header_patterns),
                "position_hint"   : self.position_hint,
               }


@dataclass(frozen = True)
class RuleFeatureHints:
    """
    Optional regex patterns and sentiment indicator terms attached to a rule
    """
    patterns             : Tuple[str, ...] = ()
    sentiment_indicators : Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.patterns or self.sentiment_indicators)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RuleFeatureHints":
        data = data or {}
        return cls(patterns             = tuple(data.get("patterns") or ()),
                   sentiment_indicators = tuple(data.get("sentiment_indicators") or ()),
                  )

    def to_dict(self) -> Dict[str, List[str]]:
        return {"patterns"             : list(self.patterns),
                "sentiment_indicators" : list(self.sentiment_indicators),
               }


@dataclass(frozen = True)
class Rule:
    """
    A negotiation-position rule for one clause type and party perspective
    """
    id               : str
    clause_type_id   : str
    perspective      : PartyPerspective
    tier             : RuleTier
    rule_text        : str
    keywords         : Tuple[str, ...]   = ()
    example_language : str               = ""
    rewriting_prompt : str               = ""
    confidence_score : float             = 0.7
    parent_id        : Optional[str]     = None
    ml_features      : RuleFeatureHints  = field(default_factory = RuleFeatureHints)
    severity         : int               = 3
    guidance_notes   : str               = ""
    rule_level       : int               = 1
    is_active        : bool              = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        return cls(id               = str(data["id"]),
                   clause_type_id   = data["clause_type_id"],
                   perspective      = PartyPerspective(data["perspective"]),
                   tier             = RuleTier(data["tier"]),
                   rule_text        = data.get("rule_text", ""),
                   keywords         = tuple(data.get("keywords") or ()),
                   example_language = data.get("example_language") or "",
                   rewriting_prompt = data.get("rewriting_prompt") or "",
                   confidence_score = float(data.get("confidence_score", 0.7)),
                   parent_id        = data.get("parent_id"),
                   ml_features      = RuleFeatureHints.from_dict(data.get("ml_features")),
                   severity         = int(data.get("severity", 3)),
                   guidance_notes   = data.get("guidance_notes") or "",
                   rule_level       = int(data.get("rule_level", 1)),
                   is_active        = bool(data.get("is_active", True)),
                  )

    def to_dict(self) -> Dict[str, Any]:
        return {"id"               : self.id,
                "clause_type_id"   : self.clause_type_id,
                "perspective"      : self.perspective.value,
                "tier"             : self.tier.value,
                "rule_text"        : self.rule_text,
                "keywords"         : list(self.keywords),
                "example_language" : self.example_language,
                "rewriting_prompt" : self.rewriting_prompt,
                "confidence_score" : round(self.confidence_score, 4),
                "parent_id"        : self.parent_id,
                "ml_features"      : self.ml_features.to_dict(),
                "severity"         : self.severity,
                "guidance_notes"   : self.guidance_notes,
                "rule_level"       : self.rule_level,
               }


@dataclass(frozen = True)
class RulePerformance:
    """
    Aggregate reviewer outcomes for one rule
    """
    rule_id         : str
    true_positives  : int                = 0
    false_positives : int                = 0
    true_negatives  : int                = 0
    false_negatives : int                = 0
    precision       : float              = 0.0
    recall          : float              = 0.0
    f1_score        : float              = 0.0
    sample_size     : int                = 0
    last_calculated : Optional[datetime] = None

    @property
    def override_rate(self) -> float:
        """
        Share of reviewed predictions the reviewer overrode (false positives and false negatives)
        """
        if (self.sample_size <= 0):
            return 0.0

        return max(0.0, min(1.0, (self.false_positives + self.false_negatives) / self.sample_size))

    def with_outcomes(self, tp: int = 0, fp: int = 0, tn: int = 0, fn: int = 0) -> "RulePerformance":
        """
        New snapshot with the given outcome counts added and metrics recomputed
        """
        true_positives  = self.true_positives + tp
        false_positives = self.false_positives + fp
        true_negatives  = self.true_negatives + tn
        false_negatives = self.false_negatives + fn

        predicted       = true_positives + false_positives
        actual          = true_positives + false_negatives
        precision       = (true_positives / predicted) if predicted else 0.0
        recall          = (true_positives / actual) if actual else 0.0
        f1_score        = (2 * precision * recall / (precision + recall)) if (precision + recall) else 0.0

        return replace(self,
                       true_positives  = true_positives,
                       false_positives = false_positives,
                       true_negatives  = true_negatives,
                       false_negatives = false_negatives,
                       precision       = precision,
                       recall          = recall,
                       f1_score        = f1_score,
                       sample_size     = self.sample_size + tp + fp + tn + fn,
                       last_calculated = datetime.now(),
                      )

    def to_dict(self) -> Dict[str, Any]:
        return {"rule_id"         : self.rule_id,
                "true_positives"  : self.true_positives,
                "false_positives" : self.false_positives,
                "true_negatives"  : self.true_negatives,
                "false_negatives" : self.false_negatives,
                "precision"       : round(self.precision, 4),
                "recall"          : round(self.recall, 4),
                "f1_score"        : round(self.f1_score, 4),
                "sample_size"     : self.sample_size,
                "override_rate"   : round(self.override_rate, 4),
                "last_calculated" : self.last_calculated.isoformat() if self.last_calculated else None,
               }


@dataclass(frozen = True)
class CandidateSpan:
    """
    Contiguous region of the document evaluated for a clause type
    """
    start : int
    end   : int
    text  : str

    @property
    def length(self) -> int:
        return len(self.text)

    def to_dict(self) -> Dict[str, Any]:
        return {"start" : self.start,
                "end"   : self.end,
                "text"  : self.text,
               }


@dataclass
class FeatureVector:
    """
    Structural and linguistic features of a candidate span
    """
    span_length             : int   = 0
    keyword_density         : float = 0.0
    legal_term_density      : float = 0.0
    modal_verb_count        : int   = 0
    definition_indicators   : int   = 0
    cross_references        : int   = 0
    sentence_count          : int   = 0
    paragraph_count         : int   = 0
    average_sentence_length : float = 0.0
    capitalized_words       : int   = 0
    readability_score       : float = 0.0
    document_position       : float = 0.0
    proximity_to_key_terms  : float = 0.0
    has_numbered_lists      : bool  = False
    has_subsections         : bool  = False
    sentiment_score         : float = 0.0

    def model_inputs(self, historical_accuracy: float = 0.0, user_override_rate: float = 0.0) -> Dict[str, float]:
        """
        Bounded numeric inputs for the linear confidence model

        Arguments:
        ----------
            historical_accuracy { float } : Rule F1 (or neutral default)

            user_override_rate  { float } : Rule override rate (or neutral default)

        Returns:
        --------
                    { dict }              : Feature name -> value, counts squashed into [0, 1],
                                            sentiment kept in [-1, 1]
        """
        return {"span_length"             : min(self.span_length / 1000.0, 1.0),
                "keyword_density"         : min(self.keyword_density, 1.0),
                "sentiment_score"         : max(-1.0, min(1.0, self.sentiment_score)),
                "readability_score"       : self.readability_score,
                "paragraph_count"         : min(self.paragraph_count / 5.0, 1.0),
                "sentence_count"          : min(self.sentence_count / 10.0, 1.0),
                "average_sentence_length" : min(self.average_sentence_length / 40.0, 1.0),
                "capitalized_words"       : min(self.capitalized_words / 20.0, 1.0),
                "legal_term_density"      : min(self.legal_term_density, 1.0),
                "modal_verb_count"        : min(self.modal_verb_count / 5.0, 1.0),
                "definition_indicators"   : min(self.definition_indicators / 3.0, 1.0),
                "cross_references"        : min(self.cross_references / 3.0, 1.0),
                "document_position"       : self.document_position,
                "proximity_to_key_terms"  : self.proximity_to_key_terms,
                "structural_markers"      : 0.5 * float(self.has_numbered_lists) + 0.5 * float(self.has_subsections),
                "historical_accuracy"     : historical_accuracy,
                "user_override_rate"      : user_override_rate,
               }

    def to_dict(self) -> Dict[str, Any]:
        return {"span_length"             : self.span_length,
                "keyword_density"         : round(self.keyword_density, 4),
                "legal_term_density"      : round(self.legal_term_density, 4),
                "modal_verb_count"        : self.modal_verb_count,
                "definition_indicators"   : self.definition_indicators,
                "cross_references"        : self.cross_references,
                "sentence_count"          : self.sentence_count,
                "paragraph_count"         : self.paragraph_count,
                "average_sentence_length" : round(self.average_sentence_length, 2),
                "capitalized_words"       : self.capitalized_words,
                "readability_score"       : round(self.readability_score, 4),
                "document_position"       : round(self.document_position, 4),
                "proximity_to_key_terms"  : round(self.proximity_to_key_terms, 4),
                "has_numbered_lists"      : self.has_numbered_lists,
                "has_subsections"         : self.has_subsections,
                "sentiment_score"         : round(self.sentiment_score, 4),
               }


@dataclass
class ConfidenceComponents:
    """
    Breakdown of an adjusted confidence
    """
    base_confidence   : float
    ml_adjustment     : float
    history_component : float
    context_component : float
    override_penalty  : float
    final_score       : float
    inputs            : Dict[str, float] = field(default_factory = dict)
    weights_version   : int              = 0
    degraded          : bool             = False

    def to_dict(self) -> Dict[str, Any]:
        return {"base_confidence"   : round(self.base_confidence, 4),
                "ml_adjustment"     : round(self.ml_adjustment, 4),
                "history_component" : round(self.history_component, 4),
                "context_component" : round(self.context_component, 4),
                "override_penalty"  : round(self.override_penalty, 4),
                "final_score"       : round(self.final_score, 4),
                "weights_version"   : self.weights_version,
                "degraded"          : self.degraded,
               }


@dataclass
class MatchResult:
    """
    One rule scored against a candidate text during hierarchy traversal
    """
    rule               : Rule
    confidence         : float
    match_method       : MatchMethod
    reasoning          : str
    hierarchy_path     : List[str]                      = field(default_factory = list)
    suggested_language : Optional[str]                  = None
    depth              : int                            = 1
    keyword_matches    : List[str]                      = field(default_factory = list)
    span               : Optional[CandidateSpan]        = None
    feature_inputs     : Dict[str, float]               = field(default_factory = dict)
    components         : Optional[ConfidenceComponents] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"rule_id"            : self.rule.id,
                "tier"               : self.rule.tier.value,
                "confidence"         : round(self.confidence, 4),
                "match_method"       : self.match_method.value,
                "reasoning"          : self.reasoning,
                "hierarchy_path"     : list(self.hierarchy_path),
                "suggested_language" : self.suggested_language,
                "depth"              : self.depth,
                "keyword_matches"    : list(self.keyword_matches),
                "span"               : self.span.to_dict() if self.span else None,
                "components"         : self.components.to_dict() if self.components else None,
               }


@dataclass
class SimilarityHit:
    index      : int
    text       : str
    similarity : float

    def to_dict(self) -> Dict[str, Any]:
        return {"index"      : self.index,
                "text"       : self.text,
                "similarity" : round(self.similarity, 4),
               }


@dataclass
class StageAttempt:
    """
    Record of one stage of the per-clause fallback chain
    """
    stage            : str
    outcome          : str              # matched | no_match | failed | timeout | skipped
    duration_seconds : float            = 0.0
    confidence       : float            = 0.0
    error            : Optional[str]    = None

    def to_dict(self) -> Dict[str, Any]:
        return {"stage"            : self.stage,
                "outcome"          : self.outcome,
                "duration_seconds" : round(self.duration_seconds, 4),
                "confidence"       : round(self.confidence, 4),
                "error"            : self.error,
               }


@dataclass
class AnalysisOptions:
    """
    Caller options for analyze_document
    """
    clause_types            : Optional[List[str]] = None
    use_hierarchical_rules  : bool                = True
    use_semantic_detection  : bool                = True
    enable_ml_scoring       : bool                = True
    prefer_higher_levels    : bool                = True
    generate_suggestions    : bool                = True
    use_cache               : bool                = True
    max_results             : int                 = 5
    confidence_threshold    : float               = 0.3
    resolution_threshold    : float               = 0.7

    def cache_fingerprint(self) -> str:
        return "|".join([",".join(sorted(self.clause_types)) if self.clause_types else "*",
                         str(self.use_hierarchical_rules),
                         str(self.use_semantic_detection),
                         str(self.enable_ml_scoring),
                         str(self.prefer_higher_levels),
                         str(self.generate_suggestions),
                         str(self.max_results),
                         f"{self.confidence_threshold:.4f}",
                         f"{self.resolution_threshold:.4f}",
                        ])


@dataclass
class ClauseAnalysisResult:
    """
    Final classification of one clause type within a document
    """
    clause_type_id       : str
    clause_name          : str
    detected_text        : Optional[str]
    tier                 : ResolvedTier
    confidence           : float
    risk_level           : int
    recommended_action   : str
    detection_method     : DetectionMethod
    processing_time      : float              = 0.0
    cache_hit            : bool               = False
    rule_id              : Optional[str]      = None
    hierarchy_path       : List[str]          = field(default_factory = list)
    feature_inputs       : Dict[str, float]   = field(default_factory = dict)
    suggested_text       : Optional[str]      = None
    negotiation_guidance : List[str]          = field(default_factory = list)
    fallback_options     : List[str]          = field(default_factory = list)
    attempts             : List[StageAttempt] = field(default_factory = list)
    state_path           : List[str]          = field(default_factory = list)

    def to_dict(self) -> Dict[str, Any]:
        return {"clause_type_id"       : self.clause_type_id,
                "clause_name"          : self.clause_name,
                "detected_text"        : self.detected_text,
                "tier"                 : self.tier.value,
                "confidence"           : round(self.confidence, 4),
                "risk_level"           : self.risk_level,
                "recommended_action"   : self.recommended_action,
                "detection_method"     : self.detection_method.value,
                "processing_time"      : round(self.processing_time, 4),
                "cache_hit"            : self.cache_hit,
                "rule_id"              : self.rule_id,
                "hierarchy_path"       : list(self.hierarchy_path),
                "feature_inputs"       : {k: round(v, 4) for k, v in self.feature_inputs.items()},
                "suggested_text"       : self.suggested_text,
                "negotiation_guidance" : list(self.negotiation_guidance),
                "fallback_options"     : list(self.fallback_options),
                "attempts"             : [attempt.to_dict() for attempt in self.attempts],
                "state_path"           : list(self.state_path),
               }


@dataclass
class DocumentAnalysisResult:
    """
    Per-clause results plus document level recommendations
    """
    perspective        : PartyPerspective
    clause_results     : List[ClauseAnalysisResult]
    overall_confidence : float
    recommendations    : Dict[str, List[str]]
    detection_summary  : Dict[str, Any]
    processing_time    : float
    model_version      : str
    analysis_id        : str      = field(default_factory = lambda: str(uuid.uuid4()))
    created_at         : datetime = field(default_factory = datetime.now)

    def get(self, clause_type_id: str) -> Optional[ClauseAnalysisResult]:
        for result in self.clause_results:
            if (result.clause_type_id == clause_type_id):
                return result

        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"analysis_id"        : self.analysis_id,
                "perspective"        : self.perspective.value,
                "clause_results"     : [result.to_dict() for result in self.clause_results],
                "overall_confidence" : round(self.overall_confidence, 4),
                "recommendations"    : {k: list(v) for k, v in self.recommendations.items()},
                "detection_summary"  : dict(self.detection_summary),
                "processing_time"    : round(self.processing_time, 4),
                "model_version"      : self.model_version,
                "created_at"         : self.created_at.isoformat(),
               }


@dataclass(frozen = True)
class FeedbackRecord:
    """
    One reviewer action on a proposed classification; immutable once created
    """
    rule_id              : str
    features             : Dict[str, float]
    reviewer_action      : ReviewerAction
    predicted_confidence : float
    actual_quality       : float
    perspective          : Optional[PartyPerspective] = None
    context              : Dict[str, Any]             = field(default_factory = dict)
    record_id            : str                        = field(default_factory = lambda: str(uuid.uuid4()))
    created_at           : datetime                   = field(default_factory = datetime.now)

    @property
    def predicted_missing(self) -> bool:
        return bool(self.context.get("predicted_missing", False))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeedbackRecord":
        """
        Rebuild a record from its stored form; raises KeyError / ValueError on malformed data
        """
        perspective = data.get("perspective")
        created_at  = data.get("created_at")

        return cls(rule_id              = str(data["rule_id"]),
                   features             = {str(k): float(v) for k, v in dict(data["features"]).items()},
                   reviewer_action      = ReviewerAction(data["reviewer_action"]),
                   predicted_confidence = float(data["predicted_confidence"]),
                   actual_quality       = float(data["actual_quality"]),
                   perspective          = PartyPerspective(perspective) if perspective else None,
                   context              = dict(data.get("context") or {}),
                   record_id            = data.get("record_id") or str(uuid.uuid4()),
                   created_at           = datetime.fromisoformat(created_at) if created_at else datetime.now(),
                  )

    def to_dict(self) -> Dict[str, Any]:
        return {"record_id"            : self.record_id,
                "rule_id"              : self.rule_id,
                "features"             : dict(self.features),
                "reviewer_action"      : self.reviewer_action.value,
                "predicted_confidence" : self.predicted_confidence,
                "actual_quality"       : self.actual_quality,
                "perspective"          : self.perspective.value if self.perspective else None,
                "context"              : dict(self.context),
                "created_at"           : self.created_at.isoformat(),
               }


@dataclass
class LearningBatch:
    batch_id             : int
    status               : BatchStatus
    records              : List[Dict[str, Any]] = field(default_factory = list)
    error_message        : Optional[str]        = None
    improvements_applied : int                  = 0
    created_at           : Optional[datetime]   = None
    processed_at         : Optional[datetime]   = None

    def to_dict(self) -> Dict[str, Any]:
        return {"batch_id"             : self.batch_id,
                "status"               : self.status.value,
                "record_count"         : len(self.records),
                "error_message"        : self.error_message,
                "improvements_applied" : self.improvements_applied,
                "created_at"           : self.created_at.isoformat() if self.created_at else None,
                "processed_at"         : self.processed_at.isoformat() if self.processed_at else None,
               }


@dataclass
class LearningPassResult:
    processed            : int       = 0
    improvements_applied : int       = 0
    errors               : List[str] = field(default_factory = list)

    def to_dict(self) -> Dict[str, Any]:
        return {"processed"            : self.processed,
                "improvements_applied" : self.improvements_applied,
                "errors"               : list(self.errors),
               }
