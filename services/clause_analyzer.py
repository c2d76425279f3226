# DEPENDENCIES
import sys
import time
import random
import asyncio
import hashlib
from enum import Enum
from typing import Any
from typing import Set
from typing import Dict
from typing import List
from typing import Union
from pathlib import Path
from typing import Optional
from dataclasses import field
from dataclasses import replace
from dataclasses import dataclass
from collections import OrderedDict

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from utils.logger import log_error
from utils.logger import log_warning
from config.settings import settings
from utils.logger import log_performance
from services.data_models import Rule
from services.data_models import RuleTier
from config.model_config import ModelConfig
from services.data_models import ClauseType
from utils.logger import ClauseEngineLogger
from services.data_models import MatchResult
from services.data_models import StageAttempt
from services.data_models import ResolvedTier
from config.playbook_rules import PlaybookRules
from services.data_models import CandidateSpan
from services.exceptions import ClauseEngineError
from services.rule_store import RuleHierarchy
from services.data_models import AnalysisOptions
from services.data_models import DetectionMethod
from services.data_models import PartyPerspective
from utils.validators import DocumentValidator
from services.exceptions import TextGenerationError
from services.feature_extractor import FeatureExtractor
from services.rule_store import HierarchicalRuleStore
from services.data_models import ClauseAnalysisResult
from services.data_models import DocumentAnalysisResult
from services.keyword_detector import KeywordClauseDetector
from services.confidence_adjuster import ConfidenceAdjuster
from services.feature_weights import FeatureWeightsRegistry
from services.rule_matcher import HierarchicalRuleMatcher
from services.exceptions import EmbeddingUnavailableError
from services.semantic_detector import SemanticClauseDetector
from services.embedding_service import SemanticEmbeddingService


class AnalysisState(Enum):
    """
    States of the per-clause fallback chain
    """
    NOT_STARTED            = "not_started"
    HIERARCHICAL_ATTEMPTED = "hierarchical_attempted"
    SEMANTIC_ATTEMPTED     = "semantic_attempted"
    KEYWORD_ATTEMPTED      = "keyword_attempted"
    RESOLVED               = "resolved"


_TRANSITIONS = {AnalysisState.NOT_STARTED            : {AnalysisState.HIERARCHICAL_ATTEMPTED,
                                                        AnalysisState.SEMANTIC_ATTEMPTED,
                                                        AnalysisState.KEYWORD_ATTEMPTED,
                                                        AnalysisState.RESOLVED,
                                                       },
                AnalysisState.HIERARCHICAL_ATTEMPTED : {AnalysisState.SEMANTIC_ATTEMPTED,
                                                        AnalysisState.KEYWORD_ATTEMPTED,
                                                        AnalysisState.RESOLVED,
                                                       },
                AnalysisState.SEMANTIC_ATTEMPTED     : {AnalysisState.KEYWORD_ATTEMPTED,
                                                        AnalysisState.RESOLVED,
                                                       },
                AnalysisState.KEYWORD_ATTEMPTED      : {AnalysisState.RESOLVED},
                AnalysisState.RESOLVED               : set(),
               }


def derive_risk_level(tier: ResolvedTier, confidence: float) -> int:
    """
    Risk level 1 (low) to 5 (high) from the resolved tier and its confidence
    """
    if (tier == ResolvedTier.MISSING):
        return 4

    if (tier == ResolvedTier.UNACCEPTABLE):
        return 5

    if ((tier == ResolvedTier.FALLBACK) and (confidence < 0.7)):
        return 3

    if ((tier == ResolvedTier.PREFERRED) and (confidence > 0.8)):
        return 1

    return 2


def recommended_action(tier: ResolvedTier, confidence: float, perspective: PartyPerspective, clause_name: str) -> str:
    party = perspective.value

    if (tier == ResolvedTier.MISSING):
        return f"Add {clause_name} clause to strengthen {party} party position"

    if (tier == ResolvedTier.PREFERRED):
        return f"Excellent - clause aligns with {party} party starting position"

    if ((tier == ResolvedTier.FALLBACK) and (confidence > 0.6)):
        return f"Acceptable - clause meets {party} party fallback requirements"

    if (tier == ResolvedTier.UNACCEPTABLE):
        return f"Action required - negotiate better terms for {party} party"

    return f"Review recommended - clause may need adjustment for {party} party"


@dataclass
class _Candidate:
    """
    Best-known detection while the state machine runs
    """
    confidence    : float
    rule          : Optional[Rule]
    detected_text : Optional[str]
    start         : int                   = 0
    end           : int                   = 0
    methods       : Set[DetectionMethod]  = field(default_factory = set)
    match         : Optional[MatchResult] = None

    @property
    def detection_method(self) -> DetectionMethod:
        if (len(self.methods) > 1):
            return DetectionMethod.HYBRID

        return next(iter(self.methods)) if self.methods else DetectionMethod.NONE


class ClauseAnalysisStateMachine:
    """
    Fallback chain for one clause type of one document:
        not_started -> hierarchical_attempted -> semantic_attempted -> keyword_attempted -> resolved

    Each stage runs only while no candidate has reached the resolution threshold; the
    path taken and every stage attempt (with duration and outcome) are recorded
    """
    def __init__(self, engine: "ClauseAnalysisEngine", clause_type: ClauseType, hierarchy: RuleHierarchy, text: str,
                 perspective: PartyPerspective, options: AnalysisOptions):
        self.engine      = engine
        self.clause_type = clause_type
        self.hierarchy   = hierarchy
        self.text        = text
        self.perspective = perspective
        self.options     = options
        self.state       = AnalysisState.NOT_STARTED
        self.path        = [self.state.value]
        self.attempts    = list()
        self.best        = None


    def transition(self, new_state: AnalysisState):
        if new_state not in _TRANSITIONS[self.state]:
            raise ClauseEngineError(f"Illegal transition {self.state.value} -> {new_state.value}")

        self.state = new_state
        self.path.append(new_state.value)


    def _record(self, stage: str, outcome: str, start_time: float, confidence: float = 0.0, error: Optional[str] = None):
        duration = time.perf_counter() - start_time

        self.attempts.append(StageAttempt(stage            = stage,
                                          outcome          = outcome,
                                          duration_seconds = duration,
                                          confidence       = confidence,
                                          error            = error,
                                         ))

        log_performance("clause_stage",
                        duration,
                        clause_type_id = self.clause_type.id,
                        stage          = stage,
                        outcome        = outcome,
                       )


    def _resolved_enough(self) -> bool:
        return (self.best is not None) and (self.best.confidence >= self.options.resolution_threshold)


    def _improves(self, confidence: float) -> bool:
        if (confidence < self.options.confidence_threshold):
            return False

        return (self.best is None) or (confidence > self.best.confidence)


    async def run(self) -> ClauseAnalysisResult:
        start_time = time.perf_counter()

        if self.options.use_hierarchical_rules:
            self.transition(AnalysisState.HIERARCHICAL_ATTEMPTED)
            self._hierarchical_stage()

        if self.options.use_semantic_detection and not self._resolved_enough():
            self.transition(AnalysisState.SEMANTIC_ATTEMPTED)
            await self._semantic_stage()

        if not self._resolved_enough():
            self.transition(AnalysisState.KEYWORD_ATTEMPTED)
            self._keyword_stage()

        self.transition(AnalysisState.RESOLVED)

        if ((self.best is None) or (self.best.rule is None) or (self.best.confidence < self.options.confidence_threshold)):
            result = await self.engine._missing_result(self.clause_type, self.hierarchy, self.perspective, self.options,
                                                       confidence = self.best.confidence if self.best else 0.0,
                                                       attempts   = self.attempts,
                                                      )

        else:
            result = await self.engine._resolved_result(self.clause_type, self.hierarchy, self.text, self.perspective, self.options,
                                                        candidate = self.best,
                                                        attempts  = self.attempts,
                                                       )

        result.state_path      = list(self.path)
        result.processing_time = time.perf_counter() - start_time

        return result


    def _hierarchical_stage(self):
        stage_start = time.perf_counter()

        try:
            matches = self.engine.rule_matcher.find_best_matches(text                 = self.text,
                                                                 clause_type_id       = self.clause_type.id,
                                                                 perspective          = self.perspective,
                                                                 max_results          = self.options.max_results,
                                                                 confidence_threshold = self.options.confidence_threshold,
                                                                 use_ml_features      = self.options.enable_ml_scoring,
                                                                 prefer_higher_levels = self.options.prefer_higher_levels,
                                                                )

        except Exception as e:
            log_error(e, context = {"component" : "ClauseAnalysisStateMachine", "operation" : "hierarchical_stage", "clause_type_id" : self.clause_type.id})
            self._record("hierarchical", "failed", stage_start, error = str(e))
            return

        if not matches:
            self._record("hierarchical", "no_match", stage_start)
            return

        top       = matches[0]
        span      = top.span or CandidateSpan(start = 0, end = len(self.text), text = self.text)
        self.best = _Candidate(confidence    = top.confidence,
                               rule          = top.rule,
                               detected_text = span.text.strip(),
                               start         = span.start,
                               end           = span.end,
                               methods       = {DetectionMethod.HIERARCHICAL},
                               match         = top,
                              )

        self._record("hierarchical", "matched", stage_start, confidence = top.confidence)


    async def _semantic_stage(self):
        stage_start = time.perf_counter()

        try:
            detection = await self.engine.semantic_detector.detect(self.text, self.clause_type)

        except EmbeddingUnavailableError as e:
            log_warning("Semantic stage unavailable", clause_type_id = self.clause_type.id, reason = str(e))
            self._record("semantic", "failed", stage_start, error = str(e))
            return

        if (detection is None) or not self._improves(detection.confidence):
            self._record("semantic", "no_match", stage_start, confidence = detection.confidence if detection else 0.0)
            return

        if self.best is not None:
            self.best.confidence = detection.confidence
            self.best.methods.add(DetectionMethod.SEMANTIC)

        else:
            rule      = await self._attribute_semantic_rule(detection.detected_text)
            self.best = _Candidate(confidence    = detection.confidence,
                                   rule          = rule,
                                   detected_text = detection.detected_text,
                                   start         = detection.start,
                                   end           = detection.end,
                                   methods       = {DetectionMethod.SEMANTIC},
                                  )

        self._record("semantic", "matched", stage_start, confidence = detection.confidence)


    async def _attribute_semantic_rule(self, detected_text: str) -> Optional[Rule]:
        """
        Rule whose example language is closest to the detected window
        """
        rules = [rule for rule in self.hierarchy.rules() if rule.example_language]

        if not rules:
            return self._default_rule()

        try:
            hits = await self.engine.embedding_service.find_most_similar(detected_text,
                                                                         [rule.example_language for rule in rules],
                                                                         top_k     = 1,
                                                                         threshold = -1.0,
                                                                        )

        except EmbeddingUnavailableError as e:
            log_warning("Semantic rule attribution unavailable", clause_type_id = self.clause_type.id, reason = str(e))
            return self._default_rule()

        return rules[hits[0].index] if hits else self._default_rule()


    def _default_rule(self) -> Optional[Rule]:
        return self.hierarchy.roots[0].rule if self.hierarchy.roots else None


    def _keyword_stage(self):
        stage_start = time.perf_counter()

        try:
            detection = self.engine.keyword_detector.detect(self.text, self.clause_type)

        except Exception as e:
            log_error(e, context = {"component" : "ClauseAnalysisStateMachine", "operation" : "keyword_stage", "clause_type_id" : self.clause_type.id})
            self._record("keyword", "failed", stage_start, error = str(e))
            return

        if (detection is None) or not self._improves(detection.confidence):
            self._record("keyword", "no_match", stage_start, confidence = detection.confidence if detection else 0.0)
            return

        if self.best is not None:
            self.best.confidence = detection.confidence
            self.best.methods.add(DetectionMethod.KEYWORD)

        else:
            rule      = self.engine.keyword_detector.best_rule(self.text, self.hierarchy) or self._default_rule()
            self.best = _Candidate(confidence    = detection.confidence,
                                   rule          = rule,
                                   detected_text = detection.detected_text,
                                   start         = detection.start,
                                   end           = detection.end,
                                   methods       = {DetectionMethod.KEYWORD},
                                  )

        self._record("keyword", "matched", stage_start, confidence = detection.confidence)


class ClauseAnalysisEngine:
    """
    Orchestrates per-clause state machines for a document

    Clause types are analyzed concurrently (bounded by a semaphore) and independently:
    a failure inside one clause machine yields a manual-review result for that clause only
    """
    def __init__(self, rule_store: Optional[HierarchicalRuleStore] = None, embedding_service: Optional[SemanticEmbeddingService] = None,
                 weights_registry: Optional[FeatureWeightsRegistry] = None, text_generator: Any = None, result_store: Any = None,
                 rng: Optional[random.Random] = None, max_parallel: Optional[int] = None, generation_timeout: Optional[float] = None):
        """
        Initialize the analysis engine

        Arguments:
        ----------
            rule_store         : HierarchicalRuleStore (defaults to the bundled playbook in memory)

            embedding_service  : SemanticEmbeddingService for the semantic stage

            weights_registry   : FeatureWeightsRegistry shared with the feedback learner

            text_generator     : Object with generate(prompt) -> str, used for suggested language

            result_store       : Object with save_analysis(result), best effort persistence

            rng                : Random source for degraded-mode jitter

            max_parallel       : Concurrent clause machines per document

            generation_timeout : Seconds allowed per text-generation call
        """
        config                   = ModelConfig.ORCHESTRATION

        self.rule_store          = rule_store or HierarchicalRuleStore()
        self.embedding_service   = embedding_service or SemanticEmbeddingService()
        self.weights_registry    = weights_registry or FeatureWeightsRegistry()
        self.text_generator      = text_generator
        self.result_store        = result_store

        self.feature_extractor   = FeatureExtractor()
        self.confidence_adjuster = ConfidenceAdjuster(rule_store       = self.rule_store,
                                                      weights_registry = self.weights_registry,
                                                      rng              = rng,
                                                     )
        self.rule_matcher        = HierarchicalRuleMatcher(rule_store          = self.rule_store,
                                                           feature_extractor   = self.feature_extractor,
                                                           confidence_adjuster = self.confidence_adjuster,
                                                          )
        self.semantic_detector   = SemanticClauseDetector(embedding_service = self.embedding_service)
        self.keyword_detector    = KeywordClauseDetector()

        self.max_parallel        = max_parallel or settings.MAX_PARALLEL_CLAUSES or config["max_parallel"]
        self.generation_timeout  = generation_timeout or settings.GENERATION_TIMEOUT
        self.cache_size          = config["analysis_cache_size"]
        self._analysis_cache     = OrderedDict()

        log_info("ClauseAnalysisEngine initialized",
                 max_parallel   = self.max_parallel,
                 text_generator = type(self.text_generator).__name__ if self.text_generator else None,
                 result_store   = type(self.result_store).__name__ if self.result_store else None,
                )


    @property
    def model_version(self) -> str:
        return self.embedding_service.model_version


    def get_clause_types(self) -> List[ClauseType]:
        return self.rule_store.get_clause_types()


    def clear_cache(self) -> int:
        count                = len(self._analysis_cache)
        self._analysis_cache = OrderedDict()

        return count


    def _cache_key(self, text: str, perspective: PartyPerspective, options: AnalysisOptions) -> str:
        return hashlib.md5((text + perspective.value + options.cache_fingerprint()).encode("utf-8")).hexdigest()


    def _requested_clause_types(self, options: AnalysisOptions) -> List[ClauseType]:
        available = self.rule_store.get_clause_types()

        if not options.clause_types:
            return available

        by_id     = {clause.id: clause for clause in available}

        # Unknown ids still get a (missing) result
        return [by_id.get(clause_id) or ClauseType(id = clause_id, name = clause_id, display_order = len(available) + index)
                for index, clause_id in enumerate(options.clause_types)]


    @ClauseEngineLogger.log_execution_time("analyze_document")
    async def analyze_document(self, text: str, party_perspective: Union[PartyPerspective, str], options: Optional[AnalysisOptions] = None) -> DocumentAnalysisResult:
        """
        Classify every requested clause type of a document

        Arguments:
        ----------
            text              { str }             : Plain document text

            party_perspective { PartyPerspective } : Party the reviewer represents

            options           { AnalysisOptions } : Stage toggles, thresholds and clause type filter

        Returns:
        --------
            { DocumentAnalysisResult }            : One result per requested clause type, always complete
        """
        start_time   = time.perf_counter()
        perspective  = party_perspective if isinstance(party_perspective, PartyPerspective) else PartyPerspective(party_perspective)
        options      = options or AnalysisOptions()
        text         = text if isinstance(text, str) else ""
        cache_key    = self._cache_key(text, perspective, options)

        if options.use_cache and (cache_key in self._analysis_cache):
            self._analysis_cache.move_to_end(cache_key)
            cached = self._analysis_cache[cache_key]

            log_info("Analysis served from cache", analysis_id = cached.analysis_id)

            return replace(cached, clause_results = [replace(result, cache_hit = True) for result in cached.clause_results])

        clause_types = self._requested_clause_types(options)

        is_valid, validation_type, message = DocumentValidator.validate_document_text(text,
                                                                                     min_length = settings.MIN_DOCUMENT_LENGTH,
                                                                                     max_length = settings.MAX_DOCUMENT_LENGTH,
                                                                                    )

        if not is_valid:
            log_warning("Document rejected by validation", validation_type = validation_type, reason = message)
            results = [self._invalid_input_result(clause_type, perspective) for clause_type in clause_types]

        else:
            semaphore = asyncio.Semaphore(self.max_parallel)
            results   = await asyncio.gather(*[self._analyze_clause(semaphore, clause_type, text, perspective, options) for clause_type in clause_types])
            results   = list(results)

        detected     = [result for result in results if (result.tier != ResolvedTier.MISSING)]
        overall      = (sum(result.confidence for result in detected) / len(detected)) if detected else 0.0

        analysis     = DocumentAnalysisResult(perspective        = perspective,
                                              clause_results     = results,
                                              overall_confidence = overall,
                                              recommendations    = self._build_recommendations(results),
                                              detection_summary  = self._build_detection_summary(results),
                                              processing_time    = time.perf_counter() - start_time,
                                              model_version      = self.model_version,
                                             )

        if options.use_cache:
            self._analysis_cache[cache_key] = analysis

            while (len(self._analysis_cache) > self.cache_size):
                self._analysis_cache.popitem(last = False)

        self._persist(analysis)

        log_info("Document analysis complete",
                 analysis_id        = analysis.analysis_id,
                 perspective        = perspective.value,
                 clauses            = len(results),
                 detected           = len(detected),
                 overall_confidence = round(overall, 4),
                )

        return analysis


    async def _analyze_clause(self, semaphore: asyncio.Semaphore, clause_type: ClauseType, text: str, perspective: PartyPerspective,
                              options: AnalysisOptions) -> ClauseAnalysisResult:
        async with semaphore:
            start_time = time.perf_counter()

            try:
                hierarchy = self.rule_store.get_hierarchy(clause_type.id, perspective)
                machine   = ClauseAnalysisStateMachine(engine      = self,
                                                       clause_type = clause_type,
                                                       hierarchy   = hierarchy,
                                                       text        = text,
                                                       perspective = perspective,
                                                       options     = options,
                                                      )

                return await machine.run()

            except Exception as e:
                log_error(e, context = {"component" : "ClauseAnalysisEngine", "operation" : "analyze_clause", "clause_type_id" : clause_type.id})

                return ClauseAnalysisResult(clause_type_id     = clause_type.id,
                                            clause_name        = clause_type.name,
                                            detected_text      = None,
                                            tier               = ResolvedTier.MISSING,
                                            confidence         = 0.0,
                                            risk_level         = derive_risk_level(ResolvedTier.MISSING, 0.0),
                                            recommended_action = f"Manual review required - automated analysis of {clause_type.name} failed",
                                            detection_method   = DetectionMethod.NONE,
                                            processing_time    = time.perf_counter() - start_time,
                                            attempts           = [StageAttempt(stage = "analysis", outcome = "failed", error = str(e))],
                                           )


    def _invalid_input_result(self, clause_type: ClauseType, perspective: PartyPerspective) -> ClauseAnalysisResult:
        return ClauseAnalysisResult(clause_type_id       = clause_type.id,
                                    clause_name          = clause_type.name,
                                    detected_text        = None,
                                    tier                 = ResolvedTier.MISSING,
                                    confidence           = 0.0,
                                    risk_level           = derive_risk_level(ResolvedTier.MISSING, 0.0),
                                    recommended_action   = recommended_action(ResolvedTier.MISSING, 0.0, perspective, clause_type.name),
                                    detection_method     = DetectionMethod.NONE,
                                    negotiation_guidance = PlaybookRules.get_negotiation_guidance(clause_type.id, ResolvedTier.MISSING.value),
                                    state_path           = [AnalysisState.NOT_STARTED.value, AnalysisState.RESOLVED.value],
                                   )


    async def _missing_result(self, clause_type: ClauseType, hierarchy: RuleHierarchy, perspective: PartyPerspective, options: AnalysisOptions,
                              confidence: float, attempts: List[StageAttempt]) -> ClauseAnalysisResult:
        preferred = hierarchy.first_of_tier(RuleTier.PREFERRED)
        fallback  = preferred.example_language if preferred else None
        suggested = None

        if options.generate_suggestions:
            prompt    = (f"Draft a {clause_type.name} clause for a non-disclosure agreement that protects the {perspective.value} party."
                         + (f" Model it on: {fallback}" if fallback else ""))
            suggested = await self._generate_suggestion(prompt, fallback, attempts)

        return ClauseAnalysisResult(clause_type_id       = clause_type.id,
                                    clause_name          = clause_type.name,
                                    detected_text        = None,
                                    tier                 = ResolvedTier.MISSING,
                                    confidence           = min(confidence, options.confidence_threshold),
                                    risk_level           = derive_risk_level(ResolvedTier.MISSING, confidence),
                                    recommended_action   = recommended_action(ResolvedTier.MISSING, confidence, perspective, clause_type.name),
                                    detection_method     = DetectionMethod.NONE,
                                    suggested_text       = suggested,
                                    negotiation_guidance = PlaybookRules.get_negotiation_guidance(clause_type.id, ResolvedTier.MISSING.value),
                                    fallback_options     = self._fallback_options(hierarchy),
                                    attempts             = attempts,
                                   )


    async def _resolved_result(self, clause_type: ClauseType, hierarchy: RuleHierarchy, text: str, perspective: PartyPerspective,
                               options: AnalysisOptions, candidate: _Candidate, attempts: List[StageAttempt]) -> ClauseAnalysisResult:
        rule       = candidate.rule
        tier       = ResolvedTier.from_rule_tier(rule.tier)
        confidence = max(0.0, min(1.0, candidate.confidence))

        if candidate.match is not None:
            hierarchy_path = list(candidate.match.hierarchy_path)
            feature_inputs = dict(candidate.match.feature_inputs)

        else:
            node           = hierarchy.find(rule.id)
            hierarchy_path = list(node.path) if node else [rule.tier.value]
            span           = CandidateSpan(start = candidate.start, end = candidate.end, text = candidate.detected_text or "")
            feature_inputs = self.feature_extractor.extract_features(text, span, context = {"keywords": rule.keywords}).model_inputs()

        suggested  = None

        if (options.generate_suggestions and (tier != ResolvedTier.PREFERRED)):
            preferred = hierarchy.first_of_tier(RuleTier.PREFERRED)
            fallback  = preferred.example_language if preferred else (rule.example_language or None)
            prompt    = f"{rule.rewriting_prompt}\n\nClause:\n{candidate.detected_text or ''}"
            suggested = await self._generate_suggestion(prompt, fallback, attempts)

        guidance   = PlaybookRules.get_negotiation_guidance(clause_type.id, tier.value)

        if rule.guidance_notes:
            guidance.append(rule.guidance_notes)

        return ClauseAnalysisResult(clause_type_id       = clause_type.id,
                                    clause_name          = clause_type.name,
                                    detected_text        = candidate.detected_text,
                                    tier                 = tier,
                                    confidence           = confidence,
                                    risk_level           = derive_risk_level(tier, confidence),
                                    recommended_action   = recommended_action(tier, confidence, perspective, clause_type.name),
                                    detection_method     = candidate.detection_method,
                                    rule_id              = rule.id,
                                    hierarchy_path       = hierarchy_path,
                                    feature_inputs       = feature_inputs,
                                    suggested_text       = suggested,
                                    negotiation_guidance = guidance,
                                    fallback_options     = self._fallback_options(hierarchy),
                                    attempts             = attempts,
                                   )


    @staticmethod
    def _fallback_options(hierarchy: RuleHierarchy) -> List[str]:
        return [node.rule.example_language for node in hierarchy.walk()
                if (node.rule.tier == RuleTier.FALLBACK) and node.rule.example_language]


    async def _generate_suggestion(self, prompt: str, fallback: Optional[str], attempts: List[StageAttempt]) -> Optional[str]:
        """
        Best-effort text generation under a timeout; static fallback language on any failure
        """
        if (self.text_generator is None) or not settings.ENABLE_TEXT_GENERATION:
            return fallback

        stage_start = time.perf_counter()

        try:
            text = await asyncio.wait_for(asyncio.to_thread(self.text_generator.generate, prompt), timeout = self.generation_timeout)

        except asyncio.TimeoutError as e:
            log_warning("Text generation timed out", timeout = self.generation_timeout)
            attempts.append(StageAttempt(stage = "generation", outcome = "timeout", duration_seconds = time.perf_counter() - stage_start, error = str(e) or "timeout"))
            return fallback

        except TextGenerationError as e:
            log_warning("Text generation failed", reason = str(e))
            attempts.append(StageAttempt(stage = "generation", outcome = "failed", duration_seconds = time.perf_counter() - stage_start, error = str(e)))
            return fallback

        except Exception as e:
            log_error(e, context = {"component" : "ClauseAnalysisEngine", "operation" : "generate_suggestion"})
            attempts.append(StageAttempt(stage = "generation", outcome = "failed", duration_seconds = time.perf_counter() - stage_start, error = str(e)))
            return fallback

        attempts.append(StageAttempt(stage = "generation", outcome = "matched", duration_seconds = time.perf_counter() - stage_start))

        return (text or "").strip() or fallback


    def _persist(self, analysis: DocumentAnalysisResult):
        if self.result_store is None:
            return

        try:
            self.result_store.save_analysis(analysis)

        except Exception as e:
            log_error(e, context = {"component" : "ClauseAnalysisEngine", "operation" : "persist_analysis", "analysis_id" : analysis.analysis_id})


    @staticmethod
    def _build_recommendations(results: List[ClauseAnalysisResult]) -> Dict[str, List[str]]:
        high_priority   = list()
        medium_priority = list()
        next_steps      = list()

        for result in results:
            if (result.risk_level >= 4):
                high_priority.append(f"{result.clause_name}: {result.recommended_action}")

            elif (result.risk_level == 3):
                medium_priority.append(f"{result.clause_name}: {result.recommended_action}")

            if (result.tier != ResolvedTier.PREFERRED):
                for step in result.negotiation_guidance:
                    if step not in next_steps:
                        next_steps.append(step)

        return {"high_priority"        : high_priority,
                "medium_priority"      : medium_priority,
                "suggested_next_steps" : next_steps,
               }


    @staticmethod
    def _build_detection_summary(results: List[ClauseAnalysisResult]) -> Dict[str, Any]:
        by_method = {method.value: 0 for method in DetectionMethod}

        for result in results:
            by_method[result.detection_method.value] += 1

        detected  = [result for result in results if (result.tier != ResolvedTier.MISSING)]

        return {"total_clauses"      : len(results),
                "detected"           : len(detected),
                "missing"            : len(results) - len(detected),
                "by_method"          : by_method,
                "average_confidence" : round(sum(r.confidence for r in detected) / len(detected), 4) if detected else 0.0,
                "high_risk"          : sum(1 for result in results if (result.risk_level >= 4)),
               }
