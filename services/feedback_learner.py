# DEPENDENCIES
import sys
import threading
from typing import Any
from typing import Dict
from typing import List
from pathlib import Path
from typing import Optional
from collections import defaultdict

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from utils.logger import log_error
from utils.logger import log_warning
from config.settings import settings
from config.model_config import ModelConfig
from utils.logger import ClauseEngineLogger
from services.data_models import LearningBatch
from services.data_models import FeedbackRecord
from services.data_models import ReviewerAction
from services.data_models import PartyPerspective
from services.rule_store import HierarchicalRuleStore
from services.data_models import LearningPassResult
from services.feature_weights import FeatureWeightsRegistry
from services.exceptions import WeightsVersionConflict
from services.exceptions import FeedbackValidationError


class FeedbackLearner:
    """
    Feedback ingestion and the online learning step

    record_feedback() stores one immutable record per reviewer action and never raises.
    run_learning_pass() claims pending batches and, per batch:
    - adds TP/FP/TN/FN outcomes to each rule's performance row
    - nudges the feature weights by a gradient step on (actual - predicted) quality
    - moves each rule's base confidence toward its observed quality (moving average)
    and marks the batch completed, or failed with an error message
    """
    MAX_SWAP_ATTEMPTS = 3

    def __init__(self, rule_store: HierarchicalRuleStore, feedback_repository: Any, weights_registry: FeatureWeightsRegistry,
                 weights_repository: Any = None, learning_rate: Optional[float] = None, batch_size: Optional[int] = None):
        """
        Initialize the learner

        Arguments:
        ----------
            rule_store          : HierarchicalRuleStore whose provider receives performance and confidence updates

            feedback_repository : SQLFeedbackRepository (batches of feedback records)

            weights_registry    : FeatureWeightsRegistry shared with the confidence adjuster

            weights_repository  : FeatureWeightsRepository, snapshots persisted after each batch

            learning_rate       : Gradient step size

            batch_size          : Records per learning batch
        """
        self.config              = ModelConfig.LEARNING
        self.rule_store          = rule_store
        self.feedback_repository = feedback_repository
        self.weights_registry    = weights_registry
        self.weights_repository  = weights_repository
        self.learning_rate       = learning_rate or settings.LEARNING_RATE or self.config["learning_rate"]
        self.batch_size          = batch_size or settings.FEEDBACK_BATCH_SIZE or self.config["batch_size"]
        self._pass_lock          = threading.Lock()

        log_info("FeedbackLearner initialized",
                 learning_rate   = self.learning_rate,
                 batch_size      = self.batch_size,
                 weights_version = self.weights_registry.version,
                )


    def record_feedback(self, rule_id: str, features: Dict[str, float], reviewer_action: Any, predicted_confidence: float,
                        context: Optional[Dict[str, Any]] = None) -> Optional[FeedbackRecord]:
        """
        Store one reviewer action for the next learning pass

        Arguments:
        ----------
            rule_id              { str }   : Rule the prediction was attributed to

            features             { dict }  : Feature inputs at prediction time

            reviewer_action      { str }   : accepted | rejected | modified

            predicted_confidence { float } : Confidence shown to the reviewer

            context              { dict }  : perspective, predicted_missing and any other metadata

        Returns:
        --------
            { FeedbackRecord }             : The stored record, or None when it could not be stored
        """
        try:
            record = self._build_record(rule_id, features, reviewer_action, predicted_confidence, context or {})

        except FeedbackValidationError as e:
            log_warning("Feedback rejected", rule_id = str(rule_id), reason = str(e))
            return None

        try:
            batch_id = self.feedback_repository.add_record(record, batch_size = self.batch_size)

        except Exception as e:
            log_error(e, context = {"component" : "FeedbackLearner", "operation" : "record_feedback", "rule_id" : record.rule_id})
            return None

        log_info("Feedback recorded",
                 rule_id         = record.rule_id,
                 reviewer_action = record.reviewer_action.value,
                 batch_id        = batch_id,
                )

        return record


    def _build_record(self, rule_id: str, features: Dict[str, float], reviewer_action: Any, predicted_confidence: float,
                      context: Dict[str, Any]) -> FeedbackRecord:
        if not isinstance(context, dict):
            raise FeedbackValidationError("context must be a mapping")

        if not (isinstance(rule_id, str) and rule_id.strip()):
            raise FeedbackValidationError("rule_id must be a non-empty string")

        try:
            action     = reviewer_action if isinstance(reviewer_action, ReviewerAction) else ReviewerAction(str(reviewer_action).lower())
            confidence = float(predicted_confidence)
            features   = {str(name): float(value) for name, value in dict(features or {}).items()}

        except (TypeError, ValueError) as e:
            raise FeedbackValidationError(f"Malformed feedback: {e}") from e

        if not (0.0 <= confidence <= 1.0):
            raise FeedbackValidationError(f"predicted_confidence must be within [0, 1], got {confidence}")

        perspective = context.get("perspective")

        try:
            perspective = PartyPerspective(perspective) if perspective else None

        except ValueError as e:
            raise FeedbackValidationError(f"Unknown perspective: {perspective}") from e

        return FeedbackRecord(rule_id              = rule_id.strip(),
                              features             = features,
                              reviewer_action      = action,
                              predicted_confidence = confidence,
                              actual_quality       = self.config["quality_labels"][action.value],
                              perspective          = perspective,
                              context              = {k: v for k, v in context.items() if (k != "perspective")},
                             )


    @ClauseEngineLogger.log_execution_time("learning_pass")
    def run_learning_pass(self) -> LearningPassResult:
        """
        Process every pending batch; a no-op when nothing is pending

        Returns:
        --------
            { LearningPassResult } : records processed, improvements applied, batch errors
        """
        result = LearningPassResult()

        with self._pass_lock:
            batches = self.feedback_repository.claim_pending()

            if not batches:
                return result

            for batch in batches:
                try:
                    records      = self._parse_batch(batch)
                    improvements = self._apply_batch(records)

                except FeedbackValidationError as e:
                    self.feedback_repository.mark_failed(batch.batch_id, str(e))
                    result.errors.append(f"batch {batch.batch_id}: {e}")
                    log_warning("Learning batch rejected", batch_id = batch.batch_id, reason = str(e))
                    continue

                except Exception as e:
                    log_error(e, context = {"component" : "FeedbackLearner", "operation" : "run_learning_pass", "batch_id" : batch.batch_id})
                    self.feedback_repository.mark_failed(batch.batch_id, f"{type(e).__name__}: {e}")
                    result.errors.append(f"batch {batch.batch_id}: {e}")
                    continue

                self.feedback_repository.mark_completed(batch.batch_id, improvements)
                result.processed            += len(records)
                result.improvements_applied += improvements

            if (result.improvements_applied > 0):
                self.rule_store.invalidate()

        log_info("Learning pass complete",
                 batches              = len(batches),
                 processed            = result.processed,
                 improvements_applied = result.improvements_applied,
                 errors               = len(result.errors),
                 weights_version      = self.weights_registry.version,
                )

        return result


    @staticmethod
    def _parse_batch(batch: LearningBatch) -> List[FeedbackRecord]:
        if not isinstance(batch.records, list):
            raise FeedbackValidationError("batch records must be a list")

        if not batch.records:
            raise FeedbackValidationError("batch has no records")

        records = list()

        for index, data in enumerate(batch.records):
            try:
                records.append(FeedbackRecord.from_dict(data))

            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise FeedbackValidationError(f"record {index} is malformed: {e!r}") from e

        return records


    @staticmethod
    def _outcome(record: FeedbackRecord) -> Dict[str, int]:
        """
        Confusion-matrix cell for one record
        """
        if record.predicted_missing:
            return {"tn": 1} if (record.reviewer_action == ReviewerAction.ACCEPTED) else {"fn": 1}

        if (record.reviewer_action == ReviewerAction.ACCEPTED):
            return {"tp": 1}

        return {"fp": 1}


    def _apply_batch(self, records: List[FeedbackRecord]) -> int:
        """
        Apply one batch; rule statistics are written only after the weight step is published,
        so a batch that fails on weights leaves every rule untouched
        """
        improvements = 0
        outcomes     = defaultdict(lambda: {"tp": 0, "fp": 0, "tn": 0, "fn": 0})
        qualities    = defaultdict(list)

        for record in records:
            for cell, count in self._outcome(record).items():
                outcomes[record.rule_id][cell] += count

            qualities[record.rule_id].append(record.actual_quality)

        if self._update_weights(records):
            improvements += 1

        for rule_id, counts in outcomes.items():
            performance = self.rule_store.record_outcomes(rule_id, **counts)
            improvements += 1

            log_info("Rule performance updated",
                     rule_id     = rule_id,
                     f1_score    = round(performance.f1_score, 4),
                     sample_size = performance.sample_size,
                    )

        for rule_id, values in qualities.items():
            if self._update_rule_confidence(rule_id, sum(values) / len(values)):
                improvements += 1

        return improvements


    def _update_weights(self, records: List[FeedbackRecord]) -> bool:
        """
        One gradient step per batch: w += lr * (actual - predicted) * input, clamped to the weight bound
        """
        for _ in range(self.MAX_SWAP_ATTEMPTS):
            current = self.weights_registry.current()
            deltas  = defaultdict(float)

            for record in records:
                error = record.actual_quality - record.predicted_confidence

                for name, value in record.features.items():
                    if name in current.weights:
                        deltas[name] += self.learning_rate * error * value

            if not any(deltas.values()):
                return False

            updated = current.with_updates(deltas, bound = self.config["weight_bound"])

            try:
                self.weights_registry.swap(updated, expected_version = current.version)

            except WeightsVersionConflict as e:
                log_warning("Feature weights changed during learning, retrying", reason = str(e))
                continue

            if self.weights_repository is not None:
                try:
                    self.weights_repository.save(updated)

                except Exception:
                    self.weights_registry.swap(current, expected_version = updated.version)
                    log_warning("Feature weights rolled back after a failed save", version = current.version)
                    raise

            return True

        raise WeightsVersionConflict("Could not publish feature weights after repeated conflicts")


    def _update_rule_confidence(self, rule_id: str, observed_quality: float) -> bool:
        rule = self.rule_store.get_rule(rule_id)

        if rule is None:
            log_warning("Feedback for unknown rule", rule_id = rule_id)
            return False

        smoothing      = self.config["confidence_smoothing"]
        new_confidence = (1.0 - smoothing) * rule.confidence_score + smoothing * observed_quality

        return self.rule_store.update_rule_confidence(rule_id, new_confidence) is not None


    def reset_weights(self):
        """
        Explicit retraining: restore default weights and persist them as a new snapshot
        """
        defaults = self.weights_registry.reset_to_defaults()

        if self.weights_repository is not None:
            self.weights_repository.save(defaults)

        return defaults


    def get_learning_analytics(self) -> Dict[str, Any]:
        stats   = self.feedback_repository.get_stats()
        weights = self.weights_registry.current()

        return {**stats,
                "weights_version" : weights.version,
                "weights"         : weights.to_dict()["weights"],
                "learning_rate"   : self.learning_rate,
                "batch_size"      : self.batch_size,
               }
