"""
Tests for feedback ingestion and the online learning pass.
"""

import pytest

from services import FeedbackLearner
from services import FeatureWeightsRegistry
from services.data_models import BatchStatus
from services.data_models import ReviewerAction
from services.data_models import PartyPerspective
from services.exceptions import WeightsVersionConflict


class FlakyRegistry(FeatureWeightsRegistry):
    """Registry that reports a concurrent writer a fixed number of times."""

    def __init__(self, conflicts):
        super().__init__()
        self.conflicts = conflicts

    def swap(self, new_weights, expected_version = None):
        if (self.conflicts > 0):
            self.conflicts -= 1
            raise WeightsVersionConflict("another writer published first")

        return super().swap(new_weights, expected_version = expected_version)


class BrokenWeightsRepository:
    """Snapshot store whose writes always fail."""

    def save(self, weights):
        raise RuntimeError("disk full")


@pytest.fixture
def learner(rule_store, feedback_repository, weights_registry, weights_repository) -> FeedbackLearner:
    return FeedbackLearner(rule_store          = rule_store,
                           feedback_repository = feedback_repository,
                           weights_registry    = weights_registry,
                           weights_repository  = weights_repository,
                          )


def reject_three_times(learner):
    for _ in range(3):
        learner.record_feedback(rule_id              = "gov-mut-preferred",
                                features             = {"keyword_density": 0.5},
                                reviewer_action      = "rejected",
                                predicted_confidence = 0.8,
                                context              = {"perspective": "mutual"},
                               )


class TestRecordFeedback:
    """Valid records are stored; invalid ones are rejected without raising."""

    def test_record_is_stored(self, learner, feedback_repository):
        record = learner.record_feedback("gov-mut-preferred", {"keyword_density": 0.4}, ReviewerAction.MODIFIED, 0.6,
                                         context = {"perspective": "mutual", "analysis_id": "abc"})

        assert record.actual_quality == 0.5
        assert record.perspective == PartyPerspective.MUTUAL
        assert record.context == {"analysis_id": "abc"}
        assert feedback_repository.get_stats()["total_feedback"] == 1

    @pytest.mark.parametrize("kwargs", [{"rule_id": "", "reviewer_action": "accepted", "predicted_confidence": 0.5},
                                        {"rule_id": "r1", "reviewer_action": "approved", "predicted_confidence": 0.5},
                                        {"rule_id": "r1", "reviewer_action": "accepted", "predicted_confidence": 1.5},
                                        {"rule_id": "r1", "reviewer_action": "accepted", "predicted_confidence": "high"},
                                        {"rule_id": "r1", "reviewer_action": "accepted", "predicted_confidence": 0.5,
                                         "context": {"perspective": "sideways"}},
                                        {"rule_id": "r1", "reviewer_action": "accepted", "predicted_confidence": 0.5,
                                         "context": ["not", "a", "mapping"]},
                                        {"rule_id": "r1", "reviewer_action": "accepted", "predicted_confidence": 0.5,
                                         "features": {"keyword_density": "lots"}},
                                       ])
    def test_invalid_feedback_is_rejected(self, learner, feedback_repository, kwargs):
        kwargs.setdefault("features", {})

        assert learner.record_feedback(**kwargs) is None
        assert feedback_repository.get_stats()["total_feedback"] == 0

    def test_action_is_case_insensitive(self, learner):
        assert learner.record_feedback("r1", {}, "ACCEPTED", 0.5).reviewer_action == ReviewerAction.ACCEPTED


class TestLearningPass:
    """Batches update rule performance, feature weights and rule confidence."""

    def test_repeated_rejections(self, learner, rule_store, weights_registry, weights_repository):
        reject_three_times(learner)

        result      = learner.run_learning_pass()
        performance = rule_store.get_performance("gov-mut-preferred")

        assert result.processed == 3
        assert result.improvements_applied == 3
        assert result.errors == []
        assert performance.false_positives == 3
        assert performance.true_positives == 0
        assert performance.f1_score == 0.0
        assert weights_registry.version == 2
        assert weights_registry.current().get("keyword_density") == pytest.approx(0.15 - 0.012)
        assert weights_repository.load_latest().version == 2
        assert rule_store.get_rule("gov-mut-preferred").confidence_score == pytest.approx(0.63)

    def test_acceptance_moves_confidence_up(self, learner, rule_store):
        learner.record_feedback("gov-mut-fallback", {}, "accepted", 0.9)

        learner.run_learning_pass()

        assert rule_store.get_rule("gov-mut-fallback").confidence_score == pytest.approx(0.73)
        assert rule_store.get_performance("gov-mut-fallback").true_positives == 1

    def test_missing_predictions_count_as_negatives(self, learner, rule_store):
        learner.record_feedback("gov-mut-preferred", {}, "accepted", 0.2, context = {"predicted_missing": True})
        learner.record_feedback("gov-mut-preferred", {}, "rejected", 0.2, context = {"predicted_missing": True})

        learner.run_learning_pass()
        performance = rule_store.get_performance("gov-mut-preferred")

        assert performance.true_negatives == 1
        assert performance.false_negatives == 1
        assert performance.sample_size == 2

    def test_unknown_features_are_ignored(self, learner, weights_registry):
        learner.record_feedback("gov-mut-preferred", {"not_a_feature": 1.0}, "rejected", 0.9)

        result = learner.run_learning_pass()

        assert weights_registry.version == 1
        assert result.improvements_applied == 2

    def test_weights_stay_bounded(self, learner, weights_registry):
        learner.record_feedback("gov-mut-preferred", {"keyword_density": 1000.0}, "accepted", 0.0)

        learner.run_learning_pass()

        assert weights_registry.current().get("keyword_density") == 1.0

    def test_rule_cache_is_invalidated(self, learner, rule_store):
        cached = rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL)
        reject_three_times(learner)

        learner.run_learning_pass()
        rebuilt = rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL)

        assert rebuilt is not cached
        assert rebuilt.find("gov-mut-preferred").rule.confidence_score == pytest.approx(0.63)

    def test_second_pass_is_a_no_op(self, learner, weights_registry):
        reject_three_times(learner)
        learner.run_learning_pass()

        result = learner.run_learning_pass()

        assert result.processed == 0
        assert result.improvements_applied == 0
        assert weights_registry.version == 2

    def test_unknown_rule_updates_performance_only(self, learner, rule_store):
        learner.record_feedback("retired-rule", {}, "accepted", 0.5)

        result = learner.run_learning_pass()

        assert result.improvements_applied == 1
        assert rule_store.get_performance("retired-rule").true_positives == 1


class TestBatchFailures:
    """Malformed batches are marked failed and reported."""

    def test_malformed_raw_batch(self, learner, feedback_repository):
        batch_id = feedback_repository.enqueue_raw_batch([{"rule_id": "gov-mut-preferred"}])

        result   = learner.run_learning_pass()
        batch    = feedback_repository.get_batch(batch_id)

        assert result.processed == 0
        assert len(result.errors) == 1
        assert batch.status == BatchStatus.FAILED
        assert "malformed" in batch.error_message

    def test_empty_raw_batch(self, learner, feedback_repository):
        batch_id = feedback_repository.enqueue_raw_batch([])

        learner.run_learning_pass()

        assert feedback_repository.get_batch(batch_id).error_message == "batch has no records"

    def test_good_batches_survive_a_bad_one(self, learner, feedback_repository):
        feedback_repository.enqueue_raw_batch([{"nonsense": True}])
        learner.record_feedback("gov-mut-preferred", {}, "accepted", 0.5)

        result = learner.run_learning_pass()
        stats  = feedback_repository.get_stats()

        assert result.processed == 1
        assert stats["batches_by_status"]["failed"] == 1
        assert stats["batches_by_status"]["completed"] == 1


class TestWeightConflicts:
    """Weight publication retries on version conflicts."""

    def test_conflict_is_retried(self, rule_store, feedback_repository):
        registry = FlakyRegistry(conflicts = 1)
        learner  = FeedbackLearner(rule_store = rule_store, feedback_repository = feedback_repository, weights_registry = registry)

        learner.record_feedback("gov-mut-preferred", {"keyword_density": 0.5}, "rejected", 0.8)
        result   = learner.run_learning_pass()

        assert result.errors == []
        assert registry.version == 2

    def test_persistent_conflict_fails_the_batch(self, rule_store, feedback_repository):
        registry = FlakyRegistry(conflicts = 10)
        learner  = FeedbackLearner(rule_store = rule_store, feedback_repository = feedback_repository, weights_registry = registry)

        for _ in range(3):
            learner.record_feedback("gov-mut-preferred", {"keyword_density": 0.5}, "rejected", 0.8)

        result   = learner.run_learning_pass()

        assert len(result.errors) == 1
        assert registry.version == 1
        assert feedback_repository.get_stats()["batches_by_status"]["failed"] == 1
        assert rule_store.get_performance("gov-mut-preferred") is None
        assert rule_store.get_rule("gov-mut-preferred").confidence_score == pytest.approx(0.7)

    def test_failed_snapshot_save_rolls_back(self, rule_store, feedback_repository, weights_registry):
        learner = FeedbackLearner(rule_store          = rule_store,
                                  feedback_repository = feedback_repository,
                                  weights_registry    = weights_registry,
                                  weights_repository  = BrokenWeightsRepository(),
                                 )

        learner.record_feedback("gov-mut-preferred", {"keyword_density": 0.5}, "rejected", 0.8)
        result  = learner.run_learning_pass()

        assert len(result.errors) == 1
        assert weights_registry.version == 1
        assert weights_registry.current().get("keyword_density") == pytest.approx(0.15)
        assert rule_store.get_performance("gov-mut-preferred") is None


class TestLearnerAnalytics:
    """Explicit reset and reporting."""

    def test_reset_weights_persists_new_version(self, learner, weights_registry, weights_repository):
        reject_three_times(learner)
        learner.run_learning_pass()

        reset = learner.reset_weights()

        assert reset.version == 3
        assert reset.get("keyword_density") == pytest.approx(0.15)
        assert weights_repository.list_versions() == [2, 3]

    def test_learning_analytics(self, learner):
        reject_three_times(learner)
        learner.run_learning_pass()

        analytics = learner.get_learning_analytics()

        assert analytics["total_feedback"] == 3
        assert analytics["total_batches"] == 1
        assert analytics["batches_by_status"]["completed"] == 1
        assert analytics["weights_version"] == 2
        assert analytics["learning_rate"] == pytest.approx(0.01)
        assert analytics["batch_size"] == 50
        assert "keyword_density" in analytics["weights"]
