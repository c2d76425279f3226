"""
Tests for feature extraction, confidence adjustment and the feature weight snapshots.
"""

import random
import dataclasses

import pytest

from conftest import GOVERNING_LAW_TEXT
from services import FeatureWeights
from services import FeatureExtractor
from services import ConfidenceAdjuster
from services import FeatureWeightsRegistry
from services.data_models import RuleTier
from services.data_models import CandidateSpan
from services.data_models import FeatureVector
from services.data_models import PartyPerspective
from services.exceptions import WeightsVersionConflict


class ExplodingRegistry:
    """Weights registry whose snapshot lookup fails."""

    version = 1

    def current(self):
        raise RuntimeError("weights store offline")


@pytest.fixture
def extractor() -> FeatureExtractor:
    return FeatureExtractor()


@pytest.fixture
def adjuster(rule_store, weights_registry) -> ConfidenceAdjuster:
    return ConfidenceAdjuster(rule_store = rule_store, weights_registry = weights_registry, rng = random.Random(3))


def whole_span(text):
    return CandidateSpan(start = 0, end = len(text), text = text)


class TestCandidateSpan:
    """Spans are anchored on the earliest keyword hit."""

    def test_span_around_keyword(self, extractor):
        text = ("x" * 300) + " governed by the laws of Singapore " + ("y" * 600)
        span = extractor.locate_candidate_span(text, ["governed"])

        assert span.start == 201
        assert span.end == 701
        assert span.text == text[201:701]

    def test_span_defaults_to_document_opening(self, extractor):
        text = "z" * 800
        span = extractor.locate_candidate_span(text, ["governed"])

        assert (span.start, span.end) == (0, 500)

    def test_span_is_clamped_to_short_documents(self, extractor):
        span = extractor.locate_candidate_span(GOVERNING_LAW_TEXT, ["singapore"])

        assert span.start == 0
        assert span.end == len(GOVERNING_LAW_TEXT)


class TestFeatureExtractor:
    """Structural and linguistic features of a span."""

    def test_governing_law_features(self, extractor):
        features = extractor.extract_features(GOVERNING_LAW_TEXT, whole_span(GOVERNING_LAW_TEXT), context = {"keywords": ["arbitration"]})

        assert features.span_length == len(GOVERNING_LAW_TEXT)
        assert features.sentence_count == 1
        assert features.paragraph_count == 1
        assert features.modal_verb_count == 1
        assert features.capitalized_words == 3
        assert features.legal_term_density > 0.0
        assert features.keyword_density > 0.0
        assert features.proximity_to_key_terms == 1.0
        assert features.document_position == 0.0

    def test_definition_and_cross_reference_counts(self, extractor):
        text     = ("Confidential Information means business data and includes know-how, "
                    "as set out in Section 4.2 and Clause 7.")
        features = extractor.extract_features(text, whole_span(text))

        assert features.definition_indicators == 2
        assert features.cross_references == 2
        assert features.has_subsections

    def test_numbered_lists_detected(self, extractor):
        text     = "The Recipient shall:\n(a) keep information secret;\n(b) return all copies."
        features = extractor.extract_features(text, whole_span(text))

        assert features.has_numbered_lists

    def test_restrictive_language_scores_negative_sentiment(self, extractor):
        text     = "Recipient shall not disclose and must never share"
        features = extractor.extract_features(text, whole_span(text))

        assert features.sentiment_score == pytest.approx(-1.0)

    def test_proximity_decays_with_distance(self, extractor):
        text     = ("a" * 510) + "governed"
        span     = CandidateSpan(start = 0, end = 10, text = text[:10])
        features = extractor.extract_features(text, span, context = {"keywords": ["governed"]})

        assert features.proximity_to_key_terms == pytest.approx(0.5)

    def test_empty_span(self, extractor):
        features = extractor.extract_features("  ", CandidateSpan(start = 0, end = 2, text = "  "))

        assert features.span_length == 2
        assert features.sentence_count == 0
        assert features.keyword_density == 0.0

    def test_model_inputs_are_bounded(self, extractor):
        text   = " ".join(["shall means Section 1.1 CONFIDENTIAL Party"] * 200)
        inputs = extractor.extract_features(text, whole_span(text)).model_inputs(historical_accuracy = 0.9, user_override_rate = 0.2)

        assert inputs["historical_accuracy"] == 0.9
        assert inputs["user_override_rate"] == 0.2
        assert all(-1.0 <= value <= 1.0 for value in inputs.values())


class TestConfidenceAdjuster:
    """Final scores stay in [0.1, 1.0] and reflect rule history."""

    def test_no_history_uses_neutral_defaults(self, adjuster):
        components = adjuster.adjust_confidence(0.7, FeatureVector(), "gov-mut-preferred", PartyPerspective.MUTUAL)

        assert components.history_component == 0.0
        assert components.override_penalty == 0.0
        assert components.inputs["historical_accuracy"] == 0.7
        assert components.inputs["user_override_rate"] == 0.1
        assert components.weights_version == 1
        assert not components.degraded

    def test_scores_are_clamped(self, adjuster):
        strong = FeatureVector(span_length = 500, keyword_density = 1.0, legal_term_density = 1.0, has_numbered_lists = True,
                               proximity_to_key_terms = 1.0, definition_indicators = 5, modal_verb_count = 5)
        high   = adjuster.adjust_confidence(0.99, strong, "gov-mut-preferred", "mutual")
        low    = adjuster.adjust_confidence(-5.0, FeatureVector(), "gov-mut-preferred", "mutual")

        assert high.final_score == 1.0
        assert low.final_score == pytest.approx(0.1)
        assert abs(high.ml_adjustment) <= 0.3

    def test_strong_history_boosts(self, adjuster, rule_store):
        rule_store.record_outcomes("gov-mut-preferred", tp = 5)

        components = adjuster.adjust_confidence(0.5, FeatureVector(), "gov-mut-preferred", PartyPerspective.MUTUAL)

        assert components.history_component == pytest.approx(0.1)
        assert components.override_penalty == 0.0

    def test_poor_history_and_overrides_penalize(self, adjuster, rule_store):
        rule_store.record_outcomes("gov-mut-preferred", fp = 5)

        components = adjuster.adjust_confidence(0.5, FeatureVector(), "gov-mut-preferred", PartyPerspective.MUTUAL)

        assert components.history_component == pytest.approx(-0.15)
        assert components.override_penalty == pytest.approx(-0.2)

    def test_accepted_absences_carry_no_override_penalty(self, adjuster, rule_store):
        rule_store.record_outcomes("gov-mut-preferred", tn = 5)

        components = adjuster.adjust_confidence(0.5, FeatureVector(), "gov-mut-preferred", PartyPerspective.MUTUAL)

        assert components.override_penalty == 0.0
        assert components.inputs["user_override_rate"] == 0.0

    def test_small_samples_do_not_move_history(self, adjuster, rule_store):
        rule_store.record_outcomes("gov-mut-preferred", fp = 2)

        assert adjuster.adjust_confidence(0.5, FeatureVector(), "gov-mut-preferred", "mutual").history_component == 0.0

    def test_context_cues(self, adjuster):
        features   = FeatureVector(span_length = 400, legal_term_density = 0.2, has_subsections = True, sentiment_score = -0.5)
        components = adjuster.adjust_confidence(0.5, features, "gov-rcv-unacceptable", PartyPerspective.RECEIVING, tier = RuleTier.UNACCEPTABLE)

        assert components.context_component == pytest.approx(0.15)

    def test_tier_is_looked_up_when_omitted(self, adjuster):
        features   = FeatureVector(sentiment_score = 0.5)
        components = adjuster.adjust_confidence(0.5, features, "gov-dsc-fallback", PartyPerspective.DISCLOSING)

        assert components.context_component == pytest.approx(0.02)

    def test_internal_failure_degrades_gracefully(self, rule_store):
        adjuster   = ConfidenceAdjuster(rule_store = rule_store, weights_registry = ExplodingRegistry(), rng = random.Random(1))
        components = adjuster.adjust_confidence(0.6, FeatureVector(), "gov-mut-preferred", PartyPerspective.MUTUAL)

        assert components.degraded
        assert 0.55 <= components.final_score <= 0.65
        assert components.ml_adjustment == 0.0

    def test_unparseable_base_degrades_to_floor(self, adjuster):
        components = adjuster.adjust_confidence("high", FeatureVector(), "gov-mut-preferred", PartyPerspective.MUTUAL)

        assert components.degraded
        assert 0.1 <= components.final_score <= 0.15


class TestFeatureWeights:
    """Weight snapshots are immutable and versioned."""

    def test_defaults(self):
        weights = FeatureWeights.defaults()

        assert weights.version == 1
        assert weights.get("historical_accuracy") == pytest.approx(0.25)
        assert weights.get("user_override_rate") == pytest.approx(-0.20)
        assert weights.get("unknown") == 0.0

    def test_snapshot_cannot_be_mutated(self):
        weights = FeatureWeights.defaults()

        with pytest.raises(TypeError):
            weights.weights["keyword_density"] = 9.0

        with pytest.raises(dataclasses.FrozenInstanceError):
            weights.version = 7

    def test_source_mapping_is_copied(self):
        source  = {"keyword_density": 0.5}
        weights = FeatureWeights(weights = source)
        source["keyword_density"] = 0.9

        assert weights.get("keyword_density") == 0.5

    def test_with_updates_clamps_and_bumps_version(self):
        weights = FeatureWeights.defaults()
        updated = weights.with_updates({"keyword_density": 5.0, "span_length": -0.05})

        assert updated.version == 2
        assert updated.get("keyword_density") == 1.0
        assert updated.get("span_length") == pytest.approx(0.0)
        assert weights.get("keyword_density") == pytest.approx(0.15)

    def test_weighted_sum_ignores_unknown_inputs(self):
        weights = FeatureWeights(weights = {"a": 0.5, "b": -1.0})

        assert weights.weighted_sum({"a": 1.0, "b": 0.5, "c": 10.0}) == pytest.approx(0.0)


class TestFeatureWeightsRegistry:
    """Snapshots are published whole, guarded by version checks."""

    def test_swap_returns_previous(self, weights_registry):
        original = weights_registry.current()
        updated  = original.with_updates({"keyword_density": 0.1})

        assert weights_registry.swap(updated, expected_version = 1) is original
        assert weights_registry.current() is updated
        assert weights_registry.version == 2

    def test_stale_swap_is_refused(self, weights_registry):
        weights_registry.swap(weights_registry.current().with_updates({"span_length": 0.1}))

        with pytest.raises(WeightsVersionConflict):
            weights_registry.swap(FeatureWeights.defaults(), expected_version = 1)

        assert weights_registry.version == 2

    def test_reset_to_defaults_bumps_version(self, weights_registry):
        weights_registry.swap(weights_registry.current().with_updates({"keyword_density": 0.5}))

        reset = weights_registry.reset_to_defaults()

        assert reset.version == 3
        assert reset.get("keyword_density") == pytest.approx(0.15)

    def test_initial_snapshot(self):
        registry = FeatureWeightsRegistry(initial = FeatureWeights(weights = {"a": 1.0}, version = 9))

        assert registry.version == 9
