"""
Tests for the hierarchical rule store and hierarchy construction.
"""

import pytest

from services import RuleHierarchy
from services import StaticRuleProvider
from services import HierarchicalRuleStore
from services.data_models import Rule
from services.data_models import RuleTier
from services.data_models import RulePerformance
from services.data_models import PartyPerspective


def make_rule(rule_id, tier = RuleTier.PREFERRED, parent_id = None, confidence = 0.7, **kwargs):
    return Rule(id               = rule_id,
                clause_type_id   = kwargs.pop("clause_type_id", "governing_law"),
                perspective      = kwargs.pop("perspective", PartyPerspective.MUTUAL),
                tier             = tier,
                rule_text        = kwargs.pop("rule_text", f"rule {rule_id}"),
                confidence_score = confidence,
                parent_id        = parent_id,
                **kwargs,
               )


class TestPlaybookHierarchy:
    """The bundled playbook forms one preferred -> fallback -> unacceptable chain per perspective."""

    def test_governing_law_mutual_chain(self, rule_store):
        hierarchy = rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL)

        assert len(hierarchy) == 3
        assert [root.rule.id for root in hierarchy.roots] == ["gov-mut-preferred"]

        fallback     = hierarchy.find("gov-mut-fallback")
        unacceptable = hierarchy.find("gov-mut-unacceptable")

        assert fallback.depth == 2
        assert fallback.path == ["preferred", "fallback"]
        assert unacceptable.depth == 3
        assert unacceptable.path == ["preferred", "fallback", "unacceptable"]
        assert not hierarchy.flagged

    def test_string_perspective_is_accepted(self, rule_store):
        assert len(rule_store.get_hierarchy("confidentiality_duration", "receiving")) == 3

    def test_walk_visits_every_rule_once(self, rule_store):
        hierarchy = rule_store.get_hierarchy("confidentiality_definition", PartyPerspective.DISCLOSING)
        ids       = [node.rule.id for node in hierarchy.walk()]

        assert ids == ["def-dsc-preferred", "def-dsc-fallback", "def-dsc-unacceptable"]

    def test_first_of_tier(self, rule_store):
        hierarchy = rule_store.get_hierarchy("governing_law", PartyPerspective.RECEIVING)

        assert hierarchy.first_of_tier(RuleTier.FALLBACK).id == "gov-rcv-fallback"

    def test_unknown_clause_type_yields_empty_hierarchy(self, rule_store):
        hierarchy = rule_store.get_hierarchy("indemnification", PartyPerspective.MUTUAL)

        assert hierarchy.is_empty
        assert len(hierarchy) == 0
        assert hierarchy.rules() == []

    def test_clause_types_in_display_order(self, rule_store):
        clause_types = rule_store.get_clause_types()

        assert [clause.id for clause in clause_types] == ["confidentiality_definition",
                                                          "confidentiality_duration",
                                                          "governing_law",
                                                         ]
        assert rule_store.get_clause_type("governing_law").position_hint == "late"
        assert rule_store.get_clause_type("unknown") is None


class TestHierarchyValidation:
    """Malformed parent links are detached and flagged instead of failing."""

    def test_cycle_members_are_detached(self):
        rules     = [make_rule("a", parent_id = "b"),
                     make_rule("b", parent_id = "a"),
                     make_rule("c"),
                    ]
        hierarchy = RuleHierarchy.build("governing_law", PartyPerspective.MUTUAL, rules)

        assert hierarchy.flagged == {"a": "cycle", "b": "cycle"}
        assert sorted(root.rule.id for root in hierarchy.roots) == ["a", "b", "c"]
        assert len(hierarchy) == 3

    def test_self_parent_is_a_cycle(self):
        hierarchy = RuleHierarchy.build("governing_law", PartyPerspective.MUTUAL, [make_rule("solo", parent_id = "solo")])

        assert hierarchy.flagged == {"solo": "cycle"}
        assert hierarchy.roots[0].depth == 1

    def test_tier_contradiction_is_detached(self):
        rules     = [make_rule("fb", tier = RuleTier.FALLBACK),
                     make_rule("pref", tier = RuleTier.PREFERRED, parent_id = "fb"),
                    ]
        hierarchy = RuleHierarchy.build("governing_law", PartyPerspective.MUTUAL, rules)

        assert hierarchy.flagged == {"pref": "tier_contradiction"}
        assert all(not root.children for root in hierarchy.roots)
        assert hierarchy.find("pref").path == ["preferred"]

    def test_missing_parent_becomes_root(self):
        hierarchy = RuleHierarchy.build("governing_law", PartyPerspective.MUTUAL, [make_rule("orphan", tier = RuleTier.FALLBACK, parent_id = "ghost")])

        assert [root.rule.id for root in hierarchy.roots] == ["orphan"]
        assert hierarchy.find("orphan").path == ["fallback"]
        assert not hierarchy.flagged

    def test_siblings_ordered_by_confidence(self):
        rules     = [make_rule("root"),
                     make_rule("low", tier = RuleTier.FALLBACK, parent_id = "root", confidence = 0.4),
                     make_rule("high", tier = RuleTier.FALLBACK, parent_id = "root", confidence = 0.9),
                     make_rule("mid", tier = RuleTier.FALLBACK, parent_id = "root", confidence = 0.6),
                    ]
        hierarchy = RuleHierarchy.build("governing_law", PartyPerspective.MUTUAL, rules)

        assert [child.rule.id for child in hierarchy.roots[0].children] == ["high", "mid", "low"]

    def test_equal_confidence_keeps_insertion_order(self):
        rules     = [make_rule("first"), make_rule("second"), make_rule("third")]
        hierarchy = RuleHierarchy.build("governing_law", PartyPerspective.MUTUAL, rules)

        assert [root.rule.id for root in hierarchy.roots] == ["first", "second", "third"]


class TestRuleStoreCaching:
    """Hierarchies are cached per (clause type, perspective) until invalidated."""

    def test_hierarchy_is_cached(self, rule_store):
        first  = rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL)
        second = rule_store.get_hierarchy("governing_law", "mutual")

        assert first is second

    def test_invalidate_drops_matching_entries(self, rule_store):
        governing = rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL)
        duration  = rule_store.get_hierarchy("confidentiality_duration", PartyPerspective.MUTUAL)

        rule_store.invalidate("governing_law")

        assert rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL) is not governing
        assert rule_store.get_hierarchy("confidentiality_duration", PartyPerspective.MUTUAL) is duration

    def test_invalidate_everything(self, rule_store):
        cached = rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL)

        rule_store.invalidate()

        assert rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL) is not cached

    def test_update_rule_confidence_clamps_and_invalidates(self, rule_store):
        cached  = rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL)

        raised  = rule_store.update_rule_confidence("gov-mut-fallback", 5.0)
        lowered = rule_store.update_rule_confidence("gov-mut-preferred", -1.0)
        rebuilt = rule_store.get_hierarchy("governing_law", PartyPerspective.MUTUAL)

        assert raised.confidence_score == 1.0
        assert lowered.confidence_score == pytest.approx(0.1)
        assert rebuilt is not cached
        assert rebuilt.find("gov-mut-fallback").rule.confidence_score == 1.0

    def test_update_unknown_rule_returns_none(self, rule_store):
        assert rule_store.update_rule_confidence("no-such-rule", 0.5) is None


class TestRulePerformance:
    """Outcome counts accumulate into precision, recall and F1."""

    def test_record_outcomes_accumulates(self, rule_store):
        rule_store.record_outcomes("gov-mut-preferred", tp = 2)
        performance = rule_store.record_outcomes("gov-mut-preferred", fp = 1)

        assert performance.sample_size == 3
        assert performance.precision == pytest.approx(2 / 3)
        assert performance.recall == pytest.approx(1.0)
        assert performance.f1_score == pytest.approx(0.8)
        assert rule_store.get_performance("gov-mut-preferred") == performance

    def test_only_false_positives_give_zero_f1(self):
        performance = RulePerformance(rule_id = "r").with_outcomes(fp = 3)

        assert performance.f1_score == 0.0
        assert performance.override_rate == pytest.approx(1.0)

    def test_override_rate_without_samples(self):
        assert RulePerformance(rule_id = "r").override_rate == 0.0

    def test_accepted_absences_are_not_overrides(self):
        assert RulePerformance(rule_id = "r").with_outcomes(tn = 5).override_rate == 0.0

    def test_override_rate_counts_both_error_kinds(self):
        performance = RulePerformance(rule_id = "r").with_outcomes(tp = 2, tn = 1, fp = 1, fn = 1)

        assert performance.override_rate == pytest.approx(0.4)


class TestRuleAnalytics:
    """Analytics aggregate over every clause type and perspective."""

    def test_playbook_totals(self, rule_store):
        analytics = rule_store.get_rule_analytics()

        assert analytics["total_rules"] == 27
        assert analytics["rules_by_tier"] == {"preferred": 9, "fallback": 9, "unacceptable": 9}
        assert analytics["average_confidence"] == pytest.approx(0.7)
        assert analytics["rules_with_feedback"] == 0

    def test_top_performers_follow_f1(self, rule_store):
        rule_store.record_outcomes("gov-mut-preferred", tp = 4)
        rule_store.record_outcomes("gov-mut-fallback", tp = 1, fp = 3)

        analytics = rule_store.get_rule_analytics("governing_law", PartyPerspective.MUTUAL)

        assert analytics["total_rules"] == 3
        assert analytics["rules_with_feedback"] == 2
        assert analytics["top_performers"][0]["rule_id"] == "gov-mut-preferred"

    def test_empty_provider(self):
        store     = HierarchicalRuleStore(provider = StaticRuleProvider(rules = [], clause_types = []))
        analytics = store.get_rule_analytics()

        assert analytics["total_rules"] == 0
        assert analytics["average_confidence"] == 0.0
