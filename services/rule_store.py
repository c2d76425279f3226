# DEPENDENCIES
import sys
import threading
from typing import Any
from typing import Dict
from typing import List
from typing import Tuple
from typing import Union
from pathlib import Path
from typing import Iterator
from typing import Optional
from dataclasses import field
from dataclasses import replace
from dataclasses import dataclass

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from utils.logger import log_warning
from services.data_models import Rule
from services.data_models import RuleTier
from config.model_config import ModelConfig
from services.data_models import ClauseType
from config.playbook_rules import PlaybookRules
from services.data_models import RulePerformance
from services.data_models import PartyPerspective


class RuleDataProvider:
    """
    Read / write access to playbook rules and their performance rows
    """
    def get_clause_types(self) -> List[ClauseType]:
        raise NotImplementedError

    def get_rules(self, clause_type_id: str, perspective: PartyPerspective) -> List[Rule]:
        raise NotImplementedError

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        raise NotImplementedError

    def get_performance(self, rule_id: str) -> Optional[RulePerformance]:
        raise NotImplementedError

    def put_performance(self, performance: RulePerformance) -> None:
        raise NotImplementedError

    def update_rule_confidence(self, rule_id: str, confidence: float) -> Optional[Rule]:
        raise NotImplementedError


class StaticRuleProvider(RuleDataProvider):
    """
    In-memory provider seeded from the bundled playbook (or from explicit rule lists)
    """
    def __init__(self, rules: Optional[List[Rule]] = None, clause_types: Optional[List[ClauseType]] = None,
                 performance: Optional[Dict[str, RulePerformance]] = None):
        if rules is None:
            rules = [Rule.from_dict(data) for data in PlaybookRules.RULES]

        if clause_types is None:
            clause_types = [ClauseType.from_dict(data) for data in PlaybookRules.get_clause_types()]

        self._lock         = threading.Lock()
        self._rules        = {rule.id: rule for rule in rules}
        self._clause_types = sorted(clause_types, key = lambda clause: clause.display_order)
        self._performance  = dict(performance or {})


    def get_clause_types(self) -> List[ClauseType]:
        return list(self._clause_types)


    def get_rules(self, clause_type_id: str, perspective: PartyPerspective) -> List[Rule]:
        with self._lock:
            return [rule for rule in self._rules.values()
                    if (rule.clause_type_id == clause_type_id) and (rule.perspective == perspective) and rule.is_active]


    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)


    def get_performance(self, rule_id: str) -> Optional[RulePerformance]:
        return self._performance.get(rule_id)


    def put_performance(self, performance: RulePerformance) -> None:
        with self._lock:
            self._performance[performance.rule_id] = performance


    def update_rule_confidence(self, rule_id: str, confidence: float) -> Optional[Rule]:
        with self._lock:
            rule = self._rules.get(rule_id)

            if rule is None:
                return None

            updated              = replace(rule, confidence_score = confidence)
            self._rules[rule_id] = updated

            return updated


@dataclass
class RuleNode:
    rule     : Rule
    depth    : int              = 1
    path     : List[str]        = field(default_factory = list)
    children : List["RuleNode"] = field(default_factory = list)


@dataclass
class RuleHierarchy:
    """
    Validated rule forest for one (clause type, perspective)

    flagged maps rule id -> reason ("cycle" or "tier_contradiction") for rules that were
    detached to the root level during construction
    """
    clause_type_id : str
    perspective    : PartyPerspective
    roots          : List[RuleNode]  = field(default_factory = list)
    flagged        : Dict[str, str]  = field(default_factory = dict)

    @classmethod
    def build(cls, clause_type_id: str, perspective: PartyPerspective, rules: List[Rule]) -> "RuleHierarchy":
        """
        Link a flat rule list into a forest

        Arguments:
        ----------
            clause_type_id { str }              : Clause type the rules belong to

            perspective    { PartyPerspective } : Party perspective the rules belong to

            rules          { list }             : Flat Rule list

        Returns:
        --------
                 { RuleHierarchy }              : Forest with children sorted by confidence (descending,
                                                  stable), depth and tier path computed from the tree
        """
        by_id   = {rule.id: rule for rule in rules}
        flagged = dict()

        # Cycle detection over parent chains; every member of a cycle is detached
        settled = set()

        for rule in rules:
            chain   = list()
            on_path = set()
            current = rule.id

            while (current in by_id) and (current not in settled):
                if current in on_path:
                    for member in chain[chain.index(current):]:
                        flagged[member] = "cycle"
                    break

                chain.append(current)
                on_path.add(current)
                current = by_id[current].parent_id

            settled.update(chain)

        children = {rule.id: list() for rule in rules}
        roots    = list()

        for rule in rules:
            parent = by_id.get(rule.parent_id) if rule.parent_id else None

            if rule.id in flagged:
                parent = None

            elif ((parent is not None) and (rule.tier.severity_rank < parent.tier.severity_rank)):
                flagged[rule.id] = "tier_contradiction"
                parent           = None

            if parent is None:
                roots.append(rule)

            else:
                children[parent.id].append(rule)

        for rule_id, reason in flagged.items():
            log_warning("Rule detached from hierarchy",
                        rule_id        = rule_id,
                        reason         = reason,
                        clause_type_id = clause_type_id,
                        perspective    = perspective.value,
                       )

        def by_confidence(items: List[Rule]) -> List[Rule]:
            return sorted(items, key = lambda item: item.confidence_score, reverse = True)

        visited = set()

        def make_node(rule: Rule, depth: int, parent_path: List[str]) -> RuleNode:
            visited.add(rule.id)
            path = parent_path + [rule.tier.value]
            node = RuleNode(rule = rule, depth = depth, path = path)

            for child in by_confidence(children[rule.id]):
                if child.id not in visited:
                    node.children.append(make_node(child, depth + 1, path))

            return node

        return cls(clause_type_id = clause_type_id,
                   perspective    = perspective,
                   roots          = [make_node(root, 1, []) for root in by_confidence(roots)],
                   flagged        = flagged,
                  )


    def walk(self) -> Iterator[RuleNode]:
        """
        Pre-order traversal, every node exactly once
        """
        stack = list(reversed(self.roots))

        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


    def rules(self) -> List[Rule]:
        return [node.rule for node in self.walk()]


    def find(self, rule_id: str) -> Optional[RuleNode]:
        for node in self.walk():
            if (node.rule.id == rule_id):
                return node

        return None


    def first_of_tier(self, tier: RuleTier) -> Optional[Rule]:
        for node in self.walk():
            if (node.rule.tier == tier):
                return node.rule

        return None


    @property
    def is_empty(self) -> bool:
        return not self.roots


    def __len__(self) -> int:
        return sum(1 for _ in self.walk())


class HierarchicalRuleStore:
    """
    Caching front of a RuleDataProvider that serves validated rule hierarchies
    """
    def __init__(self, provider: Optional[RuleDataProvider] = None):
        self.provider      = provider or StaticRuleProvider()
        self.config        = ModelConfig.LEARNING
        self._lock         = threading.RLock()
        self._hierarchies  : Dict[Tuple[str, str], RuleHierarchy] = dict()
        self._clause_types : Optional[List[ClauseType]]           = None

        log_info("HierarchicalRuleStore initialized", provider = type(self.provider).__name__)


    @staticmethod
    def _as_perspective(perspective: Union[PartyPerspective, str]) -> PartyPerspective:
        return perspective if isinstance(perspective, PartyPerspective) else PartyPerspective(perspective)


    def get_clause_types(self) -> List[ClauseType]:
        with self._lock:
            if self._clause_types is None:
                self._clause_types = self.provider.get_clause_types()

            return list(self._clause_types)


    def get_clause_type(self, clause_type_id: str) -> Optional[ClauseType]:
        for clause_type in self.get_clause_types():
            if (clause_type.id == clause_type_id):
                return clause_type

        return None


    def get_hierarchy(self, clause_type_id: str, perspective: Union[PartyPerspective, str]) -> RuleHierarchy:
        """
        Cached hierarchy for (clause type, perspective); empty when no rules exist
        """
        perspective = self._as_perspective(perspective)
        cache_key   = (clause_type_id, perspective.value)

        with self._lock:
            hierarchy = self._hierarchies.get(cache_key)

            if hierarchy is None:
                rules     = self.provider.get_rules(clause_type_id, perspective)
                hierarchy = RuleHierarchy.build(clause_type_id, perspective, rules)

                self._hierarchies[cache_key] = hierarchy

                log_info("Rule hierarchy built",
                         clause_type_id = clause_type_id,
                         perspective    = perspective.value,
                         rules          = len(rules),
                         roots          = len(hierarchy.roots),
                         flagged        = len(hierarchy.flagged),
                        )

            return hierarchy


    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self.provider.get_rule(rule_id)


    def get_performance(self, rule_id: str) -> Optional[RulePerformance]:
        return self.provider.get_performance(rule_id)


    def record_outcomes(self, rule_id: str, tp: int = 0, fp: int = 0, tn: int = 0, fn: int = 0) -> RulePerformance:
        """
        Add reviewer outcome counts to a rule's performance row and persist it
        """
        current     = self.provider.get_performance(rule_id) or RulePerformance(rule_id = rule_id)
        performance = current.with_outcomes(tp = tp, fp = fp, tn = tn, fn = fn)

        self.provider.put_performance(performance)

        return performance


    def update_rule_confidence(self, rule_id: str, confidence: float) -> Optional[Rule]:
        """
        Persist a new base confidence (clamped to the configured bounds) and drop cached hierarchies
        """
        confidence = max(self.config["min_rule_confidence"], min(self.config["max_rule_confidence"], float(confidence)))
        updated    = self.provider.update_rule_confidence(rule_id, confidence)

        if updated is not None:
            self.invalidate(updated.clause_type_id, updated.perspective)

        return updated


    def invalidate(self, clause_type_id: Optional[str] = None, perspective: Optional[Union[PartyPerspective, str]] = None):
        with self._lock:
            if clause_type_id is None:
                self._hierarchies.clear()
                self._clause_types = None
                return

            perspective = self._as_perspective(perspective) if perspective else None

            for key in list(self._hierarchies.keys()):
                if (key[0] == clause_type_id) and ((perspective is None) or (key[1] == perspective.value)):
                    del self._hierarchies[key]


    def get_rule_analytics(self, clause_type_id: Optional[str] = None, perspective: Optional[Union[PartyPerspective, str]] = None) -> Dict[str, Any]:
        """
        Rule counts per tier, average confidence and F1, and the best performing rules
        """
        clause_ids   = [clause_type_id] if clause_type_id else [clause.id for clause in self.get_clause_types()]
        perspectives = [self._as_perspective(perspective)] if perspective else list(PartyPerspective)
        rules        = list()

        for clause_id in clause_ids:
            for current in perspectives:
                rules.extend(self.get_hierarchy(clause_id, current).rules())

        tier_counts  = {tier.value: 0 for tier in RuleTier}
        scored       = list()

        for rule in rules:
            tier_counts[rule.tier.value] += 1
            performance                   = self.get_performance(rule.id)

            if (performance is not None) and (performance.sample_size > 0):
                scored.append((rule, performance))

        top          = sorted(scored, key = lambda item: item[1].f1_score, reverse = True)[:5]

        return {"total_rules"         : len(rules),
                "rules_by_tier"       : tier_counts,
                "average_confidence"  : round(sum(rule.confidence_score for rule in rules) / len(rules), 4) if rules else 0.0,
                "rules_with_feedback" : len(scored),
                "average_f1_score"    : round(sum(p.f1_score for _, p in scored) / len(scored), 4) if scored else 0.0,
                "top_performers"      : [{"rule_id"     : rule.id,
                                          "tier"        : rule.tier.value,
                                          "f1_score"    : round(performance.f1_score, 4),
                                          "sample_size" : performance.sample_size,
                                         } for rule, performance in top],
               }
