# DEPENDENCIES
import re
import sys
from typing import List
from pathlib import Path
from typing import Optional
from dataclasses import field
from dataclasses import dataclass

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_debug
from services.data_models import Rule
from config.model_config import ModelConfig
from services.data_models import ClauseType
from utils.text_processor import TextProcessor
from services.rule_store import RuleHierarchy
from services.rule_matcher import HierarchicalRuleMatcher


@dataclass
class KeywordDetection:
    confidence    : float
    detected_text : str
    start         : int
    end           : int
    method        : str                         # pattern | keyword
    matched_terms : List[str] = field(default_factory = list)


class KeywordClauseDetector:
    """
    Last-resort detector: regex patterns and keyword hits only, no model calls
    """
    def __init__(self):
        self.config = ModelConfig.KEYWORD_DETECTION


    def detect(self, text: str, clause_type: ClauseType) -> Optional[KeywordDetection]:
        """
        Best pattern hit, else keyword hits, else None

        Pattern hit   : 0.8 + 0.2 * (match length / text length)
        Keyword hits  : min(0.6 + 0.1 * hits, 0.9), segment around the first hit
        """
        if not (text and text.strip()):
            return None

        best = None

        for pattern in clause_type.patterns:
            try:
                match = re.search(pattern, text, re.IGNORECASE)

            except re.error as e:
                log_debug("Skipping invalid clause pattern", pattern = pattern, error = str(e))
                continue

            if match is None:
                continue

            confidence = self.config["pattern_base"] + self.config["pattern_length_cap"] * (len(match.group(0)) / len(text))

            if (best is None) or (confidence > best.confidence):
                best = KeywordDetection(confidence    = min(1.0, confidence),
                                        detected_text = match.group(0).strip(),
                                        start         = match.start(),
                                        end           = match.end(),
                                        method        = "pattern",
                                        matched_terms = [pattern],
                                       )

        if best is not None:
            return best

        positions = TextProcessor.find_keyword_positions(text, clause_type.keywords)

        if not positions:
            return None

        anchor    = positions[0][1]
        start     = max(0, anchor - self.config["segment_before"])
        end       = min(len(text), anchor + self.config["segment_after"])

        return KeywordDetection(confidence    = min(self.config["keyword_base"] + self.config["keyword_step"] * len(positions), self.config["keyword_cap"]),
                                detected_text = text[start:end].strip(),
                                start         = start,
                                end           = end,
                                method        = "keyword",
                                matched_terms = [keyword for keyword, _ in positions],
                               )


    @staticmethod
    def best_rule(text: str, hierarchy: RuleHierarchy) -> Optional[Rule]:
        """
        Rule with the highest pure keyword overlap; the first in pre-order wins ties
        """
        best_rule  = None
        best_score = 0.0

        for node in hierarchy.walk():
            score, _ = HierarchicalRuleMatcher.calculate_keyword_score(text, node.rule.keywords)

            if (score > best_score):
                best_rule  = node.rule
                best_score = score

        return best_rule
