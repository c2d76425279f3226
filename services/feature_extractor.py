# DEPENDENCIES
import re
import sys
from typing import Any
from typing import Dict
from typing import List
from pathlib import Path
from typing import Optional
from typing import Sequence

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from config.model_config import ModelConfig
from utils.text_processor import TextProcessor
from config.playbook_rules import PlaybookRules
from services.data_models import CandidateSpan
from services.data_models import FeatureVector


class FeatureExtractor:
    """
    Structural and linguistic features of a candidate clause span
    """
    def __init__(self):
        self.config               = ModelConfig.RULE_MATCHING
        self.legal_terms          = PlaybookRules.LEGAL_TERMS
        self.modal_verbs          = PlaybookRules.MODAL_VERBS
        self.definition_terms     = PlaybookRules.DEFINITION_INDICATORS
        self.positive_terms       = PlaybookRules.POSITIVE_TERMS
        self.negative_terms       = PlaybookRules.NEGATIVE_TERMS
        self.cross_ref_patterns   = [re.compile(pattern, re.IGNORECASE) for pattern in PlaybookRules.CROSS_REFERENCE_REGEX]
        self.capitalized_pattern  = re.compile(r'\b[A-Z][a-z]+\b')


    def locate_candidate_span(self, full_text: str, keywords: Sequence[str]) -> CandidateSpan:
        """
        Region around the earliest keyword hit, or the opening of the document

        Arguments:
        ----------
            full_text { str }  : Document text

            keywords  { list } : Rule or clause keywords

        Returns:
        --------
            { CandidateSpan }  : Text from span_before characters ahead of the hit to span_after
                                 characters past it, or the first default_span_length characters
        """
        positions = TextProcessor.find_keyword_positions(full_text, keywords)

        if positions:
            anchor = positions[0][1]
            start  = max(0, anchor - self.config["span_before"])
            end    = min(len(full_text), anchor + self.config["span_after"])

        else:
            start  = 0
            end    = min(len(full_text), self.config["default_span_length"])

        return CandidateSpan(start = start, end = end, text = full_text[start:end])


    def extract_features(self, full_text: str, candidate_span: CandidateSpan, context: Optional[Dict[str, Any]] = None) -> FeatureVector:
        """
        Compute the FeatureVector of a span

        Arguments:
        ----------
            full_text      { str }           : Whole document (for position and proximity)

            candidate_span { CandidateSpan } : Region under evaluation

            context        { dict }          : Optional "keywords" used for density and proximity

        Returns:
        --------
            { FeatureVector }                : Raw feature values
        """
        context     = context or {}
        keywords    = list(context.get("keywords") or [])
        text        = candidate_span.text
        words       = TextProcessor.tokenize_words(text)
        word_count  = len(words)
        sentences   = TextProcessor.extract_sentences(text, min_length = 3)
        paragraphs  = TextProcessor.split_into_paragraphs(text)

        if (word_count == 0):
            return FeatureVector(span_length       = len(text),
                                 document_position = self._document_position(full_text, candidate_span),
                                )

        keyword_hits = TextProcessor.count_phrase_occurrences(text, keywords)
        legal_hits   = TextProcessor.count_phrase_occurrences(text, self.legal_terms)

        return FeatureVector(span_length             = len(text),
                             keyword_density         = keyword_hits / word_count,
                             legal_term_density      = legal_hits / word_count,
                             modal_verb_count        = TextProcessor.count_phrase_occurrences(text, self.modal_verbs),
                             definition_indicators   = TextProcessor.count_phrase_occurrences(text, self.definition_terms),
                             cross_references        = sum(len(pattern.findall(text)) for pattern in self.cross_ref_patterns),
                             sentence_count          = len(sentences),
                             paragraph_count         = max(1, len(paragraphs)),
                             average_sentence_length = word_count / max(1, len(sentences)),
                             capitalized_words       = len(self.capitalized_pattern.findall(text)),
                             readability_score       = TextProcessor.readability_score(text),
                             document_position       = self._document_position(full_text, candidate_span),
                             proximity_to_key_terms  = self._proximity(full_text, candidate_span, keywords),
                             has_numbered_lists      = TextProcessor.has_numbered_list(text),
                             has_subsections         = TextProcessor.has_subsections(text),
                             sentiment_score         = self._sentiment(text),
                            )


    @staticmethod
    def _document_position(full_text: str, span: CandidateSpan) -> float:
        if not full_text:
            return 0.0

        return max(0.0, min(1.0, span.start / len(full_text)))


    @staticmethod
    def _proximity(full_text: str, span: CandidateSpan, keywords: List[str]) -> float:
        """
        1.0 when a key term sits inside the span, decaying with character distance otherwise
        """
        positions = TextProcessor.find_keyword_positions(full_text, keywords)

        if not positions:
            return 0.0

        distances = list()

        for _, index in positions:
            if (span.start <= index < span.end):
                return 1.0

            distances.append(span.start - index if (index < span.start) else index - span.end)

        return 1.0 / (1.0 + min(distances) / 500.0)


    def _sentiment(self, text: str) -> float:
        """
        Permissive minus restrictive obligation language, in [-1, 1]
        """
        positive = TextProcessor.count_phrase_occurrences(text, self.positive_terms)
        negative = TextProcessor.count_phrase_occurrences(text, self.negative_terms)

        if ((positive + negative) == 0):
            return 0.0

        return (positive - negative) / (positive + negative)
