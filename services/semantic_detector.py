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
from config.model_config import ModelConfig
from utils.text_processor import TextProcessor
from services.data_models import ClauseType
from services.embedding_service import SemanticEmbeddingService


@dataclass
class SemanticDetection:
    confidence     : float
    raw_similarity : float
    detected_text  : str
    start          : int
    end            : int
    boosts         : List[str] = field(default_factory = list)


class SemanticClauseDetector:
    """
    Finds the document window most similar to a clause type's exemplar text

    The best window's similarity is boosted by corroborating signals (a second strong
    window, the expected document position, a matching section header) and capped at 1.0
    """
    def __init__(self, embedding_service: SemanticEmbeddingService):
        self.embedding_service = embedding_service
        self.config            = ModelConfig.SEMANTIC_DETECTION


    async def detect(self, text: str, clause_type: ClauseType) -> Optional[SemanticDetection]:
        """
        Arguments:
        ----------
            text        { str }        : Document text

            clause_type { ClauseType } : Clause type with exemplar, header patterns and position hint

        Returns:
        --------
            { SemanticDetection }      : Best window, or None when there is nothing to compare

        Raises:
        -------
            EmbeddingUnavailableError  : Propagated from the embedding service
        """
        if not (text and text.strip() and clause_type.exemplar_text):
            return None

        windows      = TextProcessor.sliding_windows(text,
                                                     window_words = self.config["window_words"],
                                                     stride       = self.config["stride"],
                                                    )[:self.config["max_windows"]]

        if not windows:
            return None

        vectors      = await self.embedding_service.embed([clause_type.exemplar_text] + [window["text"] for window in windows])
        exemplar     = vectors[0]
        similarities = [self.embedding_service.similarity(exemplar, vector) for vector in vectors[1:]]

        best_index   = max(range(len(similarities)), key = lambda index: similarities[index])
        best_window  = windows[best_index]
        raw          = max(0.0, similarities[best_index])
        confidence   = raw
        boosts       = list()

        strong_others = [score for index, score in enumerate(similarities)
                         if (index != best_index) and (score > self.config["second_window_cutoff"])]

        if strong_others:
            confidence *= self.config["second_window_boost"]
            boosts.append("second_window")

        position     = best_window["start"] / max(1, len(text))

        if ((clause_type.position_hint == "early") and (position <= self.config["early_position_cutoff"])):
            confidence *= self.config["early_position_boost"]
            boosts.append("early_position")

        elif ((clause_type.position_hint == "late") and (position >= self.config["late_position_cutoff"])):
            confidence *= self.config["late_position_boost"]
            boosts.append("late_position")

        if self._has_header(text, best_window["start"], best_window["end"], clause_type.header_patterns):
            confidence *= self.config["header_boost"]
            boosts.append("section_header")

        log_debug("Semantic window selected",
                  clause_type_id = clause_type.id,
                  windows        = len(windows),
                  similarity     = round(raw, 4),
                  boosts         = boosts,
                 )

        return SemanticDetection(confidence     = min(1.0, confidence),
                                 raw_similarity = raw,
                                 detected_text  = best_window["text"],
                                 start          = best_window["start"],
                                 end            = best_window["end"],
                                 boosts         = boosts,
                                )


    @staticmethod
    def _has_header(text: str, start: int, end: int, header_patterns) -> bool:
        # Header patterns are anchored on a preceding newline
        region = "\n" + text[max(0, start - 200):end] + "\n"

        for pattern in header_patterns:
            try:
                if re.search(pattern, region, re.IGNORECASE):
                    return True

            except re.error:
                continue

        return False
