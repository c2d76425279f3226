# DEPENDENCIES
import re
from typing import Any
from typing import List
from typing import Dict
from typing import Tuple
from typing import Iterable


class TextProcessor:
    """
    Text processing and normalization utilities shared by the detectors and the feature extractor
    """
    NUMBERED_LIST_PATTERN = re.compile(r'(?:^|\n)\s*(?:\(?[a-z0-9]{1,3}[.)]|[ivx]{1,4}[.)]|[-*•])\s+\S', re.IGNORECASE)
    SUBSECTION_PATTERN    = re.compile(r'\b\d+\.\d+(?:\.\d+)*\b|\(\s*[a-z]\s*\)|\(\s*[ivx]{1,4}\s*\)', re.IGNORECASE)
    VOWEL_GROUP_PATTERN   = re.compile(r'[aeiouy]+')


    @staticmethod
    def normalize_text(text: str, lowercase: bool = True) -> str:
        """
        Collapse whitespace and optionally lowercase
        """
        if lowercase:
            text = text.lower()

        return re.sub(r'\s+', ' ', text).strip()


    @staticmethod
    def normalize_for_embedding(text: str, max_length: int = 512) -> str:
        """
        Canonical form used for embedding cache keys

        Arguments:
        ----------
            text       { str } : Raw text

            max_length { int } : Truncation bound in characters

        Returns:
        --------
                 { str }       : Lowercased text with punctuation runs collapsed to single spaces
        """
        text = (text or "").lower()
        text = re.sub(r'[^\w\s]+', ' ', text)
        text = re.sub(r'\s+', ' ', text).strip()

        return text[:max_length]


    @staticmethod
    def split_into_paragraphs(text: str, min_length: int = 1) -> List[str]:
        paragraphs = re.split(r'\n\s*\n', text)

        return [p.strip() for p in paragraphs if len(p.strip()) >= min_length]


    @staticmethod
    def extract_sentences(text: str, min_length: int = 1) -> List[str]:
        """
        Extract sentences from text (split on terminal punctuation)
        """
        sentences = re.split(r'[.!?]+', text)

        return [s.strip() for s in sentences if len(s.strip()) >= min_length]


    @staticmethod
    def tokenize_words(text: str) -> List[str]:
        return re.findall(r"[A-Za-z0-9][A-Za-z0-9'\-]*", text)


    @staticmethod
    def count_syllables(word: str) -> int:
        """
        Rough syllable count from vowel groups, minimum one per word
        """
        word   = word.lower()
        groups = TextProcessor.VOWEL_GROUP_PATTERN.findall(word)
        count  = len(groups)

        if word.endswith("e") and (count > 1) and not word.endswith("le"):
            count -= 1

        return max(1, count)


    @staticmethod
    def readability_score(text: str) -> float:
        """
        Simplified Flesch reading ease scaled to [0, 1]

        Returns:
        --------
            { float } : 1.0 is very easy text, 0.0 is very dense text (legal prose usually lands low)
        """
        words     = TextProcessor.tokenize_words(text)
        sentences = TextProcessor.extract_sentences(text) or [text]

        if not words:
            return 0.0

        syllables = sum(TextProcessor.count_syllables(w) for w in words)
        score     = 206.835 - 1.015 * (len(words) / len(sentences)) - 84.6 * (syllables / len(words))

        return max(0.0, min(1.0, score / 100.0))


    @staticmethod
    def count_phrase_occurrences(text: str, phrases: Iterable[str]) -> int:
        """
        Count whole-word, case-insensitive occurrences of every phrase in text
        """
        total = 0

        for phrase in phrases:
            pattern = r'\b' + re.escape(phrase.lower()) + r'\b'
            total  += len(re.findall(pattern, text.lower()))

        return total


    @staticmethod
    def find_keyword_positions(text: str, keywords: Iterable[str]) -> List[Tuple[str, int]]:
        """
        First case-insensitive position of every keyword present in text, ordered by position
        """
        lowered   = text.lower()
        positions = list()

        for keyword in keywords:
            index = lowered.find(keyword.lower())

            if (index >= 0):
                positions.append((keyword, index))

        positions.sort(key = lambda item: item[1])

        return positions


    @staticmethod
    def has_numbered_list(text: str) -> bool:
        return bool(TextProcessor.NUMBERED_LIST_PATTERN.search(text))


    @staticmethod
    def has_subsections(text: str) -> bool:
        return bool(TextProcessor.SUBSECTION_PATTERN.search(text))


    @staticmethod
    def sliding_windows(text: str, window_words: int = 120, stride: int = 60) -> List[Dict[str, Any]]:
        """
        Overlapping word windows over text, keeping character offsets

        Arguments:
        ----------
            text         { str } : Input text

            window_words { int } : Window size in words

            stride       { int } : Step between window starts in words

        Returns:
        --------
                 { list }        : Window dictionaries with text, start and end offsets; at least one
                                   window for any non-blank text
        """
        spans = [(m.start(), m.end()) for m in re.finditer(r'\S+', text)]

        if not spans:
            return list()

        windows = list()
        stride  = max(1, stride)
        start   = 0

        while True:
            chunk = spans[start:start + window_words]
            windows.append({"text"  : text[chunk[0][0]:chunk[-1][1]],
                            "start" : chunk[0][0],
                            "end"   : chunk[-1][1],
                          })

            if ((start + window_words) >= len(spans)):
                break

            start += stride

        return windows
