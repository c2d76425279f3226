# DEPENDENCIES
from typing import Tuple
from typing import Optional


class DocumentValidator:
    """
    Input checks for document text handed to the analysis engine
    """
    MIN_DOCUMENT_LENGTH = 30
    MAX_DOCUMENT_LENGTH = 500000


    @staticmethod
    def validate_document_text(text: Optional[str], min_length: int = None, max_length: int = None) -> Tuple[bool, str, str]:
        """
        Check that text is long enough to hold at least one clause

        Arguments:
        ----------
            text       { str } : Document text

            min_length { int } : Minimum length override (characters, after stripping)

            max_length { int } : Maximum length override

        Returns:
        --------
                { tuple }      : (is_valid, validation_type, message)
        """
        min_length = min_length or DocumentValidator.MIN_DOCUMENT_LENGTH
        max_length = max_length or DocumentValidator.MAX_DOCUMENT_LENGTH

        if not isinstance(text, str):
            return (False, "not_text", f"Expected document text, got {type(text).__name__}")

        stripped   = text.strip()

        if not stripped:
            return (False, "empty", "Document text is empty")

        if (len(stripped) < min_length):
            return (False, "too_short", f"Text too short ({len(stripped)} chars, minimum {min_length})")

        if (len(stripped) > max_length):
            return (False, "too_long", f"Text too long ({len(stripped)} chars, maximum {max_length})")

        return (True, "valid", "Document text accepted")
