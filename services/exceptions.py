class ClauseEngineError(Exception):
    """
    Base class for errors raised by the clause engine
    """


class EmbeddingUnavailableError(ClauseEngineError):
    """
    The embedding model failed or timed out; callers fall back to non-semantic detection
    """


class TextGenerationError(ClauseEngineError):
    """
    The text-generation collaborator failed, timed out or returned nothing usable
    """


class RuleHierarchyError(ClauseEngineError):
    """
    Rule data could not be turned into a hierarchy
    """


class FeedbackValidationError(ClauseEngineError, ValueError):
    """
    A feedback record or learning batch is malformed
    """


class WeightsVersionConflict(ClauseEngineError):
    """
    A feature weight swap was attempted against a stale snapshot
    """
