# DEPENDENCIES
from .text_processor import TextProcessor
from .logger import ClauseEngineLogger
from .validators import DocumentValidator


__all__ = ['TextProcessor',
           'DocumentValidator',
           'ClauseEngineLogger',
          ]
