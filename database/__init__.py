# DEPENDENCIES
from .database import Base
from .database import DatabaseManager
from .repository import SQLRuleRepository
from .repository import AnalysisRepository
from .repository import SQLFeedbackRepository
from .repository import FeatureWeightsRepository


__all__ = ['Base',
           'DatabaseManager',
           'SQLRuleRepository',
           'AnalysisRepository',
           'SQLFeedbackRepository',
           'FeatureWeightsRepository',
          ]
