# DEPENDENCIES
import sys
from pathlib import Path
from datetime import datetime
from sqlalchemy import JSON
from sqlalchemy import Text
from sqlalchemy import Float
from sqlalchemy import Column
from sqlalchemy import String
from sqlalchemy import Integer
from sqlalchemy import Boolean
from sqlalchemy import DateTime
from sqlalchemy import ForeignKey

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from database.database import Base


class ClauseTypeModel(Base):
    """
    Clause type reference data with its detection material
    """
    __tablename__   = "clause_types"

    id              = Column(String(64), primary_key = True)
    name            = Column(String(255), nullable = False)
    display_order   = Column(Integer, nullable = False, default = 0)
    exemplar_text   = Column(Text, nullable = True)
    patterns        = Column(JSON, nullable = True)
    keywords        = Column(JSON, nullable = True)
    header_patterns = Column(JSON, nullable = True)
    position_hint   = Column(String(16), nullable = True)

    def to_dict(self):
        return {"id"              : self.id,
                "name"            : self.name,
                "display_order"   : self.display_order,
                "exemplar_text"   : self.exemplar_text,
                "patterns"        : self.patterns or [],
                "keywords"        : self.keywords or [],
                "header_patterns" : self.header_patterns or [],
                "position_hint"   : self.position_hint,
               }


class RuleModel(Base):
    """
    Playbook rule; parent_id links a rule to the rule it refines
    """
    __tablename__    = "clause_rules"

    id               = Column(String(64), primary_key = True)
    clause_type_id   = Column(String(64), ForeignKey("clause_types.id"), nullable = False, index = True)
    perspective      = Column(String(16), nullable = False, index = True)
    tier             = Column(String(16), nullable = False)
    rule_text        = Column(Text, nullable = False)
    keywords         = Column(JSON, nullable = True)
    example_language = Column(Text, nullable = True)
    rewriting_prompt = Column(Text, nullable = True)
    confidence_score = Column(Float, nullable = False, default = 0.7)
    parent_id        = Column(String(64), nullable = True)
    ml_features      = Column(JSON, nullable = True)
    severity         = Column(Integer, nullable = False, default = 3)
    guidance_notes   = Column(Text, nullable = True)
    rule_level       = Column(Integer, nullable = False, default = 1)
    is_active        = Column(Boolean, nullable = False, default = True)
    updated_at       = Column(DateTime, default = datetime.now, onupdate = datetime.now)

    def to_dict(self):
        return {"id"               : self.id,
                "clause_type_id"   : self.clause_type_id,
                "perspective"      : self.perspective,
                "tier"             : self.tier,
                "rule_text"        : self.rule_text,
                "keywords"         : self.keywords or [],
                "example_language" : self.example_language,
                "rewriting_prompt" : self.rewriting_prompt,
                "confidence_score" : self.confidence_score,
                "parent_id"        : self.parent_id,
                "ml_features"      : self.ml_features or {},
                "severity"         : self.severity,
                "guidance_notes"   : self.guidance_notes,
                "rule_level"       : self.rule_level,
                "is_active"        : self.is_active,
               }


class RulePerformanceModel(Base):
    __tablename__   = "rule_performance"

    rule_id         = Column(String(64), ForeignKey("clause_rules.id"), primary_key = True)
    true_positives  = Column(Integer, nullable = False, default = 0)
    false_positives = Column(Integer, nullable = False, default = 0)
    true_negatives  = Column(Integer, nullable = False, default = 0)
    false_negatives = Column(Integer, nullable = False, default = 0)
    precision       = Column(Float, nullable = False, default = 0.0)
    recall          = Column(Float, nullable = False, default = 0.0)
    f1_score        = Column(Float, nullable = False, default = 0.0)
    sample_size     = Column(Integer, nullable = False, default = 0)
    last_calculated = Column(DateTime, nullable = True)


class FeedbackRecordModel(Base):
    """
    One reviewer action; written once, grouped into learning batches
    """
    __tablename__        = "feedback_records"

    id                   = Column(String(36), primary_key = True)
    batch_id             = Column(Integer, ForeignKey("learning_batches.id"), nullable = False, index = True)
    rule_id              = Column(String(64), nullable = False, index = True)
    reviewer_action      = Column(String(16), nullable = False)
    predicted_confidence = Column(Float, nullable = False)
    actual_quality       = Column(Float, nullable = False)
    perspective          = Column(String(16), nullable = True)
    payload              = Column(JSON, nullable = False)
    created_at           = Column(DateTime, default = datetime.now, nullable = False)


class LearningBatchModel(Base):
    """
    Batch of feedback records; raw_records holds batches imported without per-record rows
    """
    __tablename__        = "learning_batches"

    id                   = Column(Integer, primary_key = True, autoincrement = True)
    status               = Column(String(16), nullable = False, default = "pending", index = True)
    record_count         = Column(Integer, nullable = False, default = 0)
    raw_records          = Column(JSON(none_as_null = True), nullable = True)
    error_message        = Column(Text, nullable = True)
    improvements_applied = Column(Integer, nullable = False, default = 0)
    created_at           = Column(DateTime, default = datetime.now, nullable = False)
    processed_at         = Column(DateTime, nullable = True)


class FeatureWeightsModel(Base):
    __tablename__ = "feature_weight_snapshots"

    version       = Column(Integer, primary_key = True)
    weights       = Column(JSON, nullable = False)
    created_at    = Column(DateTime, default = datetime.now, nullable = False)


class AnalysisResultModel(Base):
    """
    Persisted document analysis (one row per analyze_document call)
    """
    __tablename__      = "analysis_results"

    id                 = Column(String(36), primary_key = True)
    perspective        = Column(String(16), nullable = False)
    overall_confidence = Column(Float, nullable = False, default = 0.0)
    model_version      = Column(String(64), nullable = True)
    processing_time    = Column(Float, nullable = True)
    result_json        = Column(JSON, nullable = False)
    created_at         = Column(DateTime, default = datetime.now, nullable = False, index = True)

    def __repr__(self):
        return f"<AnalysisResult(id={self.id}, perspective={self.perspective})>"
