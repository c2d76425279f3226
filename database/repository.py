# DEPENDENCIES
import sys
from typing import Any
from typing import Dict
from typing import List
from pathlib import Path
from typing import Optional
from datetime import datetime
from sqlalchemy import func
from sqlalchemy import select
from sqlalchemy import update

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from services.data_models import Rule
from database.models import RuleModel
from services.data_models import ClauseType
from database.models import ClauseTypeModel
from services.data_models import BatchStatus
from config.playbook_rules import PlaybookRules
from database.database import DatabaseManager
from services.data_models import LearningBatch
from database.models import FeatureWeightsModel
from database.models import LearningBatchModel
from database.models import FeedbackRecordModel
from database.models import AnalysisResultModel
from services.data_models import FeedbackRecord
from services.data_models import RulePerformance
from services.rule_store import RuleDataProvider
from database.models import RulePerformanceModel
from services.data_models import PartyPerspective
from services.feature_weights import FeatureWeights
from services.data_models import DocumentAnalysisResult


class SQLRuleRepository(RuleDataProvider):
    """
    Rule data provider over the clause_types / clause_rules / rule_performance tables
    """
    def __init__(self, db: DatabaseManager):
        self.db = db


    def seed_playbook(self) -> int:
        """
        Insert the bundled clause types and rules that are not stored yet

        Returns:
        --------
            { int } : Number of rows inserted
        """
        inserted = 0

        with self.db.session_scope() as session:
            for clause in PlaybookRules.get_clause_types():
                if session.get(ClauseTypeModel, clause["id"]) is None:
                    session.add(ClauseTypeModel(**ClauseType.from_dict(clause).to_dict()))
                    inserted += 1

            session.flush()

            for data in PlaybookRules.RULES:
                if session.get(RuleModel, data["id"]) is None:
                    session.add(RuleModel(**Rule.from_dict(data).to_dict()))
                    inserted += 1

        log_info("Playbook seeded", rows_inserted = inserted)

        return inserted


    def get_clause_types(self) -> List[ClauseType]:
        with self.db.session_scope() as session:
            rows = session.scalars(select(ClauseTypeModel).order_by(ClauseTypeModel.display_order)).all()

            return [ClauseType.from_dict(row.to_dict()) for row in rows]


    def get_rules(self, clause_type_id: str, perspective: PartyPerspective) -> List[Rule]:
        with self.db.session_scope() as session:
            rows = session.scalars(select(RuleModel)
                                   .where(RuleModel.clause_type_id == clause_type_id)
                                   .where(RuleModel.perspective == perspective.value)
                                   .where(RuleModel.is_active.is_(True))).all()

            return [Rule.from_dict(row.to_dict()) for row in rows]


    def get_rule(self, rule_id: str) -> Optional[Rule]:
        with self.db.session_scope() as session:
            row = session.get(RuleModel, rule_id)

            return Rule.from_dict(row.to_dict()) if row else None


    def get_performance(self, rule_id: str) -> Optional[RulePerformance]:
        with self.db.session_scope() as session:
            row = session.get(RulePerformanceModel, rule_id)

            if row is None:
                return None

            return RulePerformance(rule_id         = row.rule_id,
                                   true_positives  = row.true_positives,
                                   false_positives = row.false_positives,
                                   true_negatives  = row.true_negatives,
                                   false_negatives = row.false_negatives,
                                   precision       = row.precision,
                                   recall          = row.recall,
                                   f1_score        = row.f1_score,
                                   sample_size     = row.sample_size,
                                   last_calculated = row.last_calculated,
                                  )


    def put_performance(self, performance: RulePerformance) -> None:
        with self.db.session_scope() as session:
            session.merge(RulePerformanceModel(rule_id         = performance.rule_id,
                                               true_positives  = performance.true_positives,
                                               false_positives = performance.false_positives,
                                               true_negatives  = performance.true_negatives,
                                               false_negatives = performance.false_negatives,
                                               precision       = performance.precision,
                                               recall          = performance.recall,
                                               f1_score        = performance.f1_score,
                                               sample_size     = performance.sample_size,
                                               last_calculated = performance.last_calculated or datetime.now(),
                                              ))


    def update_rule_confidence(self, rule_id: str, confidence: float) -> Optional[Rule]:
        with self.db.session_scope() as session:
            row = session.get(RuleModel, rule_id)

            if row is None:
                return None

            row.confidence_score = confidence
            session.flush()

            return Rule.from_dict(row.to_dict())


class SQLFeedbackRepository:
    """
    Feedback records grouped into learning batches

    Batch lifecycle: pending -> processing (claimed) -> completed | failed, each step applied
    with a conditional UPDATE so it happens exactly once
    """
    def __init__(self, db: DatabaseManager):
        self.db = db


    def add_record(self, record: FeedbackRecord, batch_size: int = 50) -> int:
        """
        Append record to the open pending batch, opening a new one when it is full

        Returns:
        --------
            { int } : Batch id the record was written to
        """
        with self.db.session_scope() as session:
            batch = session.scalars(select(LearningBatchModel)
                                    .where(LearningBatchModel.status == BatchStatus.PENDING.value)
                                    .where(LearningBatchModel.raw_records.is_(None))
                                    .where(LearningBatchModel.record_count < batch_size)
                                    .order_by(LearningBatchModel.id.desc())
                                    .limit(1)).first()

            if batch is None:
                batch = LearningBatchModel(status = BatchStatus.PENDING.value, record_count = 0)
                session.add(batch)
                session.flush()

            session.add(FeedbackRecordModel(id                   = record.record_id,
                                            batch_id             = batch.id,
                                            rule_id              = record.rule_id,
                                            reviewer_action      = record.reviewer_action.value,
                                            predicted_confidence = record.predicted_confidence,
                                            actual_quality       = record.actual_quality,
                                            perspective          = record.perspective.value if record.perspective else None,
                                            payload              = record.to_dict(),
                                            created_at           = record.created_at,
                                           ))
            batch.record_count += 1

            return batch.id


    def enqueue_raw_batch(self, records: List[Dict[str, Any]]) -> int:
        """
        Store an externally assembled batch as-is; records are validated when the batch is processed
        """
        with self.db.session_scope() as session:
            batch = LearningBatchModel(status       = BatchStatus.PENDING.value,
                                       record_count = len(records) if isinstance(records, list) else 0,
                                       raw_records  = records,
                                      )
            session.add(batch)
            session.flush()

            return batch.id


    def claim_pending(self, limit: Optional[int] = None) -> List[LearningBatch]:
        """
        Move pending batches to processing and return them with their records
        """
        claimed = list()

        with self.db.session_scope() as session:
            query = select(LearningBatchModel.id).where(LearningBatchModel.status == BatchStatus.PENDING.value).order_by(LearningBatchModel.id)

            if limit:
                query = query.limit(limit)

            for batch_id in session.scalars(query).all():
                result = session.execute(update(LearningBatchModel)
                                         .where(LearningBatchModel.id == batch_id)
                                         .where(LearningBatchModel.status == BatchStatus.PENDING.value)
                                         .values(status = BatchStatus.PROCESSING.value))

                if (result.rowcount != 1):
                    continue

                row = session.get(LearningBatchModel, batch_id)

                if row.raw_records is not None:
                    records = row.raw_records

                else:
                    records = [payload for payload in session.scalars(select(FeedbackRecordModel.payload)
                                                                      .where(FeedbackRecordModel.batch_id == batch_id)
                                                                      .order_by(FeedbackRecordModel.created_at)).all()]

                claimed.append(LearningBatch(batch_id   = batch_id,
                                             status     = BatchStatus.PROCESSING,
                                             records    = records,
                                             created_at = row.created_at,
                                            ))

        return claimed


    def _finish(self, batch_id: int, status: BatchStatus, improvements_applied: int = 0, error_message: Optional[str] = None) -> bool:
        with self.db.session_scope() as session:
            result = session.execute(update(LearningBatchModel)
                                     .where(LearningBatchModel.id == batch_id)
                                     .where(LearningBatchModel.status == BatchStatus.PROCESSING.value)
                                     .values(status               = status.value,
                                             improvements_applied = improvements_applied,
                                             error_message        = error_message,
                                             processed_at         = datetime.now(),
                                            ))

            return (result.rowcount == 1)


    def mark_completed(self, batch_id: int, improvements_applied: int) -> bool:
        return self._finish(batch_id, BatchStatus.COMPLETED, improvements_applied = improvements_applied)


    def mark_failed(self, batch_id: int, error_message: str) -> bool:
        return self._finish(batch_id, BatchStatus.FAILED, error_message = error_message)


    def get_batch(self, batch_id: int) -> Optional[LearningBatch]:
        with self.db.session_scope() as session:
            row = session.get(LearningBatchModel, batch_id)

            if row is None:
                return None

            return LearningBatch(batch_id             = row.id,
                                 status               = BatchStatus(row.status),
                                 records              = list(row.raw_records) if isinstance(row.raw_records, list) else list(),
                                 error_message        = row.error_message,
                                 improvements_applied = row.improvements_applied,
                                 created_at           = row.created_at,
                                 processed_at         = row.processed_at,
                                )


    def get_stats(self) -> Dict[str, Any]:
        with self.db.session_scope() as session:
            counts   = dict(session.execute(select(LearningBatchModel.status, func.count(LearningBatchModel.id))
                                            .group_by(LearningBatchModel.status)).all())
            feedback = session.scalar(select(func.coalesce(func.sum(LearningBatchModel.record_count), 0)))

        return {"batches_by_status" : {status.value: int(counts.get(status.value, 0)) for status in BatchStatus},
                "total_batches"     : int(sum(counts.values())),
                "total_feedback"    : int(feedback or 0),
               }


class FeatureWeightsRepository:
    """
    Versioned feature weight snapshots
    """
    def __init__(self, db: DatabaseManager):
        self.db = db


    def save(self, weights: FeatureWeights) -> None:
        with self.db.session_scope() as session:
            session.merge(FeatureWeightsModel(version    = weights.version,
                                              weights    = dict(weights.weights),
                                              created_at = weights.updated_at,
                                             ))


    def load_latest(self) -> Optional[FeatureWeights]:
        with self.db.session_scope() as session:
            row = session.scalars(select(FeatureWeightsModel).order_by(FeatureWeightsModel.version.desc()).limit(1)).first()

            if row is None:
                return None

            return FeatureWeights(weights = row.weights, version = row.version, updated_at = row.created_at)


    def list_versions(self) -> List[int]:
        with self.db.session_scope() as session:
            return list(session.scalars(select(FeatureWeightsModel.version).order_by(FeatureWeightsModel.version)).all())


class AnalysisRepository:
    """
    Stores document analysis results
    """
    def __init__(self, db: DatabaseManager):
        self.db = db


    def save_analysis(self, analysis: DocumentAnalysisResult) -> None:
        with self.db.session_scope() as session:
            session.merge(AnalysisResultModel(id                 = analysis.analysis_id,
                                              perspective        = analysis.perspective.value,
                                              overall_confidence = analysis.overall_confidence,
                                              model_version      = analysis.model_version,
                                              processing_time    = analysis.processing_time,
                                              result_json        = analysis.to_dict(),
                                              created_at         = analysis.created_at,
                                             ))


    def get_analysis(self, analysis_id: str) -> Optional[Dict[str, Any]]:
        with self.db.session_scope() as session:
            row = session.get(AnalysisResultModel, analysis_id)

            return dict(row.result_json) if row else None


    def count(self) -> int:
        with self.db.session_scope() as session:
            return int(session.scalar(select(func.count(AnalysisResultModel.id))) or 0)
