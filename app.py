# app.py
# DEPENDENCIES
import sys
import json
import time
import signal
import uvicorn
import numpy as np
from typing import Any
from typing import Dict
from typing import List
from pathlib import Path
from typing import Optional
from pydantic import Field
from fastapi import FastAPI
from fastapi import Request
from datetime import datetime
from pydantic import BaseModel
from fastapi import HTTPException
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware

# Add parent directory to path
sys.path.append(str(Path(__file__).parent))

from utils.logger import log_info
from utils.logger import log_error
from config.settings import settings
from database import DatabaseManager
from database import SQLRuleRepository
from database import AnalysisRepository
from utils.logger import ClauseEngineLogger
from database import SQLFeedbackRepository
from database import FeatureWeightsRepository
from model_manager.llm_manager import LLMManager
from services.data_models import AnalysisOptions
from services.data_models import ReviewerAction
from services.data_models import RulePerformance
from services.data_models import PartyPerspective
from services.rule_store import HierarchicalRuleStore
from services.feedback_learner import FeedbackLearner
from services.clause_analyzer import ClauseAnalysisEngine
from services.feature_weights import FeatureWeightsRegistry
from services.embedding_service import SemanticEmbeddingService


# ============================================================================
# CUSTOM SERIALIZATION METHODS
# ============================================================================
class NumpyJSONEncoder(json.JSONEncoder):
    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.floating):
            return float(obj)

        elif isinstance(obj, np.integer):
            return int(obj)

        elif isinstance(obj, np.ndarray):
            return obj.tolist()

        elif isinstance(obj, np.bool_):
            return bool(obj)

        elif isinstance(obj, datetime):
            return obj.isoformat()

        elif hasattr(obj, 'to_dict'):
            return obj.to_dict()

        elif isinstance(obj, (set, tuple)):
            return list(obj)

        return super().default(obj)


class NumpyJSONResponse(JSONResponse):
    def render(self, content: Any) -> bytes:

        return json.dumps(obj          = content,
                          ensure_ascii = False,
                          allow_nan    = False,
                          indent       = None,
                          separators   = (",", ":"),
                          cls          = NumpyJSONEncoder,
                         ).encode("utf-8")


# PYDANTIC SCHEMAS
class HealthResponse(BaseModel):
    status             : str
    version            : str
    timestamp          : str
    model_version      : str
    clause_types       : int
    weights_version    : int
    generation_enabled : bool


class AnalyzeOptionsRequest(BaseModel):
    clause_types           : Optional[List[str]] = None
    use_hierarchical_rules : bool                = True
    use_semantic_detection : bool                = True
    enable_ml_scoring      : bool                = True
    prefer_higher_levels   : bool                = True
    generate_suggestions   : bool                = True
    use_cache              : bool                = True
    max_results            : int                 = Field(default = 5, ge = 1, le = 50)
    confidence_threshold   : float               = Field(default = 0.3, ge = 0.0, le = 1.0)
    resolution_threshold   : float               = Field(default = 0.7, ge = 0.0, le = 1.0)


class AnalyzeRequest(BaseModel):
    text        : str
    perspective : PartyPerspective                = PartyPerspective.MUTUAL
    options     : Optional[AnalyzeOptionsRequest] = None


class FeedbackRequest(BaseModel):
    rule_id              : str
    reviewer_action      : ReviewerAction
    predicted_confidence : float            = Field(ge = 0.0, le = 1.0)
    features             : Dict[str, float] = Field(default_factory = dict)
    context              : Dict[str, Any]   = Field(default_factory = dict)


class ErrorResponse(BaseModel):
    error     : str
    detail    : str
    timestamp : str


# SERVICE INITIALIZATION
class ClauseEngineService:
    """
    Builds and holds the persistence layer, the analysis engine and the feedback learner
    """
    def __init__(self, database_url: Optional[str] = None, embedding_service: Optional[SemanticEmbeddingService] = None,
                 text_generator: Any = None, enable_generation: Optional[bool] = None, seed_playbook: Optional[bool] = None):
        """
        Wire every component of the engine

        Arguments:
        ----------
            database_url      { str }                      : SQLAlchemy URL (defaults to settings.DATABASE_URL)

            embedding_service { SemanticEmbeddingService } : Prebuilt embedding service, built from settings when omitted

            text_generator    { object }                   : Object with generate(prompt) -> str; an LLMManager is built when omitted and enabled

            enable_generation { bool }                     : Allow suggested-language generation (defaults to settings.ENABLE_TEXT_GENERATION)

            seed_playbook     { bool }                     : Insert bundled playbook rules on start (defaults to settings.SEED_PLAYBOOK_ON_START)
        """
        enable_generation        = settings.ENABLE_TEXT_GENERATION if (enable_generation is None) else enable_generation
        seed_playbook            = settings.SEED_PLAYBOOK_ON_START if (seed_playbook is None) else seed_playbook

        self.db                  = DatabaseManager(database_url = database_url)
        self.db.init_db()

        self.rule_repository     = SQLRuleRepository(self.db)

        if seed_playbook:
            self.rule_repository.seed_playbook()

        self.rule_store          = HierarchicalRuleStore(provider = self.rule_repository)

        self.weights_repository  = FeatureWeightsRepository(self.db)
        latest_weights           = self.weights_repository.load_latest()
        self.weights_registry    = FeatureWeightsRegistry(initial = latest_weights)

        if latest_weights is None:
            self.weights_repository.save(self.weights_registry.current())

        self.embedding_service   = embedding_service or SemanticEmbeddingService()

        self.text_generator      = None

        if enable_generation:
            self.text_generator = text_generator or LLMManager()

        self.analysis_repository = AnalysisRepository(self.db)
        self.engine              = ClauseAnalysisEngine(rule_store        = self.rule_store,
                                                        embedding_service = self.embedding_service,
                                                        weights_registry  = self.weights_registry,
                                                        text_generator    = self.text_generator,
                                                        result_store      = self.analysis_repository,
                                                       )

        self.feedback_repository = SQLFeedbackRepository(self.db)
        self.learner             = FeedbackLearner(rule_store          = self.rule_store,
                                                   feedback_repository = self.feedback_repository,
                                                   weights_registry    = self.weights_registry,
                                                   weights_repository  = self.weights_repository,
                                                  )

        log_info("ClauseEngineService ready",
                 clause_types       = len(self.rule_store.get_clause_types()),
                 weights_version    = self.weights_registry.version,
                 model_version      = self.embedding_service.model_version,
                 generation_enabled = self.text_generator is not None,
                )


    def get_analytics(self) -> Dict[str, Any]:
        return {"rules"      : self.rule_store.get_rule_analytics(),
                "learning"   : self.learner.get_learning_analytics(),
                "embeddings" : self.embedding_service.get_stats(),
                "analyses"   : self.analysis_repository.count(),
               }


    def shutdown(self):
        self.db.dispose()


def _require_service(request: Request) -> ClauseEngineService:
    service = getattr(request.app.state, "engine_service", None)

    if service is None:
        raise HTTPException(status_code = 503,
                            detail      = "Service not initialized",
                           )

    return service


def create_app(engine_service: Optional[ClauseEngineService] = None) -> FastAPI:
    """
    Build the FastAPI application; a prebuilt engine_service skips the startup wiring
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_info(f"{settings.APP_NAME} v{settings.APP_VERSION} starting up")

        if app.state.engine_service is None:
            try:
                app.state.engine_service = ClauseEngineService()

            except Exception as e:
                log_error(e, context = {"component" : "app", "operation" : "startup"})
                raise

        log_info("Server ready", host = settings.HOST, port = settings.PORT)

        try:
            yield

        finally:
            log_info("Shutting down server")
            app.state.engine_service.shutdown()

    app                      = FastAPI(title                  = settings.APP_NAME,
                                       version                = settings.APP_VERSION,
                                       description            = "Playbook-driven legal clause classification",
                                       docs_url               = "/api/docs",
                                       redoc_url              = "/api/redoc",
                                       default_response_class = NumpyJSONResponse,
                                       lifespan               = lifespan,
                                      )
    app.state.engine_service = engine_service

    # CORS middleware
    app.add_middleware(CORSMiddleware,
                       allow_origins     = settings.CORS_ORIGINS,
                       allow_credentials = settings.CORS_ALLOW_CREDENTIALS,
                       allow_methods     = settings.CORS_ALLOW_METHODS,
                       allow_headers     = settings.CORS_ALLOW_HEADERS,
                      )

    prefix = settings.API_PREFIX


    # API ROUTES
    @app.get(f"{prefix}/health", response_model = HealthResponse)
    async def health_check(request: Request):
        service = _require_service(request)

        return HealthResponse(status             = "healthy",
                              version            = settings.APP_VERSION,
                              timestamp          = datetime.now().isoformat(),
                              model_version      = service.engine.model_version,
                              clause_types       = len(service.engine.get_clause_types()),
                              weights_version    = service.weights_registry.version,
                              generation_enabled = service.text_generator is not None,
                             )


    @app.get(f"{prefix}/clause-types")
    async def get_clause_types(request: Request):
        service = _require_service(request)

        return {"clause_types": [clause.to_dict() for clause in service.engine.get_clause_types()]}


    @app.post(f"{prefix}/analyze")
    async def analyze_document(payload: AnalyzeRequest, request: Request):
        service = _require_service(request)
        options = AnalysisOptions(**payload.options.model_dump()) if payload.options else AnalysisOptions()

        try:
            result = await service.engine.analyze_document(text              = payload.text,
                                                           party_perspective = payload.perspective,
                                                           options           = options,
                                                          )

        except Exception as e:
            log_error(e, context = {"component" : "app", "operation" : "analyze_document"})

            raise HTTPException(status_code = 500,
                                detail      = f"Analysis failed: {repr(e)}",
                               )

        log_info("Text analysis completed",
                 analysis_id        = result.analysis_id,
                 overall_confidence = round(result.overall_confidence, 4),
                )

        return result.to_dict()


    @app.get(prefix + "/analyses/{analysis_id}")
    async def get_analysis(analysis_id: str, request: Request):
        service = _require_service(request)
        stored  = service.analysis_repository.get_analysis(analysis_id)

        if stored is None:
            raise HTTPException(status_code = 404,
                                detail      = f"Unknown analysis: {analysis_id}",
                               )

        return stored


    @app.post(f"{prefix}/feedback", status_code = 202)
    async def record_feedback(payload: FeedbackRequest, request: Request):
        service = _require_service(request)
        record  = service.learner.record_feedback(rule_id              = payload.rule_id,
                                                  features             = payload.features,
                                                  reviewer_action      = payload.reviewer_action,
                                                  predicted_confidence = payload.predicted_confidence,
                                                  context              = payload.context,
                                                 )

        if record is None:
            raise HTTPException(status_code = 422,
                                detail      = "Feedback could not be recorded",
                               )

        return {"recorded": True, "record": record.to_dict()}


    @app.post(f"{prefix}/learning/run")
    async def run_learning_pass(request: Request):
        service = _require_service(request)
        result  = service.learner.run_learning_pass()

        if (result.improvements_applied > 0):
            service.engine.clear_cache()

        return result.to_dict()


    @app.get(prefix + "/rules/{rule_id}/performance")
    async def get_rule_performance(rule_id: str, request: Request):
        service = _require_service(request)
        rule    = service.rule_store.get_rule(rule_id)

        if rule is None:
            raise HTTPException(status_code = 404,
                                detail      = f"Unknown rule: {rule_id}",
                               )

        performance = service.rule_store.get_performance(rule_id) or RulePerformance(rule_id = rule_id)

        return {"rule"        : rule.to_dict(),
                "performance" : performance.to_dict(),
               }


    @app.get(f"{prefix}/analytics")
    async def get_analytics(request: Request):
        return _require_service(request).get_analytics()


    # ERROR HANDLERS AND MIDDLEWARE
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return NumpyJSONResponse(status_code = exc.status_code,
                                 content     = ErrorResponse(error     = str(exc.detail),
                                                             detail    = str(exc.detail),
                                                             timestamp = datetime.now().isoformat(),
                                                            ).model_dump()
                                )


    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time   = time.time()
        response     = await call_next(request)
        process_time = time.time() - start_time

        log_info("API Request",
                 method      = request.method,
                 path        = request.url.path,
                 status_code = response.status_code,
                 duration    = round(process_time, 3),
                )

        return response

    return app


# Initialize logger
ClauseEngineLogger.setup(log_dir  = str(settings.LOG_DIR),
                         app_name = "clause_engine",
                        )

app = create_app()


def main():
    def signal_handler(sig, frame):
        log_info("Received interrupt, shutting down")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)

    try:
        uvicorn.run("app:app",
                    host      = settings.HOST,
                    port      = settings.PORT,
                    reload    = settings.RELOAD,
                    workers   = settings.WORKERS,
                    log_level = settings.LOG_LEVEL.lower(),
                   )

    except Exception as e:
        log_error(e, context = {"component" : "app", "operation" : "main"})
        sys.exit(1)


# MAIN
if __name__ == "__main__":
    main()
