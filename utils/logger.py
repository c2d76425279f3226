# DEPENDENCIES
import os
import sys
import time
import json
import inspect
import logging
import traceback
from typing import Any
from typing import Dict
from pathlib import Path
from typing import Optional
from functools import wraps
from datetime import datetime


DEFAULT_APP_NAME = "clause_engine"


class ClauseEngineLogger:
    """
    Structured logging for the clause engine

    Three file loggers are kept per application name:
    - main log (structured JSON messages)
    - error log (tracebacks with component / operation context)
    - performance log (durations of timed operations and stage attempts)
    """
    _loggers  : Dict[str, logging.Logger] = dict()
    _log_dir  : Optional[Path]            = None
    _app_name : str                       = DEFAULT_APP_NAME

    DEBUG                                 = logging.DEBUG
    INFO                                  = logging.INFO
    WARNING                               = logging.WARNING
    ERROR                                 = logging.ERROR
    CRITICAL                              = logging.CRITICAL


    @classmethod
    def setup(cls, log_dir: Optional[str] = None, app_name: str = DEFAULT_APP_NAME, level: int = logging.INFO):
        """
        Setup logging system

        Arguments:
        ----------
            log_dir  { str } : Directory for log files (defaults to $CLAUSE_ENGINE_LOG_DIR or "logs")

            app_name { str } : Application name used as logger prefix and file name

            level    { int } : Level of the main logger
        """
        cls._log_dir  = Path(log_dir or os.environ.get("CLAUSE_ENGINE_LOG_DIR", "logs"))
        cls._log_dir.mkdir(parents = True, exist_ok = True)
        cls._app_name = app_name

        cls._create_logger(name     = app_name,
                           log_file = cls._log_dir / f"{app_name}.log",
                           level    = level,
                          )

        cls._create_logger(name     = f"{app_name}.error",
                           log_file = cls._log_dir / f"{app_name}_error.log",
                           level    = logging.ERROR,
                          )

        cls._create_logger(name     = f"{app_name}.performance",
                           log_file = cls._log_dir / f"{app_name}_performance.log",
                           level    = logging.INFO,
                          )


    @classmethod
    def _create_logger(cls, name: str, log_file: Path, level: int) -> logging.Logger:
        logger             = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate   = False
        logger.handlers.clear()

        file_handler       = logging.FileHandler(log_file)
        file_handler.setLevel(level)

        # Console only gets warnings and above
        console_handler    = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)

        formatter          = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s', datefmt = '%Y-%m-%d %H:%M:%S')
        file_handler.setFormatter(formatter)
        console_handler.setFormatter(formatter)

        logger.addHandler(file_handler)
        logger.addHandler(console_handler)

        cls._loggers[name] = logger

        return logger


    @classmethod
    def get_logger(cls, name: Optional[str] = None) -> logging.Logger:
        """
        Get logger by name, initializing the logging system lazily
        """
        name = name or cls._app_name

        if name not in cls._loggers:
            cls.setup(app_name = cls._app_name)

        return cls._loggers.get(name, logging.getLogger(name))


    @classmethod
    def log_structured(cls, level: int, message: str, **kwargs):
        """
        Log structured data as JSON

        Arguments:
        ----------
            level   { int } : Log level

            message { str } : Log message

            **kwargs        : Additional structured data (must be JSON serializable or str()-able)
        """
        logger   = cls.get_logger()

        log_data = {"timestamp" : datetime.now().isoformat(),
                    "message"   : message,
                    **kwargs
                   }

        logger.log(level, json.dumps(log_data, default = str))


    @classmethod
    def log_error(cls, error: Exception, context: Dict[str, Any] = None):
        """
        Log error with full traceback and context

        Arguments:
        ----------
            error   { Exception } : Exception object

            context   { dict }    : Additional context, conventionally with "component" and "operation"
        """
        error_logger = cls._loggers.get(f"{cls._app_name}.error") or cls.get_logger(f"{cls._app_name}.error")

        error_data   = {"timestamp"     : datetime.now().isoformat(),
                        "error_type"    : type(error).__name__,
                        "error_message" : str(error),
                        "traceback"     : traceback.format_exc(),
                        "context"       : context or {},
                       }

        error_logger.error(json.dumps(error_data, indent = 2, default = str))


    @classmethod
    def log_performance(cls, operation: str, duration: float, **metrics):
        """
        Log performance metrics

        Arguments:
        ----------
            operation { str }  : Operation name

            duration { float } : Duration in seconds

            **metrics          : Additional metrics
        """
        perf_logger = cls._loggers.get(f"{cls._app_name}.performance") or cls.get_logger(f"{cls._app_name}.performance")

        perf_data   = {"timestamp"        : datetime.now().isoformat(),
                       "operation"        : operation,
                       "duration_seconds" : round(duration, 4),
                       **metrics
                      }

        perf_logger.info(json.dumps(perf_data, default = str))


    @staticmethod
    def log_execution_time(operation_name: str = None):
        """
        Decorator to log execution time of functions and coroutine functions
        """
        def decorator(func):
            op_name = operation_name or func.__name__

            if inspect.iscoroutinefunction(func):
                @wraps(func)
                async def async_wrapper(*args, **kwargs):
                    start_time = time.perf_counter()

                    try:
                        result = await func(*args, **kwargs)

                    except Exception as e:
                        ClauseEngineLogger.log_performance(operation = op_name,
                                                           duration  = time.perf_counter() - start_time,
                                                           status    = "error",
                                                           error     = str(e),
                                                          )
                        ClauseEngineLogger.log_error(e, context = {"operation" : op_name})
                        raise

                    ClauseEngineLogger.log_performance(operation = op_name,
                                                       duration  = time.perf_counter() - start_time,
                                                       status    = "success",
                                                      )
                    return result

                return async_wrapper

            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.perf_counter()

                try:
                    result = func(*args, **kwargs)

                except Exception as e:
                    ClauseEngineLogger.log_performance(operation = op_name,
                                                       duration  = time.perf_counter() - start_time,
                                                       status    = "error",
                                                       error     = str(e),
                                                      )
                    ClauseEngineLogger.log_error(e, context = {"operation" : op_name})
                    raise

                ClauseEngineLogger.log_performance(operation = op_name,
                                                   duration  = time.perf_counter() - start_time,
                                                   status    = "success",
                                                  )
                return result

            return wrapper

        return decorator



# Convenience functions
def get_logger(name: Optional[str] = None) -> logging.Logger:
    return ClauseEngineLogger.get_logger(name)


def log_info(message: str, **kwargs):
    ClauseEngineLogger.log_structured(logging.INFO, message, **kwargs)


def log_warning(message: str, **kwargs):
    ClauseEngineLogger.log_structured(logging.WARNING, message, **kwargs)


def log_error(error: Exception, context: Dict[str, Any] = None):
    ClauseEngineLogger.log_error(error, context)


def log_debug(message: str, **kwargs):
    ClauseEngineLogger.log_structured(logging.DEBUG, message, **kwargs)


def log_performance(operation: str, duration: float, **metrics):
    ClauseEngineLogger.log_performance(operation, duration, **metrics)
