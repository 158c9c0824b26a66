"""
Core building blocks of the build status adapter.

This package stays free of network code: domain records, status mapping,
the definition cache and logging helpers only depend on the standard library.
"""

from .builder import create_build_info
from .cache import DefinitionCache, make_cache_key, shared_definition_cache
from .errors import AdapterError, AlreadyInitializedError, APIError, MalformedRevisionError, NotInitializedError
from .logging import configure_logging, get_logger, log_progress
from .models import BuildInfo, BuildStatus, RawBuildRecord, StreamRequest, parse_revision
from .status import BuildDurationFormatter, format_duration, map_result

__all__ = [
    "AdapterError",
    "AlreadyInitializedError",
    "APIError",
    "BuildDurationFormatter",
    "BuildInfo",
    "BuildStatus",
    "DefinitionCache",
    "MalformedRevisionError",
    "NotInitializedError",
    "RawBuildRecord",
    "StreamRequest",
    "configure_logging",
    "create_build_info",
    "format_duration",
    "get_logger",
    "log_progress",
    "make_cache_key",
    "map_result",
    "parse_revision",
    "shared_definition_cache",
]
