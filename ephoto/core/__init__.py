"""ephoto core - Shared infrastructure."""

from .config import SiteConfig, load_config, reload
from .debug import dump_response, is_debug_dumps_enabled
from .exceptions import (
    ArtifactNotFound,
    ConfigurationException,
    EphotoException,
    GenerationPending,
    InvalidRequest,
    RemoteRejected,
    RequestTimeout,
    TokenNotFound,
    TransportError,
)
from .utils import debug_log, log, log_context

__all__ = [
    # config
    "SiteConfig",
    "load_config",
    "reload",
    # debug
    "dump_response",
    "is_debug_dumps_enabled",
    # exceptions
    "EphotoException",
    "InvalidRequest",
    "ConfigurationException",
    "TokenNotFound",
    "TransportError",
    "RequestTimeout",
    "GenerationPending",
    "RemoteRejected",
    "ArtifactNotFound",
    # utils
    "log",
    "debug_log",
    "log_context",
]
