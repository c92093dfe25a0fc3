"""ephoto - Text-effect images from ephoto360-style form pages, over plain HTTP."""

from .pipeline.types import PipelineResult
from .providers import BrowserGenerator, FallbackGenerator, Generator, HttpGenerator, create_generator

__all__ = [
    "BrowserGenerator",
    "FallbackGenerator",
    "Generator",
    "HttpGenerator",
    "PipelineResult",
    "create_generator",
]
