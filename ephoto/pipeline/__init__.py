"""ephoto pipeline - token extraction, submission, artifact resolution and polling.

Stage modules are imported directly (ephoto.pipeline.tokens, .submit, .resolver, .poll);
only the data types are re-exported here.
"""

from .types import (
    DiagnosticSnapshot,
    Encoding,
    ExtractionResult,
    ExtractionState,
    FormContext,
    PipelineResult,
    RawResponse,
    SubmissionRequest,
)

__all__ = [
    "DiagnosticSnapshot",
    "Encoding",
    "ExtractionResult",
    "ExtractionState",
    "FormContext",
    "PipelineResult",
    "RawResponse",
    "SubmissionRequest",
]
