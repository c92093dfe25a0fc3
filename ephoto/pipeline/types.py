"""Data types passed between pipeline stages."""

from dataclasses import dataclass, field
from enum import Enum


class Encoding(str, Enum):
    URLENCODED = "urlencoded"
    MULTIPART = "multipart"


class ExtractionState(str, Enum):
    FOUND = "Found"
    PENDING = "Pending"
    NOT_FOUND = "NotFound"
    TIMEOUT = "Timeout"  # only produced by the poll loop


@dataclass(frozen=True)
class FormContext:
    """Token and routing fields read from one form page fetch."""

    token: str
    build_server: str
    build_server_id: str
    action_url: str
    page_url: str
    session_cookies: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.token:
            raise ValueError("FormContext.token must be non-empty")
        if "://" not in self.action_url:
            raise ValueError(f"FormContext.action_url must be absolute, got {self.action_url!r}")


@dataclass(frozen=True)
class SubmissionRequest:
    text: str
    form_context: FormContext
    encoding: Encoding = Encoding.URLENCODED

    def fields(self) -> list[tuple[str, str]]:
        """Form fields in the order the remote form posts them."""
        ctx = self.form_context
        return [
            ("text[]", self.text),
            ("token", ctx.token),
            ("build_server", ctx.build_server),
            ("build_server_id", ctx.build_server_id),
            ("submit", "GO"),
        ]


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one resolution attempt. Build through the classmethods."""

    state: ExtractionState
    image_url: str | None = None
    download_url: str | None = None
    strategy: str | None = None

    def __post_init__(self):
        if self.state is ExtractionState.FOUND and not self.image_url:
            raise ValueError("Found result requires an image_url")
        if self.state is not ExtractionState.FOUND and (self.image_url or self.download_url):
            raise ValueError(f"{self.state.value} result carries no URL")

    @classmethod
    def found(cls, image_url: str, download_url: str | None = None, strategy: str | None = None) -> "ExtractionResult":
        return cls(ExtractionState.FOUND, image_url, download_url or image_url, strategy)

    @classmethod
    def pending(cls) -> "ExtractionResult":
        return cls(ExtractionState.PENDING)

    @classmethod
    def not_found(cls) -> "ExtractionResult":
        return cls(ExtractionState.NOT_FOUND)

    @classmethod
    def timeout(cls) -> "ExtractionResult":
        return cls(ExtractionState.TIMEOUT)

    @property
    def is_found(self) -> bool:
        return self.state is ExtractionState.FOUND

    @property
    def is_pending(self) -> bool:
        return self.state is ExtractionState.PENDING


@dataclass(frozen=True)
class RawResponse:
    """What the transport hands back: final URL, status, headers, body."""

    url: str
    status: int
    body: str
    headers: dict = field(default_factory=dict)
    cookies: tuple[str, ...] = ()
    redirected_from: str | None = None

    def json(self) -> dict | None:
        import json

        try:
            data = json.loads(self.body)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None


@dataclass(frozen=True)
class DiagnosticSnapshot:
    """Enough context to triage a failure without re-running it. Never the full body."""

    response_length: int
    token_found: bool
    has_known_host: bool
    has_known_path: bool
    pending_marker: bool
    sample: str
    status_code: int | None = None
    url: str | None = None

    def to_dict(self) -> dict:
        data = {
            "response_length": self.response_length,
            "token_found": self.token_found,
            "contains_known_host": self.has_known_host,
            "contains_known_path": self.has_known_path,
            "pending_marker": self.pending_marker,
            "sample": self.sample,
        }
        if self.status_code is not None:
            data["status_code"] = self.status_code
        if self.url:
            data["url"] = self.url
        return data


@dataclass
class PipelineResult:
    """The value every generate call returns, success or not."""

    success: bool
    text: str
    effect_url: str
    image_url: str | None = None
    download_url: str | None = None
    server: str | None = None
    image_id: str | None = None
    error_kind: str | None = None
    error: str | None = None
    retry: bool = False
    debug: DiagnosticSnapshot | None = None
    generator: str | None = None

    @classmethod
    def failure(
        cls,
        text: str,
        effect_url: str,
        error_kind: str,
        error: str,
        debug: DiagnosticSnapshot | None = None,
        retry: bool = False,
    ) -> "PipelineResult":
        return cls(
            success=False,
            text=text,
            effect_url=effect_url,
            error_kind=error_kind,
            error=error,
            debug=debug,
            retry=retry,
        )

    def to_dict(self) -> dict:
        """Response shape handed to HTTP and CLI callers."""
        if self.success:
            result = {
                "download_url": self.download_url,
                "image_url": self.image_url,
                "text": self.text,
                "effect_url": self.effect_url,
            }
            if self.server:
                result["server"] = self.server
            if self.image_id:
                result["image_id"] = self.image_id
            return {"success": True, "result": result}

        data: dict = {"success": False, "error": self.error, "error_kind": self.error_kind}
        if self.retry:
            data["retry"] = True
        if self.debug is not None:
            data["debug"] = self.debug.to_dict()
        return data
