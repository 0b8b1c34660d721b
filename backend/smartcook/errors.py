"""Error taxonomy for ingredient matching and recipe mixing."""


class MixError(Exception):
    """Base class for mix pipeline errors."""


class MixValidationError(MixError, ValueError):
    """Request-level validation failure. Raised before any sourcing begins."""


class SourceUnavailable(MixError):
    """A single catalog query or generative call failed; contributes zero candidates."""

    def __init__(self, source: str, technique: str, cause: BaseException | None = None) -> None:
        self.source = source
        self.technique = technique
        self.cause = cause
        super().__init__(f"{source} unavailable for technique={technique}: {cause}")


class MalformedRecordError(MixError, ValueError):
    """A store or generative record failed schema validation at the boundary."""

    def __init__(self, record_id: str | None, reason: str) -> None:
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"malformed record id={record_id}: {reason}")
