"""Error taxonomy for manifest handling and the publish pipeline."""

from typing import Iterable, Optional


class PublishError(Exception):
    """Base class for every failure surfaced to the invoker."""


class ConfigurationError(PublishError):
    """The project file or environment is missing or inconsistent."""


class UnsupportedFormatError(ConfigurationError):
    """A file extension does not map to any known manifest format."""


class ManifestParseError(PublishError):
    """Base class for decode failures."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(f"{message} ({source})" if source else message)


class NotAManifestError(ManifestParseError):
    """The data is not a manifest at all. Callers treat this as 'skip'."""


class MalformedManifestError(ManifestParseError):
    """The data looks like a manifest but a field has the wrong type or shape."""


class ManifestValidationError(PublishError):
    """A decoded manifest violates a business rule."""

    def __init__(self, rule, reason: str, source: Optional[str] = None):
        self.rule = rule
        self.reason = reason
        self.source = source
        suffix = f" ({source})" if source else ""
        super().__init__(f"Invalid manifest: {reason}{suffix}")


class DuplicateIdentityError(PublishError):
    """Two or more manifests share one internalId."""

    def __init__(self, internal_id: str, sources: Iterable[str]):
        self.internal_id = internal_id
        self.sources = list(sources)
        super().__init__(
            f"{len(self.sources)} manifests have the same internalId "
            f"'{internal_id}': {', '.join(self.sources)}"
        )


class MissingRequiredFieldError(PublishError):
    """A declaration is missing one or more required fields."""

    def __init__(self, declaration: str, fields: Iterable[str]):
        self.declaration = declaration
        self.fields = list(fields)
        names = ", ".join(f"'{f}'" for f in self.fields)
        noun = "property" if len(self.fields) == 1 else "properties"
        super().__init__(f"Missing {noun} {names} in {declaration}")


class ExternalDependencyError(PublishError):
    """Resolved dependencies fall outside the allow-list."""

    def __init__(self, keys: Iterable[str]):
        self.keys = list(keys)
        super().__init__(
            "RuneMate does not support external dependencies, please remove: "
            + ", ".join(self.keys)
        )


class PipelineIOError(PublishError):
    """A filesystem operation failed while collecting or archiving."""


class SubmissionError(PublishError):
    """The submission could not be completed."""


class SubmissionOfflineError(SubmissionError):
    """The review service answered 404. The invoker should retry later."""


class SubmissionRejectedError(SubmissionError):
    """The review service rejected the submission. The message is the service's reason."""
