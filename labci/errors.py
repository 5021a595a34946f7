"""
Exception types raised by labci.

Transport failures surface as APIError from the client and are passed
through untouched by the pipeline and job helpers. The remaining classes
are raised locally.
"""

from typing import Optional


class LabciError(Exception):
    """Base class for all labci errors."""
    pass


class APIError(LabciError):
    """A request to the hosting platform failed."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        url: Optional[str] = None,
        method: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.url = url
        self.method = method
        # set by callers that had already picked a job when the request failed
        self.job = None

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


class PipelineNotFoundError(LabciError):
    """No pipeline matched the requested ref or SHA."""

    def __init__(self, ref: str):
        super().__init__(f"No pipelines running or available on {ref} branch")
        self.ref = ref


class GitError(LabciError):
    """The local git context could not be read."""
    pass


class ConfigError(LabciError):
    """Required configuration is missing or invalid."""
    pass
