"""
Pipeline Errors

Every error here is recovered inside the pipeline. They exist so each tier
can say *why* it produced nothing, which ends up in logs and the
X-SEO-Source diagnostic header.
"""

from typing import Optional


class SitegateError(Exception):
    """Base class for resolution errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.context = context or {}


class TenantNotFound(SitegateError):
    """No verified, DNS-configured custom domain matches the hostname."""

    def __init__(self, hostname: str):
        super().__init__(f"No verified domain for {hostname}", {"hostname": hostname})
        self.hostname = hostname


class NoContent(SitegateError):
    """Domain is verified but no connection satisfies any routing rule."""

    def __init__(self, domain_id: str, path: str):
        super().__init__(
            f"No content connection matches path '{path}'",
            {"domain_id": domain_id, "path": path},
        )
        self.domain_id = domain_id
        self.path = path


class BackendUnavailable(SitegateError):
    """A backend lookup failed or exceeded its timeout."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Backend lookup '{operation}' failed{detail}", {"operation": operation})
        self.operation = operation
        self.cause = cause
