"""Exception taxonomy shared across docpipe jobs."""

from __future__ import annotations


class DocPipeError(RuntimeError):
    """Base class for errors raised by the documentation pipeline."""


class ConfigError(DocPipeError):
    """Raised when .docpipe.yml cannot be parsed."""


class CatalogError(DocPipeError):
    """Raised when the package catalog is malformed. Fatal for the run."""


class TemplateError(DocPipeError):
    """Raised when a destination page lacks usable generated-region markers."""


class SyncError(DocPipeError):
    """Raised when the external docs snapshot cannot be fetched or read."""


class SiteError(DocPipeError):
    """Raised when the static-site tool or a preparation command fails."""


class RegistryError(DocPipeError):
    """Raised when a package registry query fails."""

    def __init__(self, message: str, *, package_key: str | None = None) -> None:
        super().__init__(message)
        self.package_key = package_key


class TransientRegistryError(RegistryError):
    """Registry failure worth retrying (timeout, 5xx, rate limit)."""


class RegistryResponseError(RegistryError):
    """Registry answered but the payload holds no usable download count."""


class SyncWarning(UserWarning):
    """Emitted when a snapshot archive yields no matching entries."""


__all__ = [
    "CatalogError",
    "ConfigError",
    "DocPipeError",
    "RegistryError",
    "RegistryResponseError",
    "SiteError",
    "SyncError",
    "SyncWarning",
    "TemplateError",
    "TransientRegistryError",
]
