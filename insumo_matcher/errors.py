"""Exceptions raised by the reconciliation tool."""


class InsumoMatcherError(Exception):
    """Base class for errors reported back as ``{"success": false}`` payloads."""


class CatalogLoadError(InsumoMatcherError):
    """A catalog or configuration table could not be read."""
