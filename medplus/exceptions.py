"""Exceptions raised before any backend call is made."""


class MedplusError(Exception):
    """Base class for medplus errors."""


class ConfigurationError(MedplusError):
    """Missing backend URL or elevated credential."""


class ValidationError(MedplusError):
    """Caller input rejected before touching the backend."""
