"""
Error kinds raised by the surface models.

All of them derive from ValueError: they describe geometric preconditions
that the caller's inputs violate, never transient failures.
"""


class SurfaceError(ValueError):
    """Base class of all surface-model errors."""


class NoIntersectionError(SurfaceError):
    """The source→point ray never enters the modelled body."""


class DegenerateConstructionError(SurfaceError):
    """A surface could not be built from the supplied geometry."""


class ConfigurationError(SurfaceError):
    """Invalid resolution parameters or sample sets."""


class InvalidRayError(SurfaceError):
    """The query point coincides with the source, so no ray is defined."""
