"""
Exception taxonomy for modelmap.

Every error carries a ``kind`` token and a self-contained message that names a
concrete remedy. When an error is raised on top of a lower-level failure the
original exception is chained (``raise ... from exc``) and exposed via
``cause`` so it can be logged without being shown to the end user.
"""

from typing import Optional


class ModelMapError(Exception):
    """Base exception for modelmap errors."""

    kind: str = "ModelMapError"

    @property
    def cause(self) -> Optional[BaseException]:
        """The underlying exception this error was raised from, if any."""
        return self.__cause__


class MissingDependencyError(ModelMapError):
    """Raised when a required third-party package cannot be imported."""

    kind = "MissingDependency"

    def __init__(self, capability: str, distribution: Optional[str] = None) -> None:
        self.capability = capability
        self.distribution = distribution or capability
        super().__init__(
            f"Package '{capability}' is required but could not be imported. "
            f"Install it with: pip install {self.distribution}"
        )


class MissingArgumentError(ModelMapError):
    """Raised when formulas or data were not supplied."""

    kind = "MissingArgument"


class InvalidFormulaError(ModelMapError):
    """Raised when the formula collection contains something that is not a formula."""

    kind = "InvalidFormula"


class ModelConstructionError(ModelMapError):
    """Raised when fitting any model of the collection fails."""

    kind = "ModelConstructionFailed"


class InvalidModelCollectionError(ModelMapError):
    """Raised when a model collection cannot be summarized, tidied or compared."""

    kind = "InvalidModelCollection"
