"""
Model-list validator.

Summaries, predictions and AIC comparison all operate on caller-supplied model
collections, and the ways such a collection can be malformed (a value that is
not a fitted model, a model type lacking an extraction, data that no longer
lines up) are open-ended. Instead of enumerating them, the whole computation
is run under ``run_guarded`` and any failure surfaces as a single
InvalidModelCollectionError. The original exception stays chained on the
raised error and is logged at DEBUG.
"""

import logging
from typing import Any, Callable, TypeVar

from .errors import InvalidModelCollectionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

INVALID_COLLECTION_MESSAGE = (
    "Could not process the model collection. Please verify that you supplied a "
    "mapping of names to valid fitted-model objects (for example the output of "
    "build_models)."
)


def run_guarded(computation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run ``computation`` and collapse any failure into InvalidModelCollectionError.
    """
    try:
        return computation(*args, **kwargs)
    except Exception as exc:
        logger.debug(
            "Model collection computation %s failed: %s",
            getattr(computation, "__name__", repr(computation)),
            exc,
            exc_info=True,
        )
        raise InvalidModelCollectionError(INVALID_COLLECTION_MESSAGE) from exc

