"""Combined per-observation predictions across a model collection."""

import logging
from collections.abc import Mapping

import pandas as pd

from .families import as_fitted_model
from .validation import run_guarded

logger = logging.getLogger(__name__)

MODEL_COLUMN = "model"


def tidy_predictions(models: Mapping) -> pd.DataFrame:
    """
    Stack every model's augmented observation table into one DataFrame.

    Each model contributes the data columns its formula references plus
    ``fitted``, ``resid`` and whichever of ``se_fit``, ``hat``, ``sigma``,
    ``cooksd``, ``std_resid`` its family provides, tagged with the model name
    in a leading ``model`` column. Blocks appear in collection order with
    their original row order. Columns a model lacks are NaN.

    Raises:
        InvalidModelCollectionError: any value is not a usable fitted model.
    """

    def _tidy() -> pd.DataFrame:
        frames = []
        for name, model in models.items():
            augmented = as_fitted_model(model).augment()
            augmented[MODEL_COLUMN] = name
            ordered = [MODEL_COLUMN] + [c for c in augmented.columns if c != MODEL_COLUMN]
            frames.append(augmented[ordered])
            logger.debug("Augmented model '%s': %d rows", name, len(augmented))
        if not frames:
            raise ValueError("empty model collection")
        return pd.concat(frames, ignore_index=True, sort=False)

    return run_guarded(_tidy)
