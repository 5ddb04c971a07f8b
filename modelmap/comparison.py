"""
AIC-based comparison of a model collection.

For models i = 1..n with AIC_i:

    delta_aic_i  = AIC_i - min(AIC)
    likelihood_i = exp(-0.5 * delta_aic_i)
    aic_weight_i = likelihood_i / sum(likelihood)

The best model has delta_aic == 0 and likelihood == 1.0; weights sum to 1.
"""

import logging
import math
from collections.abc import Mapping

import numpy as np
import pandas as pd

from .families import as_fitted_model
from .predictions import MODEL_COLUMN
from .validation import run_guarded

logger = logging.getLogger(__name__)

COMPARISON_COLUMNS = [MODEL_COLUMN, "aic", "delta_aic", "likelihood", "aic_weight"]


def summarize_aic(models: Mapping) -> pd.DataFrame:
    """
    One row per model, in collection order, with columns
    ``model, aic, delta_aic, likelihood, aic_weight``.

    Raises:
        InvalidModelCollectionError: the collection is empty, holds a value
            that is not a fitted model, or a model has no finite AIC.
    """

    def _compare() -> pd.DataFrame:
        names = list(models.keys())
        if not names:
            raise ValueError("empty model collection")
        aic = np.array(
            [as_fitted_model(models[name]).aic() for name in names], dtype=np.float64
        )
        delta_aic = aic - aic.min()
        likelihood = np.exp(-0.5 * delta_aic)
        aic_weight = likelihood / likelihood.sum()
        return pd.DataFrame(
            {
                MODEL_COLUMN: names,
                "aic": aic,
                "delta_aic": delta_aic,
                "likelihood": likelihood,
                "aic_weight": aic_weight,
            },
            columns=COMPARISON_COLUMNS,
        )

    return run_guarded(_compare)


def best_model(table: pd.DataFrame) -> str:
    """Name of the first model with the lowest AIC in a summarize_aic table."""
    return str(table.loc[table["delta_aic"].idxmin(), MODEL_COLUMN])


def format_aic_table(table: pd.DataFrame) -> str:
    """
    Fixed-width plain-text rendering of a summarize_aic table, followed by the
    selected (lowest-AIC) model.
    """

    def _fmt_fixed(x, width: int, decimals: int) -> str:
        xf = float(x)
        if not math.isfinite(xf):
            return "-".center(width)
        return f"{xf:.{decimals}f}".rjust(width)

    headers = ("Model", "AIC", "dAIC", "Likelihood", "Weight")
    width_aic, dec_aic = 12, 2
    width_delta, dec_delta = 10, 2
    width_lik, dec_lik = 12, 4
    width_w, dec_w = 10, 4

    table_rows = [
        (
            str(row[MODEL_COLUMN]),
            _fmt_fixed(row["aic"], width_aic, dec_aic),
            _fmt_fixed(row["delta_aic"], width_delta, dec_delta),
            _fmt_fixed(row["likelihood"], width_lik, dec_lik),
            _fmt_fixed(row["aic_weight"], width_w, dec_w),
        )
        for _, row in table.iterrows()
    ]

    col0_width = max([len(headers[0])] + [len(r[0]) for r in table_rows])
    header_line = (
        f"{headers[0]:<{col0_width}}  "
        f"{headers[1]:>{width_aic}}  "
        f"{headers[2]:>{width_delta}}  "
        f"{headers[3]:>{width_lik}}  "
        f"{headers[4]:>{width_w}}"
    )
    sep_line = "-" * len(header_line)

    lines = ["Model Comparison (AIC)", header_line, sep_line]
    for r in table_rows:
        lines.append(f"{r[0]:<{col0_width}}  {r[1]}  {r[2]}  {r[3]}  {r[4]}")
    lines.append("")
    if table_rows:
        lines.append(f"Selected model (lowest AIC): {best_model(table)}")
        lines.append("")

    return "\n".join(lines)
