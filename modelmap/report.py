"""
modelmap report - one call from formulas and data to every table.

run_report() chains the building blocks:
- build_models()      fit one model per formula
- summarize_models()  print ANOVA and confidence-interval tables (optional)
- tidy_predictions()  combined per-observation table
- summarize_aic()     AIC comparison with Akaike weights

Settings live in ReportParams; get_default_params() returns the policy
defaults. Logging is configured only through configure_logging().
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TextIO

import pandas as pd

from .builder import build_models
from .comparison import best_model, format_aic_table, summarize_aic
from .families import FittedModel
from .predictions import MODEL_COLUMN, tidy_predictions
from .summaries import summarize_models

logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = "MODELMAP_DEBUG"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


@dataclass
class ReportParams:
    """
    Parameters for run_report().

    Attributes:
        anova_type: Sum-of-squares type for linear-model ANOVA tables (1, 2 or 3).
        ci_level: Coverage of the coefficient confidence intervals.
        fit_fn: Model-fitting callable; None fits ordinary least squares.
        fit_options: Keyword options passed to every fit_fn call.
        print_summaries: Print ANOVA/confidence-interval tables and the AIC
            comparison while running.
        debug: Log at DEBUG level (same as MODELMAP_DEBUG=1).
    """

    anova_type: int = 1
    ci_level: float = 0.95
    fit_fn: Optional[Callable[..., Any]] = None
    fit_options: Dict[str, Any] = field(default_factory=dict)
    print_summaries: bool = True
    debug: bool = False


@dataclass
class ReportOutputs:
    models: Dict[str, FittedModel]
    predictions: pd.DataFrame
    aic_table: pd.DataFrame
    best_model: str


def get_default_params() -> ReportParams:
    return ReportParams(
        anova_type=1,
        ci_level=0.95,
        fit_fn=None,
        fit_options={},
        print_summaries=True,
        debug=False,
    )


def configure_logging(debug: Optional[bool] = None) -> None:
    """
    Configure root logging. DEBUG when ``debug`` is true or MODELMAP_DEBUG=1,
    INFO otherwise.
    """
    if debug is None:
        debug = os.getenv(DEBUG_ENV_VAR, "") == "1"
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("modelmap").setLevel(level)


def run_report(
    formulas: Mapping,
    data: pd.DataFrame,
    params: Optional[ReportParams] = None,
    file: Optional[TextIO] = None,
) -> ReportOutputs:
    """
    Fit, summarize, tidy and compare a collection of formulas on one dataset.

    Errors from the individual steps propagate unchanged (MissingArgumentError,
    InvalidFormulaError, ModelConstructionError, InvalidModelCollectionError,
    MissingDependencyError).
    """
    if params is None:
        params = get_default_params()
    if params.debug:
        logging.getLogger("modelmap").setLevel(logging.DEBUG)

    models = build_models(formulas, data, params.fit_fn, **params.fit_options)

    if params.print_summaries:
        summarize_models(
            models, level=params.ci_level, file=file, typ=params.anova_type
        )

    predictions = tidy_predictions(models)
    aic_table = summarize_aic(models)
    selected = best_model(aic_table)

    if params.print_summaries:
        print(format_aic_table(aic_table), file=file)

    logger.info(
        "Compared %d model(s); selected '%s' (weight %.3f)",
        len(models),
        selected,
        float(aic_table.loc[aic_table[MODEL_COLUMN] == selected, "aic_weight"].iloc[0]),
    )

    return ReportOutputs(
        models=models,
        predictions=predictions,
        aic_table=aic_table,
        best_model=selected,
    )
