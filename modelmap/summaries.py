"""
Per-model diagnostic tables: ANOVA decompositions and coefficient confidence
intervals, returned as dicts of DataFrames or printed as Markdown sections.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, TextIO

import pandas as pd

from .dependencies import require
from .families import as_fitted_model
from .printing import print_header, print_sections, render_table
from .validation import run_guarded

logger = logging.getLogger(__name__)

ANOVA_HEADER = "Anova tables"
CONFINT_HEADER = "Confidence Intervals for Coefficients"


def _anova_tables(models: Mapping, **anova_options: Any) -> Dict[str, pd.DataFrame]:
    return {
        name: as_fitted_model(model).anova(**anova_options)
        for name, model in models.items()
    }


def _confidence_intervals(models: Mapping, level: float) -> Dict[str, pd.DataFrame]:
    return {
        name: as_fitted_model(model).conf_int(level=level)
        for name, model in models.items()
    }


def anova_tables(models: Mapping, **anova_options: Any) -> Dict[str, pd.DataFrame]:
    """
    Tidy ANOVA table per model. ``anova_options`` are forwarded to the
    family's decomposition (``typ=2`` selects type II sums of squares for
    linear models).
    """
    return run_guarded(_anova_tables, models, **anova_options)


def confidence_intervals(
    models: Mapping, level: float = 0.95
) -> Dict[str, pd.DataFrame]:
    return run_guarded(_confidence_intervals, models, level)


def summarize_models(
    models: Mapping,
    level: float = 0.95,
    file: Optional[TextIO] = None,
    **anova_options: Any,
) -> None:
    """
    Print an ANOVA table and a confidence-interval table for every model.

    Output layout:

        # Anova tables

        ## <name>
        | term | df | sumsq | ... |

        # Confidence Intervals for Coefficients

        ## <name>
        | term | estimate | 2.5 % | 97.5 % |

    All tables are computed and rendered before anything is printed, so an
    invalid collection fails with InvalidModelCollectionError and no partial
    output.
    """
    require("tabulate")

    def _summarize() -> None:
        anova = {
            name: render_table(table)
            for name, table in _anova_tables(models, **anova_options).items()
        }
        confint = {
            name: render_table(table)
            for name, table in _confidence_intervals(models, level).items()
        }

        print_header(ANOVA_HEADER, file=file)
        print_sections(anova, file=file)
        print_header(CONFINT_HEADER, file=file)
        print_sections(confint, file=file)
        logger.debug("Printed summaries for %d model(s)", len(anova))

    run_guarded(_summarize)
