"""
Model builder: fit one model per named formula against a single DataFrame.
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional

import pandas as pd
from patsy import ModelDesc, PatsyError

from .errors import InvalidFormulaError, MissingArgumentError, ModelConstructionError
from .families import FittedModel, LinearModel, as_fitted_model

logger = logging.getLogger(__name__)

CONSTRUCTION_HINT = (
    "Check for typos in the formulas, that the data contains every variable the "
    "formulas use, that the model function is compatible with formula/data "
    "inputs, that any package the model function relies on is installed, and "
    "that all arguments the model function requires were supplied."
)


def is_formula(value: Any) -> bool:
    """
    True when ``value`` is a formula string with both a response and at least
    one right-hand-side term, e.g. ``"lifeExp ~ gdpPercap"``.
    """
    if not isinstance(value, str) or "~" not in value:
        return False
    try:
        desc = ModelDesc.from_formula(value)
    except PatsyError:
        return False
    return bool(desc.lhs_termlist) and bool(desc.rhs_termlist)


def build_models(
    formulas: Optional[Mapping] = None,
    data: Optional[pd.DataFrame] = None,
    fit_fn: Optional[Callable[..., Any]] = None,
    **fit_options: Any,
) -> Dict[str, FittedModel]:
    """
    Fit one model per entry of ``formulas`` using ``data``.

    Args:
        formulas: Mapping of model name -> formula string. Order is kept.
        data: DataFrame holding every variable the formulas reference.
        fit_fn: Callable ``(formula, data, **options)`` returning a FittedModel
            or a statsmodels results object. Defaults to LinearModel() (OLS).
        **fit_options: Passed to every ``fit_fn`` call (e.g. ``weights=``,
            ``cov_type="HC1"``, ``family=``, ``groups=``).

    Returns:
        dict mapping each name to its FittedModel, in the order of ``formulas``.

    Raises:
        MissingArgumentError: formulas or data not supplied.
        InvalidFormulaError: formulas is not a mapping or holds a non-formula.
        ModelConstructionError: any fit failed. Nothing is returned in that
            case; the original exception is chained and logged.
    """
    if formulas is None or data is None:
        raise MissingArgumentError(
            "Both `formulas` and `data` must be supplied: pass a mapping of "
            "model names to formulas and the DataFrame to fit them on."
        )

    if not isinstance(formulas, Mapping):
        raise InvalidFormulaError(
            f"`formulas` must be a mapping of model names to formulas, "
            f"got {type(formulas).__name__}."
        )

    invalid = [name for name, formula in formulas.items() if not is_formula(formula)]
    if invalid:
        raise InvalidFormulaError(
            "Not all entries in `formulas` are valid formulas of the form "
            f"'response ~ terms'; check: {', '.join(map(str, invalid))}"
        )

    if fit_fn is None:
        fit_fn = LinearModel()

    models: Dict[str, FittedModel] = {}
    for name, formula in formulas.items():
        try:
            fitted = fit_fn(formula, data, **fit_options)
            models[name] = as_fitted_model(fitted, formula=formula)
        except Exception as exc:
            logger.error("Could not fit model '%s' (%s): %s", name, formula, exc)
            raise ModelConstructionError(
                f"Could not construct model '{name}' from formula '{formula}'. "
                + CONSTRUCTION_HINT
            ) from exc
        logger.debug("Fitted model '%s': %s", name, formula)

    logger.info("Fitted %d model(s) with %r", len(models), fit_fn)
    return models
