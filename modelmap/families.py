"""
Model families: the statsmodels-facing side of modelmap.

A ModelFamily knows how to fit one kind of model from a formula and a
DataFrame, and how to extract the four things the rest of the package needs
from a fitted result:

- anova():    term-wise variance decomposition (tidy DataFrame)
- conf_int(): coefficient confidence intervals (tidy DataFrame)
- augment():  per-observation fitted values, residuals and influence measures
- aic():      Akaike information criterion (finite float)

Concrete families:
- LinearModel:             OLS, or WLS when ``weights=`` is given
- GeneralizedLinearModel:  GLM with any statsmodels family
- MixedLinearModel:        linear mixed effects (ML fit so AIC is defined)

Fits are carried around as FittedModel instances. Raw statsmodels results
objects are accepted wherever a FittedModel is expected and are wrapped by
as_fitted_model(), which picks the family from the results' model class.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from statsmodels.regression.linear_model import RegressionModel
from statsmodels.stats.anova import anova_lm

logger = logging.getLogger(__name__)

# Per-observation columns in the order augment() emits them
AUGMENT_COLUMNS: List[str] = [
    "fitted",
    "se_fit",
    "resid",
    "hat",
    "sigma",
    "cooksd",
    "std_resid",
]

ANOVA_COLUMNS: List[str] = ["term", "df", "sumsq", "meansq", "statistic", "p_value"]

# statsmodels column names -> tidy names (anova_lm and WaldTestResults.summary_frame)
_ANOVA_RENAMES: Dict[str, str] = {
    "sum_sq": "sumsq",
    "mean_sq": "meansq",
    "F": "statistic",
    "chi2": "statistic",
    "PR(>F)": "p_value",
    "P>F": "p_value",
    "P>chi2": "p_value",
    "df_constraint": "df",
}

# Either Q("quoted name") or a bare identifier (dots allowed, as in patsy)
_FORMULA_TOKEN = re.compile(
    r"""Q\(\s*(['"])(?P<quoted>.+?)\1\s*\)|(?P<name>[A-Za-z_][A-Za-z0-9_.]*)"""
)


def formula_columns(formula: str, columns: Iterable[Any]) -> List[str]:
    """
    Return the DataFrame columns referenced in ``formula``, in order of first
    appearance (so the response comes first).
    """
    available = set(columns)
    found: List[str] = []
    for match in _FORMULA_TOKEN.finditer(formula):
        token = match.group("quoted") or match.group("name")
        if token in available and token not in found:
            found.append(token)
    return found


def _tidy_anova(table: pd.DataFrame) -> pd.DataFrame:
    tidy = table.rename(columns=_ANOVA_RENAMES).rename_axis("term").reset_index()
    known = [c for c in ANOVA_COLUMNS if c in tidy.columns]
    extra = [c for c in tidy.columns if c not in known]
    return tidy[known + extra]


def _percent_label(q: float) -> str:
    return f"{100.0 * q:g} %"


def _observation_frame(result: Any, formula: Optional[str]) -> pd.DataFrame:
    """
    Original data columns referenced by ``formula`` for the rows used in the fit.
    Models fit without a formula (or without a DataFrame) yield an empty frame.
    """
    data = result.model.data
    frame = getattr(data, "frame", None)
    if frame is None or not formula:
        return pd.DataFrame(index=pd.RangeIndex(len(np.asarray(result.fittedvalues))))
    # Rows are picked by position; index labels need not be unique
    kept = np.ones(len(frame), dtype=bool)
    dropped = getattr(data, "missing_row_idx", None)
    if dropped is not None and len(dropped):
        kept[np.asarray(dropped, dtype=int)] = False
    return frame.iloc[kept][formula_columns(formula, frame.columns)].copy()


def _attach(frame: pd.DataFrame, values: Dict[str, Any]) -> pd.DataFrame:
    for column, value in values.items():
        frame[column] = np.asarray(value, dtype=float)
    return frame.reset_index(drop=True)


class ModelFamily(ABC):
    """
    Fitting and extraction contract for one kind of statsmodels model.

    Calling a family instance fits a model:

        LinearModel()("y ~ x", df)               -> FittedModel
        GeneralizedLinearModel()("y ~ x", df, family=sm.families.Poisson())

    Keyword options named in ``fit_keywords`` go to ``.fit()``; all others go
    to the model constructor.
    """

    name: str = "model"
    fit_keywords: frozenset = frozenset()

    def __call__(self, formula: str, data: pd.DataFrame, **options: Any) -> "FittedModel":
        model_kwargs, fit_kwargs = self.split_options(options)
        logger.debug(
            "Fitting %s: %s (model options=%s, fit options=%s)",
            self.name,
            formula,
            sorted(model_kwargs),
            sorted(fit_kwargs),
        )
        result = self.fit(formula, data, model_kwargs, fit_kwargs)
        return FittedModel(result=result, family=self, formula=formula)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def split_options(
        self, options: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        model_kwargs = {k: v for k, v in options.items() if k not in self.fit_keywords}
        fit_kwargs = {k: v for k, v in options.items() if k in self.fit_keywords}
        return model_kwargs, fit_kwargs

    @property
    @abstractmethod
    def model_classes(self) -> Tuple[type, ...]:
        """statsmodels model classes whose results this family can handle."""

    def handles(self, result: Any) -> bool:
        return isinstance(getattr(result, "model", None), self.model_classes)

    @abstractmethod
    def fit(
        self,
        formula: str,
        data: pd.DataFrame,
        model_kwargs: Dict[str, Any],
        fit_kwargs: Dict[str, Any],
    ) -> Any:
        """Fit and return the statsmodels results object."""

    @abstractmethod
    def anova(self, result: Any, **options: Any) -> pd.DataFrame:
        """Tidy term-wise decomposition table with a leading ``term`` column."""

    @abstractmethod
    def augment(self, result: Any, formula: Optional[str] = None) -> pd.DataFrame:
        """Per-observation table: referenced data columns plus diagnostics."""

    def conf_int(self, result: Any, level: float = 0.95) -> pd.DataFrame:
        alpha = 1.0 - level
        ci = pd.DataFrame(result.conf_int(alpha=alpha))
        ci.columns = [_percent_label(alpha / 2.0), _percent_label(1.0 - alpha / 2.0)]
        params = result.params
        if isinstance(params, pd.Series):
            params = params.reindex(ci.index)
        ci.insert(0, "estimate", np.asarray(params, dtype=float))
        return ci.rename_axis("term").reset_index()

    def aic(self, result: Any) -> float:
        value = float(result.aic)
        if not np.isfinite(value):
            raise ValueError(f"AIC is not defined for this {self.name} fit (got {value})")
        return value

    def _wald_anova(self, result: Any, **options: Any) -> pd.DataFrame:
        # anova_lm only understands linear models; typ has no meaning here
        ignored = options.pop("typ", None)
        if ignored is not None:
            logger.debug("Ignoring typ=%r for %s term tests", ignored, self.name)
        return _tidy_anova(result.wald_test_terms(**options).summary_frame())


class LinearModel(ModelFamily):
    """Ordinary least squares; weighted least squares when ``weights`` is passed."""

    name = "linear model"
    fit_keywords = frozenset({"cov_type", "cov_kwds", "use_t", "method"})

    @property
    def model_classes(self) -> Tuple[type, ...]:
        return (RegressionModel,)

    def fit(self, formula, data, model_kwargs, fit_kwargs):
        if model_kwargs.get("weights") is not None:
            return smf.wls(formula, data=data, **model_kwargs).fit(**fit_kwargs)
        model_kwargs.pop("weights", None)
        return smf.ols(formula, data=data, **model_kwargs).fit(**fit_kwargs)

    def anova(self, result, **options):
        return _tidy_anova(anova_lm(result, **options))

    def augment(self, result, formula=None):
        frame = _observation_frame(result, formula)
        influence = result.get_influence()
        prediction = result.get_prediction()
        return _attach(
            frame,
            {
                "fitted": result.fittedvalues,
                "se_fit": prediction.se_mean,
                "resid": result.resid,
                "hat": influence.hat_matrix_diag,
                "sigma": np.sqrt(influence.sigma2_not_obsi),
                "cooksd": influence.cooks_distance[0],
                "std_resid": influence.resid_studentized_internal,
            },
        )


class GeneralizedLinearModel(ModelFamily):
    """
    Generalized linear model. The distribution defaults to Gaussian and can be
    set per instance or per call with ``family=``.
    """

    name = "generalized linear model"
    fit_keywords = frozenset(
        {"cov_type", "cov_kwds", "use_t", "method", "maxiter", "scale", "tol"}
    )

    def __init__(self, family: Optional[Any] = None) -> None:
        self.family = family

    def __repr__(self) -> str:
        if self.family is None:
            return "GeneralizedLinearModel()"
        return f"GeneralizedLinearModel(family={type(self.family).__name__})"

    @property
    def model_classes(self):
        return (sm.GLM,)

    def fit(self, formula, data, model_kwargs, fit_kwargs):
        model_kwargs.setdefault("family", self.family or sm.families.Gaussian())
        return smf.glm(formula, data=data, **model_kwargs).fit(**fit_kwargs)

    def anova(self, result, **options):
        return self._wald_anova(result, **options)

    def augment(self, result, formula=None):
        frame = _observation_frame(result, formula)
        influence = result.get_influence()
        return _attach(
            frame,
            {
                "fitted": result.fittedvalues,
                "resid": result.resid_deviance,
                "hat": influence.hat_matrix_diag,
                "cooksd": influence.cooks_distance[0],
                "std_resid": influence.resid_studentized,
            },
        )


class MixedLinearModel(ModelFamily):
    """
    Linear mixed effects model. Requires ``groups=`` (a column name or array).
    Fits by maximum likelihood unless ``reml=True`` is passed; REML fits have
    no AIC.
    """

    name = "mixed linear model"
    fit_keywords = frozenset({"reml", "method", "maxiter", "start_params", "full_output"})

    @property
    def model_classes(self):
        return (sm.MixedLM,)

    def fit(self, formula, data, model_kwargs, fit_kwargs):
        if model_kwargs.get("groups") is None:
            raise ValueError("MixedLinearModel needs a groups= option")
        fit_kwargs.setdefault("reml", False)
        return smf.mixedlm(formula, data=data, **model_kwargs).fit(**fit_kwargs)

    def anova(self, result, **options):
        return self._wald_anova(result, **options)

    def augment(self, result, formula=None):
        frame = _observation_frame(result, formula)
        return _attach(
            frame,
            {"fitted": result.fittedvalues, "resid": result.resid},
        )


@dataclass(frozen=True)
class FittedModel:
    """A fitted statsmodels result bound to the family that extracts from it."""

    result: Any
    family: ModelFamily
    formula: Optional[str] = None

    def anova(self, **options: Any) -> pd.DataFrame:
        return self.family.anova(self.result, **options)

    def conf_int(self, level: float = 0.95) -> pd.DataFrame:
        return self.family.conf_int(self.result, level=level)

    def aic(self) -> float:
        return self.family.aic(self.result)

    def augment(self) -> pd.DataFrame:
        return self.family.augment(self.result, self.formula)


KNOWN_FAMILIES: Tuple[ModelFamily, ...] = (
    LinearModel(),
    GeneralizedLinearModel(),
    MixedLinearModel(),
)


def as_fitted_model(value: Any, formula: Optional[str] = None) -> FittedModel:
    """
    Return ``value`` as a FittedModel.

    Raises:
        TypeError: if ``value`` is neither a FittedModel nor a results object
            of a supported statsmodels model.
    """
    if isinstance(value, FittedModel):
        return value
    for family in KNOWN_FAMILIES:
        if family.handles(value):
            return FittedModel(
                result=value,
                family=family,
                formula=formula or getattr(value.model, "formula", None),
            )
    raise TypeError(f"{type(value).__name__} object is not a supported fitted model")
