import io
import logging

import numpy as np
import pandas as pd
import pytest

from modelmap.errors import InvalidFormulaError
from modelmap.families import GeneralizedLinearModel
from modelmap.report import (
    ReportOutputs,
    ReportParams,
    configure_logging,
    get_default_params,
    run_report,
)


def _make_country_df(n=50, seed=314):
    rng = np.random.default_rng(seed)
    gdp = rng.uniform(1.0, 40.0, size=n)
    pop = rng.uniform(1.0, 100.0, size=n)
    life = 50.0 + 0.6 * gdp + rng.normal(0.0, 1.0, size=n)
    return pd.DataFrame({"lifeExp": life, "gdpPercap": gdp, "pop": pop})


FORMULAS = {"pop": "lifeExp ~ pop", "gdp": "lifeExp ~ gdpPercap"}


def test_default_params():
    params = get_default_params()
    assert params.anova_type == 1
    assert params.ci_level == 0.95
    assert params.fit_fn is None
    assert params.fit_options == {}
    assert params.print_summaries is True


def test_run_report_quiet(capsys):
    df = _make_country_df()
    outputs = run_report(FORMULAS, df, ReportParams(print_summaries=False))

    assert isinstance(outputs, ReportOutputs)
    assert list(outputs.models) == ["pop", "gdp"]
    assert len(outputs.predictions) == 2 * len(df)
    assert list(outputs.aic_table["model"]) == ["pop", "gdp"]
    assert outputs.best_model == "gdp"
    assert capsys.readouterr().out == ""


def test_run_report_prints_every_section():
    buf = io.StringIO()
    run_report(FORMULAS, _make_country_df(), ReportParams(anova_type=2), file=buf)
    text = buf.getvalue()

    assert text.index("# Anova tables") < text.index(
        "# Confidence Intervals for Coefficients"
    )
    assert text.index("# Confidence Intervals for Coefficients") < text.index(
        "Model Comparison (AIC)"
    )
    assert "Selected model (lowest AIC): gdp" in text


def test_run_report_with_glm_family():
    params = ReportParams(fit_fn=GeneralizedLinearModel(), print_summaries=False)
    outputs = run_report(FORMULAS, _make_country_df(), params)
    assert outputs.best_model == "gdp"
    assert "sigma" not in outputs.predictions.columns


def test_run_report_propagates_builder_errors():
    with pytest.raises(InvalidFormulaError):
        run_report({"bad": "lifeExp"}, _make_country_df())


def test_configure_logging_from_environment(monkeypatch):
    monkeypatch.setenv("MODELMAP_DEBUG", "1")
    configure_logging()
    assert logging.getLogger("modelmap").level == logging.DEBUG

    configure_logging(debug=False)
    assert logging.getLogger("modelmap").level == logging.INFO
