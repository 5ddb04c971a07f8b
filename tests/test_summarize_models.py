import io

import numpy as np
import pandas as pd
import pytest
from statsmodels.stats.anova import anova_lm

from modelmap import dependencies
from modelmap.builder import build_models
from modelmap.errors import InvalidModelCollectionError, MissingDependencyError
from modelmap.families import GeneralizedLinearModel, MixedLinearModel
from modelmap.summaries import anova_tables, confidence_intervals, summarize_models


def _make_country_df(n=40, seed=21):
    rng = np.random.default_rng(seed)
    gdp = rng.uniform(1.0, 40.0, size=n)
    pop = rng.uniform(1.0, 100.0, size=n)
    life = 50.0 + 0.6 * gdp + rng.normal(0.0, 1.0, size=n)
    return pd.DataFrame({"lifeExp": life, "gdpPercap": gdp, "pop": pop})


def _models():
    formulas = {"gdp": "lifeExp ~ gdpPercap", "both": "lifeExp ~ gdpPercap + pop"}
    return build_models(formulas, _make_country_df())


def test_summarize_prints_both_table_families_in_order(capsys):
    result = summarize_models(_models())
    out = capsys.readouterr().out

    assert result is None
    anova_at = out.index("# Anova tables")
    ci_at = out.index("# Confidence Intervals for Coefficients")
    assert anova_at < ci_at

    anova_part, ci_part = out[anova_at:ci_at], out[ci_at:]
    for part in (anova_part, ci_part):
        assert part.index("## gdp") < part.index("## both")

    assert "Residual" in anova_part
    assert "sumsq" in anova_part
    assert "2.5 %" in ci_part and "97.5 %" in ci_part
    assert "Intercept" in ci_part


def test_summarize_sections_are_markdown_tables():
    buf = io.StringIO()
    summarize_models(_models(), file=buf)
    lines = buf.getvalue().splitlines()

    header_idx = lines.index("## gdp")
    assert lines[header_idx + 1].startswith("|")
    # Each section ends with a blank separator line
    table_end = header_idx + 1
    while lines[table_end].startswith("|"):
        table_end += 1
    assert lines[table_end] == ""


def test_summarize_level_changes_interval_labels():
    buf = io.StringIO()
    summarize_models(_models(), level=0.9, file=buf)
    assert "5 %" in buf.getvalue() and "95 %" in buf.getvalue()


def test_anova_options_pass_through():
    models = _models()
    tables = anova_tables(models, typ=2)

    expected = anova_lm(models["both"].result, typ=2)
    np.testing.assert_allclose(
        tables["both"]["sumsq"].to_numpy(), expected["sum_sq"].to_numpy()
    )
    assert list(tables) == ["gdp", "both"]


def _make_grouped_df(n=60, seed=5):
    rng = np.random.default_rng(seed)
    x = rng.normal(size=n)
    z = rng.normal(size=n)
    offsets = np.repeat([0.0, 2.0, -1.5, 3.0], n // 4)
    y = 1.0 + 0.8 * x + offsets + rng.normal(0.0, 0.5, size=n)
    return pd.DataFrame({"y": y, "x": x, "z": z, "g": np.repeat(list("abcd"), n // 4)})


def _non_linear_collections():
    df = _make_grouped_df()
    formulas = {"x": "y ~ x", "xz": "y ~ x + z"}
    glm = build_models(formulas, df, GeneralizedLinearModel())
    mixed = build_models(formulas, df, MixedLinearModel(), groups="g")
    return glm, mixed


def test_term_tests_for_glm_and_mixed_models_ignore_typ():
    for models in _non_linear_collections():
        tables = anova_tables(models, typ=2)

        assert list(tables) == ["x", "xz"]
        for table in tables.values():
            assert list(table.columns[:2]) == ["term", "df"]
            assert {"statistic", "p_value"} <= set(table.columns)
            assert "sumsq" not in table.columns
        assert {"x", "z"} <= set(tables["xz"]["term"])
        assert tables["xz"]["p_value"].between(0.0, 1.0).all()


def test_summarize_glm_and_mixed_models(capsys):
    for models in _non_linear_collections():
        summarize_models(models, file=None, typ=2)
        out = capsys.readouterr().out

        anova_part = out[: out.index("# Confidence Intervals for Coefficients")]
        assert out.startswith("# Anova tables")
        assert anova_part.index("## x") < anova_part.index("## xz")
        assert "statistic" in anova_part and "p_value" in anova_part
        assert "2.5 %" in out and "97.5 %" in out


def test_confidence_intervals_by_name():
    models = _models()
    cis = confidence_intervals(models)
    assert list(cis) == ["gdp", "both"]
    assert list(cis["both"]["term"]) == ["Intercept", "gdpPercap", "pop"]


def test_invalid_collection_fails_without_partial_output(capsys):
    models = _models()
    models["junk"] = "not a model"

    with pytest.raises(InvalidModelCollectionError) as excinfo:
        summarize_models(models)

    assert excinfo.value.kind == "InvalidModelCollection"
    assert isinstance(excinfo.value.cause, TypeError)
    assert capsys.readouterr().out == ""


@pytest.mark.parametrize("func", [anova_tables, confidence_intervals])
def test_table_helpers_reject_non_models(func):
    with pytest.raises(InvalidModelCollectionError):
        func({"a": 1})


def test_non_mapping_collection_is_invalid():
    with pytest.raises(InvalidModelCollectionError):
        summarize_models(["not", "a", "mapping"])


def test_missing_table_renderer_is_reported_as_dependency(monkeypatch):
    models = _models()
    real_import = dependencies.importlib.import_module

    def fake_import(name, *args, **kwargs):
        if name == "tabulate":
            raise ImportError("No module named 'tabulate'")
        return real_import(name, *args, **kwargs)

    monkeypatch.setattr(dependencies, "_loaded", {})
    monkeypatch.setattr(dependencies.importlib, "import_module", fake_import)

    with pytest.raises(MissingDependencyError) as excinfo:
        summarize_models(models)
    assert "pip install tabulate" in str(excinfo.value)


def test_only_the_table_renderer_goes_through_the_guard(monkeypatch, capsys):
    models = _models()
    real_import = dependencies.importlib.import_module

    def no_declared_imports(name, *args, **kwargs):
        if name in dependencies.DECLARED_CAPABILITIES:
            raise ImportError(f"No module named '{name}'")
        return real_import(name, *args, **kwargs)

    monkeypatch.setattr(dependencies, "_loaded", {})
    monkeypatch.setattr(dependencies.importlib, "import_module", no_declared_imports)

    # Table helpers rely on import-time dependencies only
    assert list(anova_tables(models)) == ["gdp", "both"]
    assert list(confidence_intervals(models)) == ["gdp", "both"]

    with pytest.raises(MissingDependencyError) as excinfo:
        summarize_models(models)
    assert excinfo.value.capability == "tabulate"
    assert capsys.readouterr().out == ""
