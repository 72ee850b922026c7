#!filepath: tests/engines/test_train_engine.py
import numpy as np
import pandas as pd
import pytest

from flowengine.engines.train_engine import (
    FormulaModel,
    default_params_train_gbm,
    default_params_train_glm,
    default_params_train_rf,
    engine_train_gbm,
    engine_train_glm,
    engine_train_lm,
    engine_train_rf,
    formula_terms,
    infer_distribution,
    resolve_features,
)


def test_formula_terms():
    assert formula_terms("y ~ a + b") == ("y", ["a", "b"])


def test_formula_without_tilde():
    with pytest.raises(ValueError):
        formula_terms("y a b")


def test_dot_expands_to_all_other_columns():
    target, features = resolve_features("y ~ .", ["y", "a", "b"])
    assert target == "y"
    assert features == ["a", "b"]


def test_dot_plus_term_deduplicates():
    _, features = resolve_features("y ~ . + a", ["y", "a", "b"])
    assert features == ["a", "b"]


def test_lm_recovers_coefficients(regression_df):
    model = engine_train_lm("y ~ x1 + x2", regression_df)

    assert isinstance(model, FormulaModel)
    coef = model.coefficients
    assert coef["(Intercept)"] == pytest.approx(2.0, abs=0.05)
    assert coef["x1"] == pytest.approx(3.0, abs=0.05)
    assert coef["x2"] == pytest.approx(-1.0, abs=0.05)
    assert model.n_obs == len(regression_df)


def test_lm_predict_shape(regression_df):
    model = engine_train_lm("y ~ x1 + x2", regression_df)
    preds = model.predict(regression_df.head(5))
    assert preds.shape == (5,)


def test_lm_unknown_column(regression_df):
    with pytest.raises(KeyError, match="nope"):
        engine_train_lm("y ~ nope", regression_df)


def test_categorical_features_are_dummy_coded():
    df = pd.DataFrame(
        {
            "y": [1.0, 2.0, 3.0, 1.5, 2.5, 3.5],
            "color": ["r", "g", "b", "r", "g", "b"],
        }
    )
    model = engine_train_lm("y ~ color", df)

    assert model.design_columns == ["color_g", "color_r"]
    # unseen level -> all dummy columns zero
    preds = model.predict(pd.DataFrame({"color": ["b", "x"]}))
    assert preds[0] == pytest.approx(preds[1])


def test_glm_gaussian_matches_lm(regression_df):
    lm = engine_train_lm("y ~ x1", regression_df)
    glm = engine_train_glm("y ~ x1", "gaussian", regression_df)

    np.testing.assert_allclose(
        lm.predict(regression_df), glm.predict(regression_df)
    )


def test_glm_binomial_predicts_probabilities(regression_df):
    model = engine_train_glm("label ~ x1", "binomial", regression_df)
    probs = model.predict(regression_df, output_type="prob")

    assert model.family == "binomial"
    assert ((probs >= 0.0) & (probs <= 1.0)).all()


def test_glm_sample_weight_changes_fit(regression_df):
    weights = np.where(regression_df["group"] == 1, 10.0, 1.0)

    plain = engine_train_glm("y ~ x1", "gaussian", regression_df)
    weighted = engine_train_glm("y ~ x1", "gaussian", regression_df, sample_weight=weights)

    assert plain.coefficients != weighted.coefficients


def test_glm_unknown_family(regression_df):
    with pytest.raises(ValueError, match="poisson"):
        engine_train_glm("y ~ x1", "poisson", regression_df)


def test_glm_defaults():
    defaults = default_params_train_glm()
    assert defaults["family"] == "gaussian"
    assert defaults["sample_weight"] is None


def test_glm_binomial_is_unpenalised(regression_df):
    model = engine_train_glm("label ~ x1", "binomial", regression_df)
    assert model.estimator.C == np.inf


# ------------------------------------------------------------------
# tree ensembles
# ------------------------------------------------------------------
def test_rf_regression_fits_signal(regression_df):
    model = engine_train_rf("y ~ x1 + x2", regression_df, ntree=50, seed=0)

    preds = model.predict(regression_df)
    assert model.family == "gaussian"
    assert np.corrcoef(preds, regression_df["y"])[0, 1] > 0.9
    assert model.importances["x1"] > model.importances["x2"]


def test_rf_seed_is_reproducible(regression_df):
    a = engine_train_rf("y ~ x1 + x2", regression_df, ntree=20, seed=7)
    b = engine_train_rf("y ~ x1 + x2", regression_df, ntree=20, seed=7)

    np.testing.assert_allclose(a.predict(regression_df), b.predict(regression_df))


def test_rf_label_target_is_classification(regression_df):
    df = regression_df.assign(outcome=np.where(regression_df["label"] == 1, "yes", "no"))

    model = engine_train_rf("outcome ~ x1 + x2", df, ntree=30, seed=0)
    probs = model.predict(df, output_type="link")

    assert model.family == "binomial"
    assert ((probs >= 0.0) & (probs <= 1.0)).all()
    assert model.class_mapping == {"no": 0, "yes": 1}


def test_rf_default_mtry_follows_target_kind(regression_df):
    reg = engine_train_rf("y ~ x1 + x2 + group", regression_df, ntree=5, seed=0)
    assert reg.estimator.max_features == 1


def test_rf_multiclass_labels_rejected():
    df = pd.DataFrame({"y": ["a", "b", "c"] * 4, "x": np.arange(12, dtype=float)})

    with pytest.raises(ValueError, match="binary"):
        engine_train_rf("y ~ x", df, ntree=5)


def test_rf_defaults():
    defaults = default_params_train_rf()
    assert defaults["ntree"] == 500
    assert defaults["mtry"] is None
    assert defaults["sample_weight"] is None


def test_infer_distribution():
    assert infer_distribution(pd.Series([0, 1, 1, 0])) == "bernoulli"
    assert infer_distribution(pd.Series([True, False])) == "bernoulli"
    assert infer_distribution(pd.Series(["a", "b", "a"])) == "bernoulli"
    assert infer_distribution(pd.Series([0.5, 1.5, 3.0])) == "gaussian"
    assert infer_distribution(pd.Series([0, 1, 2])) == "gaussian"


def test_gbm_gaussian(regression_df):
    model = engine_train_gbm(
        "y ~ x1 + x2", regression_df, n_trees=100, bag_fraction=1.0, seed=0
    )

    preds = model.predict(regression_df)
    assert model.family == "gaussian"
    assert np.corrcoef(preds, regression_df["y"])[0, 1] > 0.9


def test_gbm_bernoulli_probabilities(regression_df):
    model = engine_train_gbm(
        "label ~ x1", regression_df, distribution="bernoulli", n_trees=30, seed=0
    )

    probs = model.predict(regression_df, output_type="prob")
    assert model.family == "binomial"
    assert ((probs >= 0.0) & (probs <= 1.0)).all()


def test_gbm_train_fraction_uses_leading_rows(regression_df):
    model = engine_train_gbm("y ~ x1", regression_df, n_trees=10, train_fraction=0.5, seed=0)
    assert model.n_obs == len(regression_df) // 2


def test_gbm_bernoulli_rejects_non_binary_numeric(regression_df):
    with pytest.raises(ValueError, match="0/1"):
        engine_train_gbm("y ~ x1", regression_df, distribution="bernoulli", n_trees=5)


def test_gbm_unknown_distribution(regression_df):
    with pytest.raises(ValueError, match="poisson"):
        engine_train_gbm("y ~ x1", regression_df, distribution="poisson")


def test_gbm_defaults():
    defaults = default_params_train_gbm()
    assert defaults["distribution"] is None
    assert defaults["n_trees"] == 1000
    assert defaults["shrinkage"] == 0.05
