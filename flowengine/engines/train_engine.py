# flowengine/engines/train_engine.py
"""
Model Train Engines (FINAL)

IMPORTANT:
- Engines fit a model and return it. Nothing else.
- Engines know nothing about the Control object or output envelopes.
- Formula handling lives here so every train engine reads formulas the same way.

Formula grammar (minimal, R-style):
    "target ~ x1 + x2"
    "target ~ ."          (all columns except the target)
    "target ~ . + extra"  (terms are de-duplicated, order preserved)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.ensemble import (
    GradientBoostingClassifier,
    GradientBoostingRegressor,
    RandomForestClassifier,
    RandomForestRegressor,
)
from sklearn.linear_model import LinearRegression, LogisticRegression

SUPPORTED_FAMILIES = ("gaussian", "binomial")
GBM_DISTRIBUTIONS = ("gaussian", "bernoulli")


# ------------------------------------------------------------------
# formula
# ------------------------------------------------------------------
def formula_terms(formula: str) -> Tuple[str, List[str]]:
    if "~" not in formula:
        raise ValueError(f"Formula must contain '~': {formula!r}")

    lhs, rhs = formula.split("~", 1)
    target = lhs.strip()
    if not target:
        raise ValueError(f"Formula has no response variable: {formula!r}")

    terms = [t.strip() for t in rhs.split("+") if t.strip()]
    return target, terms


def resolve_features(formula: str, columns: Sequence[str]) -> Tuple[str, List[str]]:
    """
    Expand ``.`` against ``columns``. Unknown columns are returned as-is;
    the caller decides whether that is an error.
    """
    target, terms = formula_terms(formula)

    features: List[str] = []
    for term in terms:
        if term == "1":
            continue
        expanded = [c for c in columns if c != target] if term == "." else [term]
        for name in expanded:
            if name not in features:
                features.append(name)

    return target, features


@dataclass
class FormulaModel:
    """
    Fitted estimator + the design it was fitted on.

    ``predict`` rebuilds the same design matrix (one-hot columns aligned to
    training) so the controller can score any split.
    """

    estimator: Any
    formula: str
    target: str
    features: List[str]
    design_columns: List[str]
    family: str = "gaussian"
    n_obs: int = 0

    def design(self, data: pd.DataFrame) -> pd.DataFrame:
        # full one-hot, then align: the training baseline level has no column
        X = _design_matrix(data, self.features, drop_first=False)
        return X.reindex(columns=self.design_columns, fill_value=0.0)

    def predict(self, data: pd.DataFrame, output_type: str = "response") -> np.ndarray:
        X = self.design(data)

        if self.family == "binomial":
            if output_type == "link" and hasattr(self.estimator, "decision_function"):
                return np.asarray(self.estimator.decision_function(X), dtype=float)
            return np.asarray(self.estimator.predict_proba(X)[:, 1], dtype=float)

        return np.asarray(self.estimator.predict(X), dtype=float)

    @property
    def coefficients(self) -> Dict[str, float]:
        coef = np.ravel(self.estimator.coef_)
        intercept = float(np.ravel(self.estimator.intercept_)[0])
        out = {"(Intercept)": intercept}
        out.update({name: float(v) for name, v in zip(self.design_columns, coef)})
        return out

    @property
    def importances(self) -> Dict[str, float]:
        return {
            name: float(v)
            for name, v in zip(self.design_columns, self.estimator.feature_importances_)
        }

    @property
    def class_mapping(self) -> Optional[Dict[str, int]]:
        """
        Label -> probability column, for classifiers fitted on labels other than 0/1.
        """
        classes = getattr(self.estimator, "classes_", None)
        if classes is None or set(classes.tolist()) <= {0, 1}:
            return None
        return {str(c): i for i, c in enumerate(classes)}


def _design_matrix(
    data: pd.DataFrame, features: Sequence[str], drop_first: bool = True
) -> pd.DataFrame:
    return pd.get_dummies(data[list(features)], drop_first=drop_first, dtype=float)


def _fit_inputs(formula: str, data: pd.DataFrame):
    target, features = resolve_features(formula, list(data.columns))

    missing = [c for c in [target, *features] if c not in data.columns]
    if missing:
        raise KeyError(f"Formula columns not in data: {', '.join(missing)}")

    X = _design_matrix(data, features)
    y = data[target].to_numpy()
    return target, features, X, y


# ------------------------------------------------------------------
# train_lm
# ------------------------------------------------------------------
def engine_train_lm(formula: str, data: pd.DataFrame) -> FormulaModel:
    target, features, X, y = _fit_inputs(formula, data)

    estimator = LinearRegression().fit(X, y)

    return FormulaModel(
        estimator=estimator,
        formula=formula,
        target=target,
        features=features,
        design_columns=list(X.columns),
        family="gaussian",
        n_obs=len(X),
    )


def default_params_train_lm() -> dict:
    return {}


# ------------------------------------------------------------------
# train_glm
# ------------------------------------------------------------------
def engine_train_glm(
    formula: str,
    family: str,
    data: pd.DataFrame,
    sample_weight: Optional[Sequence[float]] = None,
    max_iter: int = 1000,
) -> FormulaModel:
    """
    gaussian -> ordinary least squares
    binomial -> unpenalised logistic regression (target must be 0/1)
    """
    if family not in SUPPORTED_FAMILIES:
        raise ValueError(
            f"Unsupported GLM family '{family}'. Supported: {', '.join(SUPPORTED_FAMILIES)}"
        )

    target, features, X, y = _fit_inputs(formula, data)

    weights = None if sample_weight is None else np.asarray(sample_weight, dtype=float)

    if family == "binomial":
        estimator = LogisticRegression(C=np.inf, max_iter=max_iter)
    else:
        estimator = LinearRegression()

    estimator.fit(X, y, sample_weight=weights)

    return FormulaModel(
        estimator=estimator,
        formula=formula,
        target=target,
        features=features,
        design_columns=list(X.columns),
        family=family,
        n_obs=len(X),
    )


def default_params_train_glm() -> dict:
    return {
        "family": "gaussian",
        # None -> equal weights
        "sample_weight": None,
        "max_iter": 1000,
    }


# ------------------------------------------------------------------
# shared by tree ensembles
# ------------------------------------------------------------------
def is_class_target(y: pd.Series) -> bool:
    # bool / category / string targets are labels, numeric ones are values
    return pd.api.types.is_bool_dtype(y) or not pd.api.types.is_numeric_dtype(y)


def _weights(sample_weight: Optional[Sequence[float]]) -> Optional[np.ndarray]:
    return None if sample_weight is None else np.asarray(sample_weight, dtype=float)


def _require_binary(y: np.ndarray, what: str) -> None:
    levels = pd.unique(pd.Series(y).dropna())
    if len(levels) != 2:
        raise ValueError(f"{what} requires a binary target, got {len(levels)} levels")


# ------------------------------------------------------------------
# train_rf
# ------------------------------------------------------------------
def engine_train_rf(
    formula: str,
    data: pd.DataFrame,
    sample_weight: Optional[Sequence[float]] = None,
    ntree: int = 500,
    mtry: Optional[int] = None,
    seed: Optional[int] = None,
) -> FormulaModel:
    """
    Numeric target -> regression forest.
    Label target (bool / category / string) -> binary classification forest.

    ``mtry`` None: p/3 candidates per split for regression, sqrt(p) for
    classification (randomForest defaults).
    """
    target, features, X, y = _fit_inputs(formula, data)
    classify = is_class_target(data[target])

    p = X.shape[1]
    if mtry is None:
        mtry = max(1, int(np.sqrt(p))) if classify else max(1, p // 3)

    if classify:
        _require_binary(y, "classification forest")
        estimator = RandomForestClassifier(
            n_estimators=ntree, max_features=mtry, random_state=seed
        )
    else:
        estimator = RandomForestRegressor(
            n_estimators=ntree, max_features=mtry, random_state=seed
        )

    estimator.fit(X, y, sample_weight=_weights(sample_weight))

    return FormulaModel(
        estimator=estimator,
        formula=formula,
        target=target,
        features=features,
        design_columns=list(X.columns),
        family="binomial" if classify else "gaussian",
        n_obs=len(X),
    )


def default_params_train_rf() -> dict:
    return {
        "ntree": 500,
        # None -> p/3 (regression) or sqrt(p) (classification)
        "mtry": None,
        "sample_weight": None,
        # None -> control.global_seed
        "seed": None,
    }


# ------------------------------------------------------------------
# train_gbm
# ------------------------------------------------------------------
def infer_distribution(y: pd.Series) -> str:
    """
    Binary targets (bool, 0/1, two-level labels) -> "bernoulli", else "gaussian".
    """
    if pd.api.types.is_bool_dtype(y):
        return "bernoulli"

    levels = pd.unique(y.dropna())
    if pd.api.types.is_numeric_dtype(y):
        return "bernoulli" if set(levels.tolist()) <= {0, 1} else "gaussian"
    return "bernoulli" if len(levels) == 2 else "gaussian"


def engine_train_gbm(
    formula: str,
    data: pd.DataFrame,
    distribution: str = "gaussian",
    sample_weight: Optional[Sequence[float]] = None,
    n_trees: int = 1000,
    interaction_depth: int = 3,
    shrinkage: float = 0.05,
    n_minobsinnode: int = 10,
    bag_fraction: float = 0.5,
    train_fraction: float = 1.0,
    seed: Optional[int] = None,
) -> FormulaModel:
    """
    Gradient boosted trees.

    gaussian  -> squared-error regression
    bernoulli -> binary classification (numeric targets must be 0/1)

    Only the first ``train_fraction`` of the rows is fitted on.
    """
    if distribution not in GBM_DISTRIBUTIONS:
        raise ValueError(
            f"Unsupported GBM distribution '{distribution}'. "
            f"Supported: {', '.join(GBM_DISTRIBUTIONS)}"
        )

    target, features, X, y = _fit_inputs(formula, data)
    weights = _weights(sample_weight)

    n_train = max(1, int(len(X) * train_fraction))
    X, y = X.iloc[:n_train], y[:n_train]
    if weights is not None:
        weights = weights[:n_train]

    tree_args = dict(
        n_estimators=n_trees,
        max_depth=interaction_depth,
        learning_rate=shrinkage,
        min_samples_leaf=n_minobsinnode,
        subsample=bag_fraction,
        random_state=seed,
    )

    if distribution == "bernoulli":
        if not is_class_target(data[target]) and not set(np.unique(y).tolist()) <= {0, 1}:
            raise ValueError("bernoulli requires a numeric target coded as 0/1")
        _require_binary(y, "bernoulli")
        estimator = GradientBoostingClassifier(**tree_args)
    else:
        estimator = GradientBoostingRegressor(loss="squared_error", **tree_args)

    estimator.fit(X, y, sample_weight=weights)

    return FormulaModel(
        estimator=estimator,
        formula=formula,
        target=target,
        features=features,
        design_columns=list(X.columns),
        family="binomial" if distribution == "bernoulli" else "gaussian",
        n_obs=len(X),
    )


def default_params_train_gbm() -> dict:
    return {
        # None -> inferred from the target
        "distribution": None,
        "n_trees": 1000,
        "interaction_depth": 3,
        "shrinkage": 0.05,
        "n_minobsinnode": 10,
        "bag_fraction": 0.5,
        "train_fraction": 1.0,
        "sample_weight": None,
        "seed": None,
    }
