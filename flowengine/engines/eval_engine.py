# flowengine/engines/eval_engine.py
"""
Evaluation engines（FINAL / FROZEN）

Contract:
- inputs are plain numeric sequences (the wrapper converts)
- outputs are scalars or flat dicts of scalars
- no I/O, no logging
"""
from __future__ import annotations

from typing import Dict, Mapping, Sequence

import numpy as np
import pandas as pd
from scipy import stats


# ------------------------------------------------------------------
# eval_mse
# ------------------------------------------------------------------
def engine_eval_mse(predictions: Sequence[float], actuals: Sequence[float]) -> float:
    p = np.asarray(predictions, dtype=float)
    a = np.asarray(actuals, dtype=float)

    if p.shape != a.shape:
        raise ValueError(
            f"predictions / actuals length mismatch: {p.shape[0]} vs {a.shape[0]}"
        )

    return float(np.mean((p - a) ** 2))


def default_params_eval_mse() -> dict:
    return {}


# ------------------------------------------------------------------
# eval_summarystats
# ------------------------------------------------------------------
def engine_eval_summarystats(predictions: Sequence[float]) -> Dict[str, float]:
    """
    Distribution summary of the prediction vector.

    sd / var use the sample estimator (ddof=1); skewness and kurtosis are
    the moment-based (biased) estimators, kurtosis NOT excess.
    """
    x = np.asarray(predictions, dtype=float)

    q25, median, q75 = np.quantile(x, [0.25, 0.5, 0.75])
    x_min, x_max = float(np.min(x)), float(np.max(x))

    return {
        "mean": float(np.mean(x)),
        "median": float(median),
        "sd": float(np.std(x, ddof=1)),
        "var": float(np.var(x, ddof=1)),
        "min": x_min,
        "max": x_max,
        "quantile_25": float(q25),
        "quantile_75": float(q75),
        "iqr": float(q75 - q25),
        "skewness": float(stats.skew(x, bias=True)),
        "kurtosis": float(stats.kurtosis(x, fisher=False, bias=True)),
        "range": x_max - x_min,
    }


def default_params_eval_summarystats() -> dict:
    return {}


# ------------------------------------------------------------------
# eval_statisticalparity
# ------------------------------------------------------------------
def engine_eval_statisticalparity(
    predictions: Sequence[float],
    protected: Mapping[str, Sequence],
) -> Dict[str, float]:
    """
    |mean(pred | group_a) - mean(pred | group_b)| per protected attribute.

    Groups are ordered by their sorted values. Attributes MUST be binary;
    the wrapper validates that before calling.
    """
    preds = pd.Series(np.asarray(predictions, dtype=float))

    results: Dict[str, float] = {}
    for name, values in protected.items():
        groups = pd.Series(np.asarray(values), index=preds.index)
        means = preds.groupby(groups).mean().sort_index()
        results[name] = float(abs(means.iloc[0] - means.iloc[1]))

    return results


def default_params_eval_statisticalparity() -> dict:
    return {}
