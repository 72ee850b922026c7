# flowengine/engines/fairness_engine.py
"""
Fairness engines

- pre-processing : rebalance the training data before fitting
- post-processing: adjust predictions after scoring
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

RESAMPLING_METHODS = ("oversampling", "undersampling")


# ------------------------------------------------------------------
# fairness_pre_resampling
# ------------------------------------------------------------------
def engine_fairness_pre_resampling(
    data: pd.DataFrame,
    target_var: str,
    method: str = "oversampling",
    seed: Optional[int] = None,
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Balance the classes of ``target_var``.

    oversampling : every class drawn with replacement up to the largest class
    undersampling: every class drawn without replacement down to the smallest

    Returns (resampled data, class counts before / after).
    """
    if method not in RESAMPLING_METHODS:
        raise ValueError(
            f"Unknown resampling method '{method}'. Supported: {', '.join(RESAMPLING_METHODS)}"
        )

    rng = np.random.default_rng(seed)
    counts = data[target_var].value_counts()

    if method == "oversampling":
        goal = int(counts.max())
        parts = []
        for cls, n in counts.items():
            rows = data[data[target_var] == cls]
            parts.append(rows)
            if n < goal:
                parts.append(rows.sample(n=goal - n, replace=True, random_state=rng))
    else:
        goal = int(counts.min())
        parts = [
            data[data[target_var] == cls].sample(n=goal, replace=False, random_state=rng)
            for cls in counts.index
        ]

    # shuffle so classes are interleaved
    resampled = pd.concat(parts).sample(frac=1.0, random_state=rng)

    return resampled, {
        "original_counts": counts.to_dict(),
        "resampled_counts": resampled[target_var].value_counts().to_dict(),
    }


def default_params_fairness_pre_resampling() -> dict:
    return {"method": "oversampling", "seed": None}


# ------------------------------------------------------------------
# fairness_post_genresidual
# ------------------------------------------------------------------
def engine_fairness_post_genresidual(
    predictions: Sequence[float],
    actuals: Sequence[float],
    output_type: str = "response",
) -> np.ndarray:
    """
    prediction + mean(actual - prediction); clipped to [0, 1] for "prob".
    """
    p = np.asarray(predictions, dtype=float)
    a = np.asarray(actuals, dtype=float)

    if p.shape != a.shape:
        raise ValueError(
            f"predictions / actuals length mismatch: {p.shape[0]} vs {a.shape[0]}"
        )

    adjusted = p + np.mean(a - p)

    if output_type == "prob":
        adjusted = np.clip(adjusted, 0.0, 1.0)

    return adjusted


def default_params_fairness_post_genresidual() -> dict:
    return {}
