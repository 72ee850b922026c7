# flowengine/engines/reportelement_engine.py
"""
Report element engines（FINAL / FROZEN）

Responsibility:
- Aggregate a workflow result collection into ONE renderable element
  (text / table / plot)
- Any number of splits; splits lacking the needed output are skipped
- No persistence (publishing does that)
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from flowengine.pipeline.results import SplitResult, collect_metric


# ------------------------------------------------------------------
# reportelement_text_msesummary
# ------------------------------------------------------------------
def engine_reportelement_text_msesummary(
    workflow_results: Mapping[str, SplitResult],
    eval_alias: str = "eval_mse",
    metric: str = "mse",
) -> Tuple[str, Optional[float], int]:
    """
    Returns (text, mean value or None, number of contributing splits).
    """
    values = collect_metric(workflow_results, eval_alias, metric)

    if not values:
        return f"No {metric.upper()} values available across splits.", None, 0

    mean = float(np.mean(values))
    noun = "split" if len(values) == 1 else "splits"
    text = f"The average {metric.upper()} across {len(values)} {noun} is {mean:.4f}."
    return text, mean, len(values)


def default_params_reportelement_text_msesummary() -> dict:
    return {"eval_alias": "eval_mse", "metric": "mse"}


# ------------------------------------------------------------------
# reportelement_table_splitmetrics
# ------------------------------------------------------------------
def engine_reportelement_table_splitmetrics(
    workflow_results: Mapping[str, SplitResult],
    metrics: Sequence[str] = ("summarystats",),
) -> pd.DataFrame:
    """
    One row per split; scalar metrics flattened into columns
    (nested metric dicts become ``<outer>_<inner>``).
    """
    rows: List[Dict[str, Any]] = []

    for split_id, split_result in workflow_results.items():
        row: Dict[str, Any] = {"split": split_id}
        for metric in metrics:
            alias = metric if metric.startswith("eval_") else f"eval_{metric}"
            env = split_result.output_eval.get(alias)
            if env is None:
                continue
            row.update(_flatten(env["metrics"]))
        rows.append(row)

    return pd.DataFrame(rows, columns=_column_order(rows))


def default_params_reportelement_table_splitmetrics() -> dict:
    return {"metrics": ["summarystats"]}


def _flatten(metrics: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in metrics.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            out.update(_flatten(value, name))
        else:
            out[name] = value
    return out


def _column_order(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    columns = ["split"]
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


# ------------------------------------------------------------------
# reportelement_boxplot_predictions
# ------------------------------------------------------------------
def engine_reportelement_boxplot_predictions(
    workflow_results: Mapping[str, SplitResult],
    splits: Mapping[str, Mapping[str, pd.DataFrame]],
    group_var: str,
    source: str = "train",
):
    """
    One boxplot panel per split: predictions on the test partition grouped
    by ``group_var``. Returns a matplotlib Figure (already detached from
    pyplot).
    """
    panels = []
    for split_id, split_result in workflow_results.items():
        preds = split_result.predictions(source)
        test = (splits.get(split_id) or {}).get("test")
        if preds is None or test is None or group_var not in test.columns:
            continue

        preds = np.asarray(preds, dtype=float)
        if len(preds) != len(test):
            raise ValueError(
                f"[{split_id}] {len(preds)} predictions for {len(test)} test rows"
            )

        groups = test[group_var].to_numpy()
        levels = sorted(pd.unique(groups), key=str)
        panels.append((split_id, levels, [preds[groups == g] for g in levels]))

    if not panels:
        raise ValueError("No data available to create boxplot.")

    fig, axes = plt.subplots(
        1, len(panels), figsize=(4 * len(panels), 4), squeeze=False
    )

    for ax, (split_id, levels, values) in zip(axes[0], panels):
        ax.boxplot(values)
        ax.set_xticks(range(1, len(levels) + 1))
        ax.set_xticklabels([str(g) for g in levels])
        ax.set_title(split_id)
        ax.set_xlabel(group_var)
        ax.set_ylabel("prediction")

    fig.suptitle(f"Predictions by {group_var}")
    fig.tight_layout()
    plt.close(fig)

    return fig


def default_params_reportelement_boxplot_predictions() -> dict:
    return {"group_var": None, "source": "train"}
