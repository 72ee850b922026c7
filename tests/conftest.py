# tests/conftest.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import numpy as np
import pandas as pd
import pytest
from loguru import logger

from flowengine.core.outputs import initialize_output_eval, initialize_output_train
from flowengine.pipeline.control import Control
from flowengine.pipeline.results import SplitResult


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)  # or sys.stderr
    yield


@pytest.fixture
def regression_df() -> pd.DataFrame:
    """
    y = 2 + 3*x1 - x2 + small noise; group / label are binary.
    """
    rng = np.random.default_rng(0)
    n = 80
    x1 = rng.normal(size=n)
    x2 = rng.normal(size=n)
    group = np.tile([0, 1], n // 2)
    y = 2.0 + 3.0 * x1 - 1.0 * x2 + rng.normal(scale=0.01, size=n)
    label = (x1 + 0.5 * rng.normal(size=n) > 0).astype(int)

    return pd.DataFrame(
        {"y": y, "x1": x1, "x2": x2, "group": group, "label": label}
    )


@pytest.fixture
def make_control():
    """
    Factory fixture for Control objects.

    Usage:
        control = make_control(eval={"eval_data": {...}})
        control = make_control(output_type="prob", fairness_post={...})
    """

    def _make(**sections: Any) -> Control:
        return Control.from_mapping(sections)

    return _make


@pytest.fixture
def make_workflow_results():
    """
    Factory fixture for WorkflowResults.

    ``mse``          : split id -> mse value (eval_mse envelope)
    ``summarystats`` : split id -> metrics dict (eval_summarystats envelope)
    ``predictions``  : split id -> prediction vector (train envelope)
    """

    def _make(
        mse: Optional[Mapping[str, float]] = None,
        summarystats: Optional[Mapping[str, Dict[str, float]]] = None,
        predictions: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, SplitResult]:
        mse = mse or {}
        summarystats = summarystats or {}
        predictions = predictions or {}

        split_ids = list(dict.fromkeys([*mse, *summarystats, *predictions]))
        results: Dict[str, SplitResult] = {}

        for split_id in split_ids:
            evals = {}
            if split_id in mse:
                evals["eval_mse"] = initialize_output_eval(
                    metrics={"mse": mse[split_id]},
                    eval_type="mse",
                    input_data={},
                )
            if split_id in summarystats:
                evals["eval_summarystats"] = initialize_output_eval(
                    metrics=summarystats[split_id],
                    eval_type="summarystats",
                    input_data={},
                )

            train = None
            if split_id in predictions:
                train = initialize_output_train(
                    model=None,
                    model_type="lm",
                    formula="y ~ .",
                    hyperparameters={},
                    predictions=predictions[split_id],
                )

            results[split_id] = SplitResult(output_train=train, output_eval=evals)

        return results

    return _make
