# flowengine/pipeline/results.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from flowengine.core.outputs import OutputEnvelope


@dataclass(frozen=True)
class SplitResult:
    """
    SplitResult（FINAL / FROZEN）

    One split's complete stage-output set.

    - output_eval: eval alias ("eval_mse", ...) -> eval envelope
    - all other slots hold the envelope of that stage (or None when the
      stage was not part of the run)
    """

    output_train: Optional[OutputEnvelope] = None
    output_fairness_pre: Optional[OutputEnvelope] = None
    output_eval: Mapping[str, OutputEnvelope] = field(default_factory=dict)
    output_fairness_post: Optional[OutputEnvelope] = None

    def predictions(self, source: str) -> Any:
        """
        Prediction vector by source:
          - "train": training envelope predictions
          - "post" : fairness post-processing adjusted predictions
        """
        if source == "train":
            env = self.output_train
            return env.get("predictions") if env is not None else None
        if source == "post":
            env = self.output_fairness_post
            return env["adjusted_predictions"] if env is not None else None
        raise ValueError(f"Unknown prediction source '{source}' (expected train / post)")


# split id -> SplitResult; finalized by the controller before reporting
WorkflowResults = Dict[str, SplitResult]


def collect_metric(
    workflow_results: Mapping[str, SplitResult],
    eval_alias: str,
    metric: str,
) -> List[float]:
    """
    Scalar ``metric`` of ``eval_alias`` for every split that produced it.
    Splits without that evaluation are skipped.
    """
    values: List[float] = []
    for split_result in workflow_results.values():
        env = split_result.output_eval.get(eval_alias)
        if env is None:
            continue
        value = env["metrics"].get(metric)
        if value is None:
            continue
        values.append(float(value))
    return values
