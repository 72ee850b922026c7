# flowengine/wrappers/train_wrapper.py
from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict

import pandas as pd

from flowengine import logs
from flowengine.core.data import select_training_data
from flowengine.core.outputs import OutputEnvelope, initialize_output_train
from flowengine.core.wrapper import BaseWrapper
from flowengine.engines.train_engine import (
    GBM_DISTRIBUTIONS,
    SUPPORTED_FAMILIES,
    FormulaModel,
    default_params_train_gbm,
    default_params_train_glm,
    default_params_train_lm,
    default_params_train_rf,
    engine_train_gbm,
    engine_train_glm,
    engine_train_lm,
    engine_train_rf,
    infer_distribution,
    is_class_target,
    resolve_features,
)
from flowengine.pipeline.control import Control, StageControl
from flowengine.utils.errors import ConfigurationError, ValidationError


class TrainWrapper(BaseWrapper):
    """
    TrainWrapper（FINAL）

    Contract:
    - consumes control.train.formula / data / norm_data
    - data variant picked by select_training_data (original | normalized)
    - the engine call is timed; seconds land in specific_output.training_time
    - predictions are NOT produced here (the controller scores the test split)
    """

    stage = "train"
    required_inputs = ("formula", "data")
    model_type: str = ""

    def execute(self, control: Control, section: StageControl, params, **inputs) -> OutputEnvelope:
        data = select_training_data(section.norm_data, section.data)
        self.check_formula(section.formula, data)
        params = self.resolve(control, section.formula, data, params)

        with self.inst.timer(self.alias) as scope:
            model = self.invoke(section.formula, data, params)

        specific = {"training_time": scope.elapsed, "n_obs": model.n_obs}
        if model.class_mapping:
            specific["class_mapping"] = model.class_mapping

        logs.info(
            f"{self.tag} {self.model_type} fitted on {len(data)} rows "
            f"in {scope.elapsed:.3f}s"
        )

        return initialize_output_train(
            model=model,
            model_type=self.model_type,
            formula=section.formula,
            hyperparameters=params,
            specific_output=specific,
        )

    def check_formula(self, formula: str, data: pd.DataFrame) -> None:
        try:
            target, features = resolve_features(formula, list(data.columns))
        except ValueError as exc:
            raise ValidationError(self.stage, ["formula"], str(exc)) from exc

        missing = [c for c in [target, *features] if c not in data.columns]
        if missing:
            raise ValidationError(
                self.stage, missing, "formula references columns absent from training data"
            )

    def resolve(
        self, control: Control, formula: str, data: pd.DataFrame, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Fill data-dependent hyperparameters; the result is what gets recorded.
        """
        return params

    @abstractmethod
    def invoke(self, formula: str, data: pd.DataFrame, params: Dict[str, Any]) -> FormulaModel:
        ...


class TrainLMWrapper(TrainWrapper):
    alias = "train_lm"
    model_type = "lm"
    default_params = staticmethod(default_params_train_lm)

    def invoke(self, formula, data, params):
        return engine_train_lm(formula=formula, data=data)


class TrainGLMWrapper(TrainWrapper):
    alias = "train_glm"
    model_type = "glm"
    default_params = staticmethod(default_params_train_glm)

    def check(self, section, params, **inputs) -> None:
        if params["family"] not in SUPPORTED_FAMILIES:
            raise ConfigurationError(
                f"{self.tag} unsupported GLM family '{params['family']}'. "
                f"Supported: {', '.join(SUPPORTED_FAMILIES)}"
            )

    def invoke(self, formula, data, params):
        return engine_train_glm(
            formula=formula,
            family=params["family"],
            data=data,
            sample_weight=params["sample_weight"],
            max_iter=params["max_iter"],
        )


def _with_seed(control: Control, params: Dict[str, Any]) -> Dict[str, Any]:
    if params.get("seed") is None:
        return {**params, "seed": control.global_seed}
    return params


class TrainRFWrapper(TrainWrapper):
    alias = "train_rf"
    model_type = "rf"
    default_params = staticmethod(default_params_train_rf)

    def resolve(self, control, formula, data, params):
        params = _with_seed(control, params)
        target, _ = resolve_features(formula, list(data.columns))
        if is_class_target(data[target]) and data[target].nunique(dropna=True) != 2:
            raise ValidationError(
                self.stage, [target], "classification forest requires a binary target"
            )
        return params

    def invoke(self, formula, data, params):
        return engine_train_rf(
            formula=formula,
            data=data,
            sample_weight=params["sample_weight"],
            ntree=params["ntree"],
            mtry=params["mtry"],
            seed=params["seed"],
        )


class TrainGBMWrapper(TrainWrapper):
    """
    distribution None -> inferred from the target column.
    bernoulli needs a binary target; numeric targets must be coded 0/1.
    """

    alias = "train_gbm"
    model_type = "gbm"
    default_params = staticmethod(default_params_train_gbm)

    def check(self, section, params, **inputs) -> None:
        dist = params["distribution"]
        if dist is not None and dist not in GBM_DISTRIBUTIONS:
            raise ConfigurationError(
                f"{self.tag} unsupported GBM distribution '{dist}'. "
                f"Supported: {', '.join(GBM_DISTRIBUTIONS)}"
            )

    def resolve(self, control, formula, data, params):
        params = _with_seed(control, params)
        target, _ = resolve_features(formula, list(data.columns))
        y = data[target]

        dist = params["distribution"] or infer_distribution(y)
        if dist == "bernoulli":
            levels = set(y.dropna().unique().tolist())
            if len(levels) != 2 or (not is_class_target(y) and not levels <= {0, 1}):
                raise ValidationError(
                    self.stage, [target], "bernoulli requires a binary target (0/1 or two labels)"
                )

        return {**params, "distribution": dist}

    def invoke(self, formula, data, params):
        return engine_train_gbm(
            formula=formula,
            data=data,
            distribution=params["distribution"],
            sample_weight=params["sample_weight"],
            n_trees=params["n_trees"],
            interaction_depth=params["interaction_depth"],
            shrinkage=params["shrinkage"],
            n_minobsinnode=params["n_minobsinnode"],
            bag_fraction=params["bag_fraction"],
            train_fraction=params["train_fraction"],
            seed=params["seed"],
        )
