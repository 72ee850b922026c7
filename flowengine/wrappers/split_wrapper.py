# flowengine/wrappers/split_wrapper.py
from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, Optional, Tuple

from flowengine import logs
from flowengine.core.outputs import OutputEnvelope, initialize_output_split
from flowengine.core.wrapper import BaseWrapper
from flowengine.engines.split_engine import (
    Splits,
    default_params_split_cv,
    default_params_split_random,
    default_params_split_random_stratified,
    engine_split_cv,
    engine_split_random,
    engine_split_random_stratified,
)
from flowengine.pipeline.control import Control, StageControl
from flowengine.utils.errors import ConfigurationError, ValidationError


class SplitWrapper(BaseWrapper):
    """
    Contract:
    - consumes control.split.data (+ target_var for stratified engines)
    - produces split envelope: split_type / splits / seed
    """

    stage = "split"
    required_inputs = ("data",)
    split_type: str = ""

    def execute(self, control: Control, section: StageControl, params, **inputs) -> OutputEnvelope:
        splits, specific = self.invoke(section, params)

        self.log_splits(splits)

        return initialize_output_split(
            split_type=self.split_type,
            splits=splits,
            seed=section.seed,
            params=params,
            specific_output=specific,
        )

    def log_splits(self, splits: Splits) -> None:
        for split_id, parts in splits.items():
            logs.debug(
                f"{self.tag} {split_id}: train={len(parts['train'])} test={len(parts['test'])}"
            )

    @abstractmethod
    def invoke(
        self, section: StageControl, params: Dict[str, Any]
    ) -> Tuple[Splits, Optional[Dict[str, Any]]]:
        ...


def _check_ratio(stage: str, params: Dict[str, Any]) -> None:
    ratio = params["split_ratio"]
    if not 0.0 < float(ratio) < 1.0:
        raise ValidationError(stage, ["split_ratio"], f"must lie in (0, 1), got {ratio}")


def _check_target(section: StageControl) -> None:
    if section.target_var not in section.data.columns:
        raise ValidationError(
            "split", [section.target_var], "target_var not found in data"
        )


class SplitRandomWrapper(SplitWrapper):
    alias = "split_random"
    split_type = "random"
    default_params = staticmethod(default_params_split_random)

    def check(self, section, params, **inputs) -> None:
        _check_ratio(self.stage, params)

    def invoke(self, section, params):
        splits = engine_split_random(
            data=section.data,
            split_ratio=params["split_ratio"],
            seed=section.seed,
        )
        return splits, None


class SplitRandomStratifiedWrapper(SplitWrapper):
    alias = "split_random_stratified"
    split_type = "random_stratified"
    required_inputs = ("data", "target_var")
    default_params = staticmethod(default_params_split_random_stratified)

    def check(self, section, params, **inputs) -> None:
        _check_ratio(self.stage, params)
        _check_target(section)

    def invoke(self, section, params):
        splits = engine_split_random_stratified(
            data=section.data,
            target_var=section.target_var,
            split_ratio=params["split_ratio"],
            seed=section.seed,
        )
        return splits, None


class SplitCVWrapper(SplitWrapper):
    alias = "split_cv"
    split_type = "cv"
    required_inputs = ("data", "target_var")
    default_params = staticmethod(default_params_split_cv)

    def check(self, section, params, **inputs) -> None:
        folds = params["cv_folds"]
        if not isinstance(folds, int) or folds < 2:
            raise ConfigurationError(
                f"{self.tag} cv_folds must be an integer >= 2, got {folds!r}"
            )
        if folds > len(section.data):
            raise ConfigurationError(
                f"{self.tag} cv_folds={folds} exceeds number of rows ({len(section.data)})"
            )
        _check_target(section)

    def invoke(self, section, params):
        splits = engine_split_cv(
            data=section.data,
            target_var=section.target_var,
            cv_folds=params["cv_folds"],
            seed=section.seed,
        )
        return splits, {"cv_folds": params["cv_folds"]}
