# flowengine/core/wrapper.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import numpy as np

from flowengine import logs
from flowengine.core.outputs import OutputEnvelope
from flowengine.core.params import merge_with_defaults
from flowengine.observability.instrumentation import (
    Instrumentation,
    NoOpInstrumentation,
)
from flowengine.pipeline.control import Control, StageControl, lookup
from flowengine.utils.errors import MissingInputError, ValidationError


class BaseWrapper(ABC):
    """
    BaseWrapper（冻结）

    定位：
      - 一个 wrapper == 一个 engine alias
      - Control Object -> engine 调用 -> output envelope
      - 无状态，可重复调用

    调用顺序（Template Method）：
      1. extract   : Control 中取本 stage 子记录
      2. validate  : required_inputs / required_arguments 缺失 -> MissingInputError
      3. resolve   : merge_with_defaults(用户参数, default_params())
      4. check     : 领域校验（子类可选）
      5. execute   : 调用 engine + 打包 envelope（stage family 基类实现）

    子类声明：
      stage, alias, required_inputs, default_params()
    """

    stage: str = ""                          # e.g. "eval"
    alias: str = ""                          # e.g. "eval_mse"
    required_inputs: Tuple[str, ...] = ()    # dotted paths inside the stage sub-record
    required_arguments: Tuple[str, ...] = () # keyword arguments of run()

    def __init__(self, inst: Optional[Instrumentation] = None):
        self.inst = inst if inst is not None else NoOpInstrumentation()

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @property
    def tag(self) -> str:
        return f"[{self.stage.upper()}]"

    # --------------------------------------------------
    def run(self, control: Control, **inputs: Any) -> OutputEnvelope:
        section = self.extract(control)
        self.validate(section, inputs)

        params = merge_with_defaults(
            section.engine_params(self.params_key(inputs)),
            self.default_params(),
        )
        self.check(section, params, **inputs)

        logs.info(f"{self.tag} {self.name} start")
        envelope = self.execute(control, section, params, **inputs)
        logs.info(f"{self.tag} {self.name} done")

        return envelope

    # --------------------------------------------------
    # fixed steps
    # --------------------------------------------------
    def extract(self, control: Control) -> StageControl:
        section = control.section(self.stage)
        # absent sub-record: every required input is then reported missing
        return section if section is not None else StageControl()

    def validate(self, section: StageControl, inputs: Mapping[str, Any]) -> None:
        for path in self.required_inputs:
            if lookup(section, path) is None:
                raise MissingInputError(self.stage, path, self.name)

        for arg in self.required_arguments:
            if inputs.get(arg) is None:
                raise MissingInputError(self.stage, arg, self.name)

    def params_key(self, inputs: Mapping[str, Any]) -> str:
        return self.alias

    def check_vectors(self, section: StageControl, paths: Iterable[str]) -> None:
        """
        Vector inputs must be non-empty and of equal length.
        """
        sizes = {p: np.ravel(np.asarray(lookup(section, p))).size for p in paths}

        empty = [p for p, n in sizes.items() if n == 0]
        if empty:
            raise ValidationError(self.stage, empty, "input vectors must not be empty")

        if len(set(sizes.values())) > 1:
            lengths = ", ".join(str(n) for n in sizes.values())
            raise ValidationError(
                self.stage, list(sizes), f"input vectors differ in length ({lengths})"
            )

    # --------------------------------------------------
    # hook methods
    # --------------------------------------------------
    @staticmethod
    @abstractmethod
    def default_params() -> Dict[str, Any]:
        ...

    def check(self, section: StageControl, params: Dict[str, Any], **inputs: Any) -> None:
        return None

    @abstractmethod
    def execute(
        self,
        control: Control,
        section: StageControl,
        params: Dict[str, Any],
        **inputs: Any,
    ) -> OutputEnvelope:
        ...
