# flowengine/wrappers/report_wrapper.py
from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, List, Mapping

from flowengine.core.outputs import OutputEnvelope, initialize_output_report
from flowengine.core.wrapper import BaseWrapper
from flowengine.engines.report_engine import (
    default_params_report_modelsummary,
    engine_report_modelsummary,
)
from flowengine.pipeline.control import Control, StageControl
from flowengine.utils.errors import ValidationError


class ReportWrapper(BaseWrapper):
    """
    Contract:
    - run(control, reportelements={alias: element envelope}, alias=...)
    - params are looked up by the INSTANCE alias
    - produces report envelope: report_title / report_type / compatible_formats / sections
    """

    stage = "report"
    required_arguments = ("reportelements", "alias")
    report_type: str = ""

    def params_key(self, inputs: Mapping[str, Any]) -> str:
        return inputs["alias"]

    def execute(
        self,
        control: Control,
        section: StageControl,
        params,
        *,
        reportelements: Mapping[str, Any],
        alias: str,
        **inputs,
    ) -> OutputEnvelope:
        sections = self.invoke(reportelements, params)

        return initialize_output_report(
            report_title=params["report_title"],
            report_type=self.report_type,
            compatible_formats=params["compatible_formats"],
            sections=sections,
            params=params,
            specific_output={
                "alias": alias,
                "n_elements": sum(len(s["content"]) for s in sections),
            },
        )

    @abstractmethod
    def invoke(
        self, reportelements: Mapping[str, Any], params: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        ...


class ModelSummaryReportWrapper(ReportWrapper):
    alias = "report_modelsummary"
    report_type = "modelsummary"
    default_params = staticmethod(default_params_report_modelsummary)

    def check(self, section, params, *, reportelements, **inputs) -> None:
        if params["sections"] is None:
            return

        referenced = [
            a for entry in params["sections"] for a in entry.get("elements", [])
        ]
        unknown = [a for a in referenced if a not in reportelements]
        if unknown:
            raise ValidationError(
                self.stage, unknown, "sections reference unknown report elements"
            )

    def invoke(self, reportelements, params):
        return engine_report_modelsummary(reportelements, sections=params["sections"])
