# flowengine/wrappers/publish_wrapper.py
from __future__ import annotations

from abc import abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from flowengine import logs
from flowengine.core.outputs import (
    OutputEnvelope,
    initialize_output_publish,
    initialize_output_report,
)
from flowengine.core.params import merge_with_defaults
from flowengine.core.wrapper import BaseWrapper
from flowengine.engines.publish_engine import (
    default_params_publish_excel_basis,
    default_params_publish_pdf_basis,
    engine_publish_excel_basis,
    engine_publish_pdf_basis,
)
from flowengine.pipeline.control import Control, StageControl, lookup
from flowengine.utils.errors import ExternalEngineError


class PublishWrapper(BaseWrapper):
    """
    PublishWrapper（FINAL）

    Contract:
    - run(control, obj=<report | reportelement>, alias=..., file_path=None)
    - instance params (keyed by alias):
        obj_type : label recorded in the envelope (default: obj family)
        timeout  : seconds; overrides control.publish.timeout
        params   : engine options, merged with the engine defaults
    - NEVER raises for export problems: incompatible format, engine error
      and timeout all produce success=False + specific_output.error
    """

    stage = "publish"
    required_arguments = ("obj", "alias")
    file_format: str = ""

    def params_key(self, inputs: Mapping[str, Any]) -> str:
        return inputs["alias"]

    @classmethod
    def default_params(cls) -> Dict[str, Any]:
        return {"obj_type": None, "timeout": None, "params": cls.engine_defaults()}

    @staticmethod
    @abstractmethod
    def engine_defaults() -> Dict[str, Any]:
        ...

    # --------------------------------------------------
    def execute(
        self,
        control: Control,
        section: StageControl,
        params,
        *,
        obj: Mapping[str, Any],
        alias: str,
        file_path: Optional[str] = None,
        **inputs,
    ) -> OutputEnvelope:
        obj_type = params["obj_type"] or getattr(obj, "family", None)
        base_path = file_path or str(
            Path(lookup(section, "output_folder", ".")) / alias
        )
        target = f"{base_path}.{self.file_format}"

        def failed(error: str) -> OutputEnvelope:
            logs.error(f"{self.tag} {alias} -> {target} failed: {error}")
            return initialize_output_publish(
                alias=alias,
                type=obj_type,
                engine=self.alias,
                path=target,
                success=False,
                params=params,
                specific_output={"error": error},
            )

        formats = list(obj.get("compatible_formats") or [])
        if self.file_format not in formats:
            return failed(
                f"format '{self.file_format}' not supported by this object "
                f"(compatible: {', '.join(formats) or 'none'})"
            )

        engine_params = merge_with_defaults(params["params"], self.engine_defaults())
        timeout = params["timeout"] if params["timeout"] is not None else lookup(section, "timeout")

        try:
            Path(base_path).parent.mkdir(parents=True, exist_ok=True)
            path = self.export(as_report(obj, alias), base_path, engine_params, timeout)
        except Exception as exc:
            error = exc if isinstance(exc, ExternalEngineError) else ExternalEngineError(
                f"{type(exc).__name__}: {exc}"
            )
            return failed(str(error))

        logs.info(f"{self.tag} {alias} -> {path}")

        return initialize_output_publish(
            alias=alias,
            type=obj_type,
            engine=self.alias,
            path=path,
            success=True,
            params=params,
        )

    def export(
        self,
        report: Mapping[str, Any],
        base_path: str,
        engine_params: Dict[str, Any],
        timeout: Optional[float],
    ) -> str:
        if not timeout:
            return self.invoke(report, base_path, engine_params)

        # the worker is abandoned on timeout, not killed
        pool = ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(self.invoke, report, base_path, engine_params)
            return future.result(timeout=timeout)
        except FutureTimeout:
            raise ExternalEngineError(f"export timed out after {timeout}s") from None
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    @abstractmethod
    def invoke(
        self, report: Mapping[str, Any], base_path: str, engine_params: Dict[str, Any]
    ) -> str:
        ...


def as_report(obj: Mapping[str, Any], alias: str) -> Mapping[str, Any]:
    """
    Publishing engines render reports; a lone report element becomes a
    single-section report titled by its alias.
    """
    if "sections" in obj:
        return obj

    return initialize_output_report(
        report_title=alias,
        report_type="reportelement",
        compatible_formats=obj.get("compatible_formats") or [],
        sections=[{"heading": alias, "content": [obj]}],
    )


class ExcelPublishWrapper(PublishWrapper):
    alias = "publish_excel_basis"
    file_format = "xlsx"
    engine_defaults = staticmethod(default_params_publish_excel_basis)

    def invoke(self, report, base_path, engine_params):
        return engine_publish_excel_basis(report, base_path, params=engine_params)


class PdfPublishWrapper(PublishWrapper):
    alias = "publish_pdf_basis"
    file_format = "pdf"
    engine_defaults = staticmethod(default_params_publish_pdf_basis)

    def invoke(self, report, base_path, engine_params):
        return engine_publish_pdf_basis(report, base_path, params=engine_params)
