# flowengine/engines/report_engine.py
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence


def engine_report_modelsummary(
    reportelements: Mapping[str, Mapping[str, Any]],
    sections: Optional[Sequence[Mapping[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    """
    Arrange report elements into ordered sections.

    sections:
      None -> one section per element, heading == element alias
      [{"heading": "Errors", "elements": ["mse_text", ...]}, ...]
    """
    if sections is None:
        return [
            {"heading": alias, "content": [element]}
            for alias, element in reportelements.items()
        ]

    return [
        {
            "heading": section.get("heading", ""),
            "content": [reportelements[alias] for alias in section.get("elements", [])],
        }
        for section in sections
    ]


def default_params_report_modelsummary() -> dict:
    return {
        "report_title": "Model Summary",
        "sections": None,
        "compatible_formats": ["pdf", "xlsx", "html", "json"],
    }
