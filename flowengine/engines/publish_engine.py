# flowengine/engines/publish_engine.py
"""
Publish engines（FINAL）

Contract:
- input: a report object (title + sections of report elements) and a base
  path WITHOUT extension
- the engine appends its own extension and returns the resolved final path
- element types the format cannot render degrade to a placeholder, they
  never abort the export
- failures propagate; the wrapper turns them into a failure envelope
"""
from __future__ import annotations

import re
import textwrap
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Set

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages

_SHEET_FORBIDDEN = re.compile(r"[\[\]:*?/\\]")


def _sections(report: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    sections = list(report.get("sections") or [])
    if not sections:
        sections = [{"heading": report.get("report_title", "Report"), "content": []}]
    return sections


def _text_lines(content: Any) -> List[str]:
    if isinstance(content, str):
        return [content]
    return [str(line) for line in content]


def _as_frame(content: Any) -> pd.DataFrame:
    return content if isinstance(content, pd.DataFrame) else pd.DataFrame(content)


# ------------------------------------------------------------------
# publish_excel_basis
# ------------------------------------------------------------------
def engine_publish_excel_basis(
    report: Mapping[str, Any], file_path: str, params: Optional[Mapping[str, Any]] = None
) -> str:
    """
    One sheet per section. Row 0 holds the heading, elements follow with
    one blank row between them.

    ``params`` carries engine options; keys this engine does not read are ignored.
    """
    final_path = Path(f"{file_path}.xlsx")
    used: Set[str] = set()

    with pd.ExcelWriter(final_path, engine="openpyxl") as writer:
        for i, section in enumerate(_sections(report), start=1):
            heading = section.get("heading") or f"Section {i}"
            sheet = _sheet_name(heading, used)

            pd.DataFrame([[heading]]).to_excel(
                writer, sheet_name=sheet, startrow=0, index=False, header=False
            )
            row = 2

            for element in section.get("content", []):
                etype = element.get("type")
                content = element.get("content")

                if etype == "table":
                    df = _as_frame(content)
                    df.to_excel(writer, sheet_name=sheet, startrow=row, index=False)
                    row += len(df) + 2
                elif etype == "text":
                    lines = _text_lines(content)
                    pd.DataFrame({"text": lines}).to_excel(
                        writer, sheet_name=sheet, startrow=row, index=False, header=False
                    )
                    row += len(lines) + 1
                else:
                    pd.DataFrame(
                        [[f"Element of type '{etype}' is not supported in Excel export."]]
                    ).to_excel(
                        writer, sheet_name=sheet, startrow=row, index=False, header=False
                    )
                    row += 2

    return str(final_path.resolve())


def default_params_publish_excel_basis() -> dict:
    return {}


def _sheet_name(heading: str, used: Set[str]) -> str:
    # Excel: max 31 chars, no []:*?/\
    base = _SHEET_FORBIDDEN.sub("_", heading).strip() or "Sheet"
    name = base[:31]
    n = 2
    while name.lower() in used:
        suffix = f"_{n}"
        name = base[: 31 - len(suffix)] + suffix
        n += 1
    used.add(name.lower())
    return name


# ------------------------------------------------------------------
# publish_pdf_basis
# ------------------------------------------------------------------
class _PageWriter:
    """
    Top-down text/table layout on A4 pages; opens a new page on overflow.
    Figures are emitted as pages of their own.
    """

    top = 0.94
    bottom = 0.06
    line = 0.022

    def __init__(self, pdf: PdfPages, figsize=(8.27, 11.69), wrap: int = 90):
        self.pdf = pdf
        self.figsize = figsize
        self.wrap = wrap
        self.fig = None
        self.y = self.top

    def _ensure(self, height: float) -> None:
        if self.fig is None or self.y - height < self.bottom:
            self.flush()
            self.fig = plt.figure(figsize=self.figsize)
            self.y = self.top

    def text(self, lines: Iterable[str], size: int = 10, weight: str = "normal") -> None:
        step = self.line * size / 10
        for raw in lines:
            for line in textwrap.wrap(raw, self.wrap) or [""]:
                self._ensure(step)
                self.fig.text(0.08, self.y, line, fontsize=size, weight=weight, va="top")
                self.y -= step
        self.y -= self.line / 2

    def table(self, df: pd.DataFrame, max_rows: int = 40) -> None:
        if df.empty:
            self.text(["(empty table)"])
            return

        shown = df.head(max_rows)
        height = min(self.line * 1.2 * (len(shown) + 1), self.top - self.bottom)
        self._ensure(height)

        ax = self.fig.add_axes([0.08, self.y - height, 0.84, height])
        ax.axis("off")
        tbl = ax.table(
            cellText=[[_cell(v) for v in row] for row in shown.itertuples(index=False)],
            colLabels=[str(c) for c in shown.columns],
            loc="upper center",
            cellLoc="center",
        )
        tbl.auto_set_font_size(False)
        tbl.set_fontsize(7)
        self.y -= height + self.line

        if len(df) > max_rows:
            self.text([f"... {len(df) - max_rows} more rows"], size=8)

    def figure(self, fig) -> None:
        self.flush()
        self.pdf.savefig(fig)

    def flush(self) -> None:
        if self.fig is not None:
            self.pdf.savefig(self.fig)
            plt.close(self.fig)
            self.fig = None


def _cell(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


def engine_publish_pdf_basis(
    report: Mapping[str, Any], file_path: str, params: Optional[Mapping[str, Any]] = None
) -> str:
    final_path = Path(f"{file_path}.pdf")

    with PdfPages(final_path) as pdf:
        page = _PageWriter(pdf)
        page.text([str(report.get("report_title", "Report"))], size=16, weight="bold")

        for section in _sections(report):
            page.text([str(section.get("heading", ""))], size=13, weight="bold")

            for element in section.get("content", []):
                etype = element.get("type")
                content = element.get("content")

                if etype == "text":
                    page.text(_text_lines(content))
                elif etype == "table":
                    page.table(_as_frame(content))
                elif etype == "plot":
                    page.figure(content)
                else:
                    page.text([f"Unsupported element type: {etype}"], size=9)

        page.flush()

    return str(final_path.resolve())


def default_params_publish_pdf_basis() -> dict:
    return {}
