"""CSV, Excel and HTML output writer.

Primary output is a CSV file (one row per domain, analysis-ready).
Excel and HTML are optional and built from the same rows.

Output structure:
  out/<date>/<timestamp>/
    results.csv          # One row per probed domain
    results.xlsx         # Optional workbook: results + screenshots sheet
    report.html          # Optional standalone report (screenshots inlined)
    run_metadata.json    # Summary + config
"""

import base64
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from jinja2 import Environment, PackageLoader, select_autoescape
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from subprobe.util.types import ProbeConfig, Result, RunSummary
from subprobe.util.io import write_csv, write_json, ensure_dir
from subprobe.util.time import timestamp_str, date_str, report_time_str

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    'domain', 'status_text', 'status', 'response_time_ms',
    'page_type', 'title', 'message', 'screenshot',
]

EXCEL_HEADERS = {
    'domain': 'Domain',
    'status_text': 'Status',
    'status': 'Status Code',
    'response_time_ms': 'Response Time (ms)',
    'page_type': 'Page Type',
    'title': 'Title',
    'message': 'Message',
    'screenshot': 'Screenshot',
}

IMAGE_MIME_TYPES = {
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
}

_THIN = Side(style='thin', color='000000')
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


def screenshot_data_uri(path: str) -> str:
    """Inline a screenshot file as a base64 data URI ('' if unreadable)."""
    if not path:
        return ""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        logger.debug(f"Could not read screenshot {path}: {e}")
        return ""
    mime = IMAGE_MIME_TYPES.get(Path(path).suffix.lower(), 'image/jpeg')
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def domain_link(domain: str) -> str:
    """Clickable URL for a domain as given in the input list."""
    if domain.startswith(('http://', 'https://')):
        return domain
    return f"http://{domain}"


def _filter(results: Sequence[Result], only_alive: bool) -> List[Result]:
    return [r for r in results if r.alive or not only_alive]


class OutputWriter:
    """Writes probe results to disk in CSV and optional Excel/HTML format."""

    def __init__(self, out_dir: str = "out", run_dir: Optional[Path] = None):
        """Initialize writer with output directory.

        Args:
            out_dir: Base output directory (default: 'out')
            run_dir: Explicit run directory to use (overrides auto-creation)
        """
        if run_dir:
            self.run_dir = ensure_dir(Path(run_dir))
        else:
            self.run_dir = ensure_dir(Path(out_dir) / date_str() / timestamp_str())

        logger.info(f"Output directory: {self.run_dir}")

    def write_all(self, results: Sequence[Result], summary: RunSummary,
                  config: ProbeConfig) -> List[Path]:
        """Write every output the config enables. Returns the files written."""
        written = []
        if config.enable_csv:
            written.append(self.write_csv(results))
        if config.enable_excel:
            written.append(self.write_excel(results, only_alive=config.only_alive))
        if config.enable_html:
            written.append(self.write_html(results, summary, only_alive=config.only_alive))
        written.append(self.write_metadata(summary, config))
        return written

    def write_csv(self, results: Sequence[Result]) -> Path:
        """One row per result, every domain included."""
        rows = [r.to_dict() for r in results]
        output_file = self.run_dir / "results.csv"
        write_csv(output_file, rows, fieldnames=CSV_FIELDS)
        logger.info(f"Wrote {len(rows)} results to {output_file.name}")
        return output_file

    def write_excel(self, results: Sequence[Result], only_alive: bool = False) -> Path:
        """Excel workbook with a results sheet and a screenshots sheet."""
        output_file = self.run_dir / "results.xlsx"
        selected = _filter(results, only_alive)

        rows = []
        for r in selected:
            row = r.to_dict()
            row['screenshot'] = "view" if r.screenshot else "no screenshot"
            rows.append({EXCEL_HEADERS[k]: row[k] for k in CSV_FIELDS})
        results_df = pd.DataFrame(rows, columns=list(EXCEL_HEADERS.values()))
        shots_df = pd.DataFrame(
            [{'Domain': r.domain, 'Screenshot': ''} for r in selected],
            columns=['Domain', 'Screenshot']
        )

        with pd.ExcelWriter(output_file, engine='openpyxl') as writer:
            results_df.to_excel(writer, sheet_name='Results', index=False)
            shots_df.to_excel(writer, sheet_name='Screenshots', index=False)

            self._style_results_sheet(writer.sheets['Results'], selected)
            self._fill_screenshot_sheet(writer.sheets['Screenshots'], selected)

        logger.info(f"Wrote Excel workbook with {len(selected)} rows to {output_file.name}")
        return output_file

    def _style_results_sheet(self, ws, results: Sequence[Result]) -> None:
        header_font = Font(bold=True)
        header_fill = PatternFill(fill_type='solid', start_color='D9D9D9', end_color='D9D9D9')
        center = Alignment(horizontal='center', vertical='center')

        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = center
            cell.border = _BORDER

        screenshot_col = len(CSV_FIELDS)
        for row_idx, result in enumerate(results, start=2):
            for col_idx in range(1, screenshot_col + 1):
                ws.cell(row=row_idx, column=col_idx).border = _BORDER
            if result.screenshot:
                cell = ws.cell(row=row_idx, column=screenshot_col)
                # Relative links would resolve against the workbook folder
                cell.hyperlink = Path(result.screenshot).resolve().as_uri()
                cell.font = Font(color='0563C1', underline='single')
                cell.alignment = Alignment(horizontal='center')

        for col in ws.columns:
            ws.column_dimensions[col[0].column_letter].width = 20
        ws.freeze_panes = 'A2'

    def _fill_screenshot_sheet(self, ws, results: Sequence[Result]) -> None:
        for cell in ws[1]:
            cell.font = Font(bold=True)
            cell.border = _BORDER

        for row_idx, result in enumerate(results, start=2):
            path = Path(result.screenshot) if result.screenshot else None
            if path is not None and path.exists():
                try:
                    img = XLImage(str(path))
                    img.width = int(img.width * 0.3)
                    img.height = int(img.height * 0.3)
                    ws.add_image(img, f"B{row_idx}")
                    # Row height is in points (~0.75 px)
                    ws.row_dimensions[row_idx].height = max(15, img.height * 0.75)
                except (OSError, ValueError) as e:
                    logger.warning(f"Could not embed screenshot for {result.domain}: {e}")
                    ws.cell(row=row_idx, column=2, value="no screenshot")
            else:
                ws.cell(row=row_idx, column=2, value="no screenshot")

        ws.column_dimensions['A'].width = 40
        ws.column_dimensions['B'].width = 200
        ws.freeze_panes = 'A2'

    def write_html(self, results: Sequence[Result], summary: RunSummary,
                   only_alive: bool = False) -> Path:
        """Standalone HTML report; screenshots are inlined as data URIs."""
        output_file = self.run_dir / "report.html"
        selected = _filter(results, only_alive)

        env = Environment(
            loader=PackageLoader('subprobe.scanner.output', 'templates'),
            autoescape=select_autoescape(['html'])
        )
        template = env.get_template('report.html')

        alive = sum(1 for r in selected if r.alive)
        html = template.render(
            report_time=report_time_str(),
            total=len(selected),
            alive=alive,
            dead=len(selected) - alive,
            page_types=sorted(summary.page_types.items(), key=lambda kv: (-kv[1], kv[0])),
            duration=summary.duration,
            rows=[self._html_row(r) for r in selected],
        )

        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(html)

        logger.info(f"Wrote HTML report with {len(selected)} rows to {output_file.name}")
        return output_file

    @staticmethod
    def _html_row(result: Result) -> Dict[str, Any]:
        row = result.to_dict()
        row['link'] = result.url or domain_link(result.domain)
        row['status_class'] = 'status-alive' if result.alive else 'status-dead'
        row['state'] = 'alive' if result.alive else 'dead'
        row['page_type'] = result.page_type or '-'
        row['screenshot_uri'] = screenshot_data_uri(result.screenshot)
        return row

    def write_metadata(self, summary: RunSummary, config: ProbeConfig) -> Path:
        """Run summary plus the config it ran with."""
        output_file = self.run_dir / "run_metadata.json"
        write_json(output_file, {
            'finished_at': report_time_str(),
            'summary': summary.to_dict(),
            'config': config.to_dict(),
        })
        logger.info(f"Wrote metadata to {output_file.name}")
        return output_file
