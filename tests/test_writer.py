"""
Output writer tests - CSV, Excel, HTML and metadata files.
"""

import csv
import json

import pytest
from openpyxl import load_workbook
from PIL import Image

from subprobe.util.types import PageInfo, ProbeConfig, Result, RunSummary
from subprobe.scanner.output.writer import (
    CSV_FIELDS, EXCEL_HEADERS, OutputWriter, domain_link, screenshot_data_uri,
)
from subprobe.scanner.output.summary import format_summary


@pytest.fixture
def shot(tmp_path):
    path = tmp_path / "shots" / "a.example.com.png"
    path.parent.mkdir()
    Image.new("RGB", (200, 100), color=(30, 120, 200)).save(path)
    return path


@pytest.fixture
def results(shot):
    return [
        Result(domain="a.example.com", alive=True, status=200, status_text="200 OK",
               response_time=0.1234, page_info=PageInfo(type="login page", title="用户登录"),
               screenshot=str(shot), url="https://a.example.com/"),
        Result(domain="b.example.com", alive=False, status=0, status_text="unreachable",
               response_time=10.0, message="timeout"),
        Result(domain="<script>x</script>", alive=False, status=0, status_text="invalid",
               message="invalid domain"),
    ]


@pytest.fixture
def summary():
    return RunSummary(total=3, alive=1, dead=2, page_types={"login page": 1},
                      screenshots=1, duration=12.5)


@pytest.fixture
def writer(tmp_path):
    return OutputWriter(run_dir=tmp_path / "run")


def test_run_dir_layout(tmp_path):
    writer = OutputWriter(out_dir=str(tmp_path / "out"))
    run_dir = writer.run_dir
    assert run_dir.is_dir()
    assert run_dir.parent.parent == tmp_path / "out"


def test_csv_has_every_result(writer, results):
    path = writer.write_csv(results)

    raw = path.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")  # BOM for spreadsheet apps

    with open(path, encoding="utf-8-sig", newline="") as f:
        rows = list(csv.DictReader(f))
    assert list(rows[0].keys()) == CSV_FIELDS
    assert [r['domain'] for r in rows] == [r.domain for r in results]
    assert rows[0]['title'] == "用户登录"
    assert rows[0]['response_time_ms'] == "123.4"
    assert rows[1]['message'] == "timeout"
    assert rows[1]['page_type'] == ""


def test_csv_with_no_results_still_has_header(writer):
    path = writer.write_csv([])
    with open(path, encoding="utf-8-sig", newline="") as f:
        assert next(csv.reader(f)) == CSV_FIELDS


def test_excel_sheets_and_screenshot(writer, results, shot):
    path = writer.write_excel(results)
    wb = load_workbook(path)

    assert wb.sheetnames == ["Results", "Screenshots"]
    ws = wb["Results"]
    assert [c.value for c in ws[1]] == list(EXCEL_HEADERS.values())
    assert ws.max_row == 1 + len(results)

    link_cell = ws.cell(row=2, column=len(CSV_FIELDS))
    assert link_cell.value == "view"
    assert link_cell.hyperlink is not None
    assert link_cell.hyperlink.target == shot.resolve().as_uri()
    assert ws.cell(row=3, column=len(CSV_FIELDS)).value == "no screenshot"

    shots = wb["Screenshots"]
    assert len(shots._images) == 1
    assert shots.cell(row=2, column=1).value == "a.example.com"
    assert shots.cell(row=3, column=2).value == "no screenshot"


def test_excel_only_alive(writer, results):
    wb = load_workbook(writer.write_excel(results, only_alive=True))
    ws = wb["Results"]
    assert ws.max_row == 2
    assert ws.cell(row=2, column=1).value == "a.example.com"


def test_html_report(writer, results, summary):
    html = writer.write_html(results, summary).read_text(encoding="utf-8")

    assert 'class="n">3<' in html
    assert "用户登录" in html
    assert "login page: 1" in html
    assert "data:image/png;base64," in html
    # Domains are escaped, never injected as markup
    assert "<script>x</script>" not in html
    assert "&lt;script&gt;" in html


def test_html_only_alive(writer, results, summary):
    html = writer.write_html(results, summary, only_alive=True).read_text(encoding="utf-8")
    assert "a.example.com" in html
    assert "b.example.com" not in html


def test_metadata(writer, summary):
    path = writer.write_metadata(summary, ProbeConfig(workers=7))
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data['summary']['total'] == 3
    assert data['summary']['page_types'] == {"login page": 1}
    assert data['config']['workers'] == 7
    assert data['config']['screenshot_mode'] == "off"


def test_write_all_respects_flags(writer, results, summary):
    config = ProbeConfig(enable_csv=False, enable_excel=True, enable_html=True)
    names = sorted(p.name for p in writer.write_all(results, summary, config))
    assert names == ["report.html", "results.xlsx", "run_metadata.json"]


def test_screenshot_data_uri(shot, tmp_path):
    assert screenshot_data_uri(str(shot)).startswith("data:image/png;base64,")
    assert screenshot_data_uri("") == ""
    assert screenshot_data_uri(str(tmp_path / "missing.png")) == ""


def test_domain_link():
    assert domain_link("a.example.com") == "http://a.example.com"
    assert domain_link("https://a.example.com") == "https://a.example.com"


class TestSummary:

    def test_basic_counts(self, summary):
        text = format_summary(summary, ProbeConfig())
        assert "Total: 3 domains, 1 alive, 2 unreachable" in text
        assert "Elapsed: 12.50 s" in text
        assert "Page types" not in text
        assert "Screenshots" not in text

    def test_page_types_and_screenshots(self, summary):
        text = format_summary(summary, ProbeConfig(extract_info=True, screenshot_mode="alive"))
        assert "  login page: 1" in text
        assert "Screenshots of alive sites: 1" in text


def test_excel_link_for_relative_screenshot_is_absolute(tmp_path, shot, monkeypatch):
    monkeypatch.chdir(tmp_path)
    relative = Result(domain="a.example.com", alive=True, status=200,
                      screenshot="shots/a.example.com.png")
    writer = OutputWriter(out_dir="out")

    wb = load_workbook(writer.write_excel([relative]))
    link = wb["Results"].cell(row=2, column=len(CSV_FIELDS)).hyperlink
    assert link.target == shot.resolve().as_uri()
    assert link.target.startswith("file://")
