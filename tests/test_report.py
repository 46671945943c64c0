import csv
import zipfile

from report import archive_files, log_to_csv, write_html_report

RESULTS = {
    "environment": {"key": "production", "name": "Production", "base_url": "https://shop.example/fashionhub/"},
    "tests": [
        {"name": "should validate login form elements exist", "scenario": 3, "scenario_name": "Login Functionality",
         "status": "passed", "error": "", "screenshot": "", "steps": ["Navigating to login page"], "duration_ms": 812},
        {"name": "should have no console errors on homepage", "scenario": 1, "scenario_name": "Console Error Detection",
         "status": "failed", "error": "Critical console errors on homepage (count=1) <script>", "screenshot": "x.png",
         "steps": [], "duration_ms": 1500},
    ],
}


def test_html_report_summarizes_and_escapes(tmp_path):
    path = tmp_path / "report.html"
    write_html_report(RESULTS, path)
    text = path.read_text(encoding="utf-8")
    assert "<strong>Total:</strong> 2" in text
    assert "TC3 Login Functionality" in text
    assert "&lt;script&gt;" in text
    assert "<script>" not in text
    assert 'src="x.png"' in text


def test_run_log_writes_header_once(tmp_path):
    log_path = tmp_path / "run_log.csv"
    artifacts = {"results": tmp_path / "results.json", "report": tmp_path / "report.html", "archive": tmp_path / "a.zip"}
    log_to_csv(log_path, "20250101_000000", "production", RESULTS, artifacts)
    log_to_csv(log_path, "20250101_000100", "staging", RESULTS, artifacts)
    with open(log_path, newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0][:4] == ["Timestamp", "Environment", "Passed", "Failed"]
    assert len(rows) == 3
    assert rows[2][1:4] == ["staging", "1", "1"]


def test_archive_skips_missing_files(tmp_path):
    present = tmp_path / "results.json"
    present.write_text("{}", encoding="utf-8")
    zip_path = tmp_path / "archive.zip"
    archive_files(zip_path, [present, tmp_path / "missing.html"])
    with zipfile.ZipFile(zip_path) as zf:
        assert zf.namelist() == ["results.json"]
