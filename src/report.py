import csv
import html
import json
import zipfile
from pathlib import Path


def count_status(results_json: dict, status: str) -> int:
    return sum(1 for r in results_json.get("tests", []) if r.get("status") == status)


def write_html_report(results_json: dict, html_path: Path):
    passed = count_status(results_json, "passed")
    failed = count_status(results_json, "failed")
    total = len(results_json.get("tests", []))
    env = results_json.get("environment", {})

    report = f"""
<html><head><title>Storefront E2E Report</title>
<style>
body {{ font-family: Arial, sans-serif; padding: 20px; }}
.summary {{ margin-bottom: 16px; }}
.pass {{ color: #0a7b44; }}
.fail {{ color: #b00020; }}
pre {{ background: #f6f8fa; padding: 12px; border-radius: 6px; overflow: auto; }}
</style>
</head><body>
  <h1>Storefront E2E Report</h1>
  <div class="summary">
    <strong>Environment:</strong> {html.escape(str(env.get('name', '')))} ({html.escape(str(env.get('base_url', '')))})<br />
    <strong>Total:</strong> {total} &nbsp; <strong class="pass">Passed:</strong> {passed} &nbsp; <strong class="fail">Failed:</strong> {failed}
  </div>
  <hr />
  {''.join(render_test_result(tr) for tr in results_json.get('tests', []))}
</body></html>
"""
    with open(html_path, "w", encoding="utf-8") as f:
        f.write(report)


def render_test_result(test_result: dict) -> str:
    status_class = "pass" if test_result.get("status") == "passed" else "fail"
    name = html.escape(test_result.get("name", "Unnamed Test"))
    scenario = html.escape(f"TC{test_result.get('scenario', '?')} {test_result.get('scenario_name', '')}".strip())
    error = test_result.get("error", "")
    screenshot = test_result.get("screenshot", "")
    steps_rendered = html.escape(json.dumps(test_result.get("steps", []), indent=2))
    img_tag = f"<div><img src=\"{html.escape(screenshot)}\" style=\"max-width: 100%; border: 1px solid #ddd;\" /></div>" if screenshot else ""
    error_block = f"<pre>{html.escape(error)}</pre>" if error else ""
    return f"""
  <section>
    <h3 class="{status_class}">{scenario}: {name} — {test_result.get('status','unknown').upper()} ({test_result.get('duration_ms', 0)}ms)</h3>
    <details>
      <summary>Steps</summary>
      <pre>{steps_rendered}</pre>
    </details>
    {img_tag}
    {error_block}
  </section>
  <hr />
"""


def archive_files(zip_path: Path, files: list[Path]):
    with zipfile.ZipFile(zip_path, "w") as zf:
        for f in files:
            if f.exists():
                zf.write(f, arcname=f.name)


def log_to_csv(log_path: Path, timestamp: str, environment: str, results_json: dict, artifacts: dict):
    csv_exists = log_path.exists()
    with open(log_path, "a", newline="") as csvfile:
        writer = csv.writer(csvfile)
        if not csv_exists:
            writer.writerow(["Timestamp", "Environment", "Passed", "Failed", "Results", "Report", "Archive"])
        writer.writerow([
            timestamp,
            environment,
            count_status(results_json, "passed"),
            count_status(results_json, "failed"),
            str(artifacts.get("results")),
            str(artifacts.get("report")),
            str(artifacts.get("archive")),
        ])
