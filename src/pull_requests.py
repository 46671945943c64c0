import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from artifacts import file_timestamp


logger = logging.getLogger(__name__)

CSV_HEADER = ["PR Name", "Created Date", "Author"]

ROW_SELECTORS = [
    ".js-issue-row",
    '[data-testid="issue-row"]',
    ".Box-row.js-issue-row",
    ".issue-row",
]

# Any of these appearing means the list has rendered
LIST_READY_SELECTORS = (".js-issue-row", '[data-testid="issue-row"]', ".Box-row")

# Runs in the page; returns raw strings, formatting happens in Python.
EXTRACT_ROWS_JS = """
(rowSelectors) => {
  let rows = [];
  for (const sel of rowSelectors) {
    rows = Array.from(document.querySelectorAll(sel));
    if (rows.length > 0) break;
  }
  return rows.map((row) => {
    const title = row.querySelector('a[data-hovercard-type="pull_request"]')
      || row.querySelector('.js-navigation-open')
      || row.querySelector('a[href*="/pull/"]');
    const author = row.querySelector('[data-hovercard-type="user"]')
      || row.querySelector('a[href*="github.com/"]:not([href*="/pull/"])')
      || row.querySelector('.author');
    const date = row.querySelector('relative-time')
      || row.querySelector('time')
      || row.querySelector('[datetime]');
    return {
      title: title ? (title.textContent || '').trim() : '',
      author: author ? (author.textContent || '').trim() : '',
      datetime: date ? (date.getAttribute('datetime') || '') : '',
      dateText: date ? (date.textContent || '').trim() : '',
    };
  });
}
"""


@dataclass(frozen=True)
class PullRequestRecord:
    title: str
    author: str
    created_date: str


def format_created_date(iso_value: str, fallback_text: str = "") -> str:
    """Render an ISO timestamp as e.g. 'Mar 4, 2025'."""
    if iso_value:
        try:
            dt = datetime.fromisoformat(iso_value.replace("Z", "+00:00"))
            return f"{dt.strftime('%b')} {dt.day}, {dt.year}"
        except ValueError:
            logger.debug("→ Unparseable datetime attribute: %s", iso_value)
    return fallback_text or "Unknown Date"


def records_from_rows(rows: list[dict]) -> list[PullRequestRecord]:
    records = []
    for row in rows:
        title = (row.get("title") or "").strip()
        author = (row.get("author") or "").strip()
        if not title or not author:
            continue
        records.append(PullRequestRecord(
            title=title,
            author=author,
            created_date=format_created_date(row.get("datetime") or "", (row.get("dateText") or "").strip()),
        ))
    return records


async def extract_pull_requests(page) -> list[PullRequestRecord]:
    rows = await page.evaluate(EXTRACT_ROWS_JS, ROW_SELECTORS)
    records = records_from_rows(rows or [])
    logger.info("PR extraction completed: %d rows, %d records", len(rows or []), len(records))
    return records


def to_csv(records: list[PullRequestRecord]) -> str:
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerow(CSV_HEADER)
    # csv doubles embedded quotes under QUOTE_ALL
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for r in records:
        writer.writerow([r.title, r.created_date, r.author])
    return buf.getvalue()


def parse_csv(text: str) -> list[PullRequestRecord]:
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header != CSV_HEADER:
        raise ValueError(f"Unexpected CSV header: {header}")
    return [PullRequestRecord(title=row[0], created_date=row[1], author=row[2]) for row in reader if row]


def write_csv(records: list[PullRequestRecord], output_dir: Path, prefix: str = "appwrite-pull-requests") -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{prefix}-{file_timestamp()}.csv"
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(to_csv(records))
    logger.info("CSV report written: %s (%d rows, %d bytes)", path, len(records), path.stat().st_size)
    return path


def format_summary(records: list[PullRequestRecord], repository: str, csv_path: Path, limit: int = 10) -> str:
    lines = [
        "=== OPEN PULL REQUESTS SUMMARY ===",
        f"Repository: {repository}",
        f"Total Open PRs: {len(records)}",
        f"Generated: {datetime.now().strftime('%Y-%m-%d')}",
        f"CSV File: {csv_path}",
        "",
        f"First {min(limit, len(records))} Pull Requests:",
    ]
    for i, r in enumerate(records[:limit], start=1):
        lines.append(f"{i}. {r.title}")
        lines.append(f"   Author: {r.author} | Created: {r.created_date}")
    return "\n".join(lines)
