#!/usr/bin/env python3

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from config_manager import ConfigManager
from errors import ConfigurationError
from report import archive_files, count_status, log_to_csv, write_html_report
from scenarios import SCENARIO_NAMES, run_scenarios


logger = logging.getLogger("run_suite")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Storefront end-to-end checks")
    parser.add_argument("--env", help="Target environment (overrides TEST_ENV / APP_ENV)")
    parser.add_argument("--config", help="Path to environments.json (default: E2E_CONFIG or config/environments.json)")
    parser.add_argument(
        "--scenario",
        type=int,
        action="append",
        choices=sorted(SCENARIO_NAMES),
        help="Run only this test case (repeatable); default runs all",
    )
    parser.add_argument("--headful", action="store_true", help="Run browser headful for debugging")
    parser.add_argument("--parallel", action="store_true", help="Run checks concurrently in separate browser contexts")
    parser.add_argument("--verbose", action="store_true", help="Debug-level logging")
    parser.add_argument("--runs-dir", default="data/runs", help="Where run artifacts are written")
    parser.add_argument("--output-dir", default="test-outputs", help="Where CSV exports are written")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(asctime)s] [%(levelname)s] %(message)s",
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        manager = ConfigManager.from_path(args.config, cli_env=args.env)
        base_url = manager.get_full_base_url()
    except ConfigurationError as e:
        logger.error("✖ Configuration error: %s", e)
        return 2

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(args.runs_dir) / f"run_{timestamp}"
    run_dir.mkdir(parents=True, exist_ok=True)

    logger.info("🏃 Running checks against %s (%s)", manager.environment.name, base_url)
    results_json = asyncio.run(run_scenarios(
        manager,
        run_dir=run_dir,
        output_dir=Path(args.output_dir),
        scenarios=args.scenario,
        headless=(not args.headful),
        parallel=args.parallel,
    ))

    results_path = run_dir / "results.json"
    with open(results_path, "w", encoding="utf-8") as f:
        json.dump(results_json, f, indent=2)
    logger.info("📊 Results written: %s", results_path)

    report_path = run_dir / "report.html"
    write_html_report(results_json, report_path)
    logger.info("📝 HTML report: %s", report_path)

    archive_path = run_dir / "archive.zip"
    screenshots = sorted((run_dir / "screenshots").glob("*.png"))
    archive_files(archive_path, [results_path, report_path] + screenshots)
    logger.info("📦 Archive: %s", archive_path)

    artifacts = {"results": results_path, "report": report_path, "archive": archive_path}
    log_to_csv(run_dir / "run_log.csv", timestamp, manager.environment.key, results_json, artifacts)

    total = len(results_json["tests"])
    passed = count_status(results_json, "passed")
    failed = count_status(results_json, "failed")
    logger.info("✅ Done. Total: %d, Passed: %d, Failed: %d", total, passed, failed)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
