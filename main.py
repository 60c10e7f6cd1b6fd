import logging
import os
from typing import Iterable, Optional

import requests

from build_runner import (
    BuildAnalyzer,
    CoverityAnalyzer,
    get_changed_files,
    run_build,
    select_scan_target,
    upload_results,
)
from classifier import classify
from config import ConfigurationMapper
from entities import ConfigurationEntity, DefectReport, RunSummary
from models_storage import write_badge
from quota import evaluate_quota
from report_parser import fetch_report, parse_defect_report
from reporter import publish

logger = logging.getLogger(__name__)


def main():
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    config = ConfigurationMapper(os.getenv("ENV", "local")).config

    run(config)


def run(
    config: ConfigurationEntity,
    analyzer: Optional[BuildAnalyzer] = None,
    changed_files: Optional[Iterable[str]] = None,
    session: Optional[requests.Session] = None,
) -> RunSummary:
    logger.info("[MODULE] %s: Check defects and security issues in C/C++ source codes with coverity", config.status_context)

    if changed_files is None:
        changed_files = get_changed_files()

    report = DefectReport()
    quota = None
    build = None
    uploaded = False

    target_file = select_scan_target(changed_files)
    if target_file is not None:
        report = parse_defect_report(fetch_report(config.coverity_project_url, session))
        quota = evaluate_quota(report.last_build_analyzed, config.quota_limit_hours)
        write_badge(config.badge_path, report.outstanding)

        if quota.quota_full:
            logger.info("The build quota of the coverity scan is exceeded, skipping the scan")
        else:
            build = run_build(config, analyzer or CoverityAnalyzer())
            if build is not None and build.succeeded:
                uploaded = upload_results(config, build.result_dir, session=session)
            else:
                logger.info("Skipping the upload step of the coverity module")
    else:
        logger.info("No C/C++ source file in scope for coverity")

    logger.info(
        "Status (outstanding_defects: %s, yellow_card: %s, red_card: %s)",
        report.outstanding,
        config.thresholds.yellow_card,
        config.thresholds.red_card,
    )
    outcome = classify(report.outstanding, config.thresholds.yellow_card, config.thresholds.red_card)
    outcome = publish(outcome, report, config)

    return RunSummary(
        target_file=target_file,
        report=report,
        quota=quota,
        build=build,
        uploaded=uploaded,
        outcome=outcome,
    )


if __name__ == "__main__":
    main()
