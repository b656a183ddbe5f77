import json
import os
import sys
import time
from typing import Any, Dict, List

from workspace_api.google.client import GoogleClient
from workspace_api.okta.client import OktaClient
from workspace_api.utils.logger import app_logger as logger
from workspace_api.utils.logger import set_level
from workspace_api.utils.settings import Settings


def generate_google_report(google: GoogleClient) -> List[Dict[str, Any]]:
    start_time = time.time()
    reports = google.admin.generate_role_report()
    user_count = sum(len(report["users"]) for report in reports)
    logger.info(
        f"Google role report generated in {time.time() - start_time:.2f}s ({len(reports)} roles, {user_count} assignments)"
    )
    return reports


def generate_okta_report(okta: OktaClient) -> List[Dict[str, Any]]:
    start_time = time.time()
    reports = okta.roles.generate_role_report()
    logger.info(
        f"Okta role report generated in {time.time() - start_time:.2f}s ({len(reports)} roles)"
    )
    return reports


def write_report(path: str, report: Dict[str, Any]) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        json.dump(report, f, indent=4)
    logger.info(f"Report saved to {path}")


def run(settings: Settings) -> int:
    report = {}
    failed = 0

    try:
        google = GoogleClient(settings)
        report["google"] = generate_google_report(google)
        if settings.REPORT_TO_SHEET:
            spreadsheet = google.admin.save_role_report(report["google"])
            logger.info(f"Google role report saved to spreadsheet {spreadsheet['spreadsheetId']}")
    except Exception as e:
        failed += 1
        logger.error(f"Error generating Google role report: {e}")

    if settings.okta_configured:
        try:
            report["okta"] = generate_okta_report(OktaClient(settings))
        except Exception as e:
            failed += 1
            logger.error(f"Error generating Okta role report: {e}")
    else:
        logger.debug("Okta is not configured, skipping")

    if report:
        write_report(settings.REPORT_OUTPUT, report)

    if failed > 0:
        logger.warning(f"Some reports failed ({failed})")
        return 1
    return 0


def main():
    settings = Settings()
    set_level(settings.LOG_LEVEL)
    sys.exit(run(settings))


if __name__ == "__main__":
    main()
