import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import aiohttp
import requests
from python_graphql_client import GraphqlClient

from entities import ConfigurationEntity, DefectReport, Outcome, Thresholds

logger = logging.getLogger(__name__)


def build_authentication_header(token: str) -> Dict[str, str]:
    return {"authorization": f"Bearer {token}", "accept": "application/vnd.github+json"}


def build_graphql_client(url: str, token: str) -> GraphqlClient:
    headers = build_authentication_header(token)
    client = GraphqlClient(endpoint=url, headers=headers)

    return client


def get_pr_author_query(client: GraphqlClient, owner: str, name: str, number: int) -> Any:
    query = """
        query GetPullRequestAuthor($owner: String!, $name: String!, $number: Int!) {
            repository(owner: $owner, name: $name) {
                pullRequest(number: $number) {
                    author {
                        login
                    }
                }
            }
        }
    """
    variables = {"owner": owner, "name": name, "number": number}

    data = asyncio.run(client.execute_async(query=query, variables=variables))

    return data


def resolve_pr_author(config: ConfigurationEntity) -> str:
    if config.pr_author:
        return config.pr_author
    if not (config.github_token and config.pr_number.isdigit()):
        return ""

    client = build_graphql_client(config.github_graphql_url, config.github_token)
    try:
        data = get_pr_author_query(client, config.github_account, config.repo_name, int(config.pr_number))
        return data["data"]["repository"]["pullRequest"]["author"]["login"]
    except (aiohttp.ClientError, OSError, KeyError, TypeError) as e:
        logger.warning("Could not look up the author of PR #%s: %s", config.pr_number, e)
        return ""


def report_status(token: str, state: str, context: str, description: str, target_url: str, status_url: str) -> bool:
    payload = {"state": state, "context": context, "description": description, "target_url": target_url}
    try:
        response = requests.post(status_url, json=payload, headers=build_authentication_header(token))
    except requests.RequestException as e:
        logger.error("Could not report the %s status to %s: %s", state, status_url, e)
        return False

    if not response.ok:
        logger.error("Status report to %s returned HTTP %s", status_url, response.status_code)
        return False
    return True


def post_comment(token: str, body: str, comments_url: str) -> bool:
    try:
        response = requests.post(comments_url, json={"body": body}, headers=build_authentication_header(token))
    except requests.RequestException as e:
        logger.error("Could not post the comment to %s: %s", comments_url, e)
        return False

    if not response.ok:
        logger.error("Comment to %s returned HTTP %s", comments_url, response.status_code)
        return False
    return True


def _cell(value: Optional[Any]) -> str:
    return "" if value is None else str(value)


def format_defect_table(report: DefectReport) -> str:
    rows = [
        ("Last Analyzed", report.last_analyzed),
        ("Lines of Code Analyzed", report.lines_of_code_analyzed),
        ("Defect Density", report.defect_density),
        ("Outstanding Defects", report.outstanding),
        ("Newly Detected Defects", report.newly_detected),
        ("Eliminated Defects", report.eliminated),
    ]
    lines = [
        "#### :orange_book: Coverity Scan Summary:",
        "",
        "|Content |Description |",
        "|-------------------|-------------------|",
    ]
    lines.extend(f"|{name} |{_cell(value)}|" for name, value in rows)
    return "\n".join(lines) + "\n"


def format_defect_icons(outstanding: Optional[int], thresholds: Thresholds) -> str:
    count = outstanding or 0
    icons = " ".join(":mask:" if i <= thresholds.yellow_card else ":rage:" for i in range(1, count + 1))
    lines = [
        f"#### :orange_book: Outstanding Defects: {_cell(outstanding)}",
        icons,
        "",
        f"* :mask: : # of the yellow cards is {thresholds.yellow_card}.",
        f"* :rage: : # of the red cards is {thresholds.red_card}.",
        "* Note that # of the red cards includes # of the yellow cards.",
    ]
    return "\n".join(lines) + "\n"


def _comment(author: str, tag: str, headline: str, report: DefectReport, config: ConfigurationEntity) -> str:
    return (
        f":octocat: **{config.bot_name}**: {author}, **Coverity Report**, **[{tag}]**: {headline} "
        f"For more details, please visit {config.coverity_project_url}.\n\n"
        f"{format_defect_table(report)}\n\n"
        f"{format_defect_icons(report.outstanding, config.thresholds)}\n"
    )


def build_messages(
    outcome: Outcome, report: DefectReport, config: ConfigurationEntity, author: str = ""
) -> Tuple[str, str, Optional[str]]:
    """Returns (state, status description, comment body or None) for ``outcome``."""
    outstanding = _cell(report.outstanding)
    red_card = config.thresholds.red_card

    if outcome is Outcome.SKIP:
        return "success", "Skipped. This module did not inspect your PR because it does not include source code files.", None
    if outcome is Outcome.SUCCESS:
        return "success", "Successfully coverity has done the static analysis.", None
    if outcome is Outcome.GREEN_CARD:
        return (
            "success",
            f"Keep It Up! Green Card: The number of outstanding defects ({outstanding}) is low, but not zero, yet.",
            None,
        )
    if outcome is Outcome.YELLOW_CARD:
        return (
            "success",
            f"Warning [YELLOWCARD]: The number of outstanding defects is {outstanding}.",
            _comment(author, "YELLOWCARD", f"Ooops. The number of outstanding defects is {outstanding}.", report, config),
        )
    if outcome is Outcome.RED_CARD:
        return (
            "success",
            f"Warning [REDCARD]: The number of outstanding defects is {outstanding}.",
            _comment(author, "REDCARD", f"Ooops. The number of outstanding defects is {outstanding}.", report, config),
        )
    return (
        "failure",
        f"Ooops. The number of outstanding defects ({outstanding}) exceeds {red_card}. "
        f"Please fix outstanding defects less than {red_card}.",
        _comment(
            author,
            "CRITICAL",
            f"Ooops. The number of outstanding defects exceeds {red_card}. "
            f"Please fix outstanding defects until less than {red_card}.",
            report,
            config,
        ),
    )


def publish(outcome: Outcome, report: DefectReport, config: ConfigurationEntity) -> Outcome:
    """Posts the status (and comment, when there is one) for ``outcome``.

    Returns the outcome actually reported, which is CRITICAL for a red card
    when ``redcard_fails`` is set.
    """
    if outcome is Outcome.RED_CARD and config.redcard_fails:
        outcome = Outcome.CRITICAL
    logger.info("check_result is (%s)", outcome.value)

    author = resolve_pr_author(config) if outcome in (Outcome.YELLOW_CARD, Outcome.RED_CARD, Outcome.CRITICAL) else ""
    state, description, comment = build_messages(outcome, report, config, author)

    target_url = config.ci_report_url if outcome is Outcome.CRITICAL else config.coverity_project_url
    report_status(config.github_token, state, config.status_context, description, target_url, config.status_url)

    if comment is not None:
        post_comment(config.github_token, comment, config.comments_url)

    return outcome
