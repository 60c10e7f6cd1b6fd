import os
from typing import Dict, Optional
from dotenv import dotenv_values
from entities import ConfigurationEntity, Thresholds

DEFAULTS: Dict[str, str] = {
    "github_graphql_url": "https://api.github.com/graphql",
    "bot_name": "cibot",
    "coverity_build_type": "meson",
    "quota_limit_hours": "12",
    "redcard_fails": "true",
    "report_dir": "../report",
    "badge_path": "badge/badge_coverity.json",
}


class ConfigurationError(ValueError):
    pass


def _to_int(key: str, value: Optional[str]) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")


def _to_bool(value: Optional[str]) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def build_thresholds(yellow_raw: Optional[str], red_raw: Optional[str]) -> Thresholds:
    yellow_card = _to_int("coverity_yellow_card", yellow_raw)
    red_card = _to_int("coverity_red_card", red_raw)

    if yellow_card < 0 or red_card < 0:
        raise ConfigurationError("defect thresholds must not be negative")
    if yellow_card > red_card:
        raise ConfigurationError(
            f"coverity_yellow_card ({yellow_card}) must not exceed coverity_red_card ({red_card})"
        )

    return Thresholds(yellow_card=yellow_card, red_card=red_card)


class ConfigurationMapper:
    """Loads ``.env.<env>`` and lets upper-case environment variables override it.

    CI jobs usually export the credentials, so ``GITHUB_TOKEN`` wins over
    ``github_token`` from the file.
    """

    def __init__(self, env: str, environ: Optional[Dict[str, str]] = None) -> None:

        env = env.lower()
        environ = os.environ if environ is None else environ

        __config_raw: Dict[str, Optional[str]] = dict(DEFAULTS)
        __config_raw.update(dotenv_values(".env.{}".format(env)))

        def get(key: str) -> str:
            value = environ.get(key.upper(), __config_raw.get(key))
            return "" if value is None else str(value)

        self.config = ConfigurationEntity(
            github_account=get("github_account"),
            repo_name=get("repo_name"),
            github_token=get("github_token"),
            github_api_url=get("github_api_url").rstrip("/"),
            github_graphql_url=get("github_graphql_url"),
            bot_name=get("bot_name"),
            commit_sha=get("commit_sha"),
            pr_number=get("pr_number"),
            pr_author=get("pr_author"),
            coverity_token=get("coverity_token"),
            coverity_email=get("coverity_email"),
            coverity_build_type=get("coverity_build_type"),
            thresholds=build_thresholds(get("coverity_yellow_card"), get("coverity_red_card")),
            quota_limit_hours=_to_int("quota_limit_hours", get("quota_limit_hours")),
            redcard_fails=_to_bool(get("redcard_fails")),
            ci_server_url=get("ci_server_url"),
            ci_commit_dir=get("ci_commit_dir"),
            report_dir=get("report_dir"),
            badge_path=get("badge_path"),
        )
