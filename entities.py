from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TimeUnit(str, Enum):
    DAY = "day"
    HOUR = "hour"


class Outcome(str, Enum):
    SKIP = "skip"
    SUCCESS = "success"
    GREEN_CARD = "greencard"
    YELLOW_CARD = "yellowcard"
    RED_CARD = "redcard"
    CRITICAL = "critical"


@dataclass(frozen=True)
class DefectReport:
    last_analyzed: str = ""
    lines_of_code_analyzed: Optional[int] = None
    defect_density: str = ""
    outstanding: Optional[int] = None
    fixed: Optional[int] = None
    newly_detected: Optional[int] = None
    eliminated: Optional[int] = None
    last_build_analyzed: str = ""


@dataclass(frozen=True)
class QuotaState:
    amount: int
    unit: TimeUnit
    quota_full: bool


@dataclass(frozen=True)
class Thresholds:
    yellow_card: int
    red_card: int


@dataclass(frozen=True)
class AnalysisResult:
    succeeded: bool
    output: str = ""
    result_dir: str = "cov-int"


@dataclass(frozen=True)
class ConfigurationEntity:
    github_account: str
    repo_name: str
    github_token: str
    github_api_url: str
    github_graphql_url: str
    bot_name: str
    commit_sha: str
    pr_number: str
    pr_author: str
    coverity_token: str
    coverity_email: str
    coverity_build_type: str
    thresholds: Thresholds
    quota_limit_hours: int
    redcard_fails: bool
    ci_server_url: str
    ci_commit_dir: str
    report_dir: str
    badge_path: str

    @property
    def coverity_project_url(self) -> str:
        return f"https://scan.coverity.com/projects/{self.github_account}-{self.repo_name}"

    @property
    def coverity_upload_url(self) -> str:
        return f"https://scan.coverity.com/builds?project={self.github_account}%2F{self.repo_name}"

    @property
    def status_context(self) -> str:
        return f"{self.bot_name}/pr-prebuild-coverity"

    @property
    def status_url(self) -> str:
        return f"{self.github_api_url}/statuses/{self.commit_sha}"

    @property
    def comments_url(self) -> str:
        return f"{self.github_api_url}/issues/{self.pr_number}/comments"

    @property
    def ci_report_url(self) -> str:
        return f"{self.ci_server_url}{self.repo_name}/ci/{self.ci_commit_dir}/"


@dataclass(frozen=True)
class RunSummary:
    target_file: Optional[str]
    report: DefectReport
    quota: Optional[QuotaState]
    build: Optional[AnalysisResult]
    uploaded: bool
    outcome: Outcome
