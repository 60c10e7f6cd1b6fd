"""End-to-end runs with a fake analyzer and mocked HTTP."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from build_runner import COV_BUILD_SUCCESS, CoverityAnalyzer, UnsupportedBuildError
from entities import AnalysisResult, Outcome
from main import run
from tests.conftest import make_config, make_report_html

SOURCES = ["obsolete/x.c", "external/y.cpp", "src/z.cpp", "README.md"]


class FakeAnalyzer:
    def __init__(self, succeeded=True, error=None):
        self.succeeded = succeeded
        self.error = error
        self.calls = 0

    def run(self, config):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return AnalysisResult(succeeded=self.succeeded, output=COV_BUILD_SUCCESS if self.succeeded else "")


def _session(html):
    session = MagicMock()
    session.get.return_value = MagicMock(ok=True, status_code=200, text=html)
    return session


def _run(config, analyzer, files, html):
    with patch("reporter.requests.post", return_value=MagicMock(ok=True, status_code=201)) as post, patch(
        "main.upload_results", return_value=True
    ) as upload:
        summary = run(config, analyzer, files, _session(html))
    return summary, post, upload


def _posted_urls(post):
    return [call[0][0] for call in post.call_args_list]


def test_no_source_files_is_skipped_without_a_scan(config):
    analyzer = FakeAnalyzer()

    summary, post, upload = _run(config, analyzer, ["README.md", "docs/a.txt"], make_report_html())

    assert summary.outcome is Outcome.SKIP
    assert summary.target_file is None
    assert analyzer.calls == 0
    upload.assert_not_called()
    assert _posted_urls(post) == [config.status_url]
    assert post.call_args[1]["json"]["state"] == "success"


def test_scan_runs_once_on_the_first_source_file(config):
    analyzer = FakeAnalyzer()

    summary, _, upload = _run(config, analyzer, SOURCES, make_report_html(outstanding="5"))

    assert summary.target_file == "src/z.cpp"
    assert analyzer.calls == 1
    assert summary.uploaded
    upload.assert_called_once()


@pytest.mark.parametrize(
    "outstanding, outcome, state, comments",
    [
        ("0", Outcome.SUCCESS, "success", 0),
        ("5", Outcome.GREEN_CARD, "success", 0),
        ("15", Outcome.YELLOW_CARD, "success", 1),
        ("25", Outcome.CRITICAL, "failure", 1),
    ],
)
def test_outcome_is_reported(config, outstanding, outcome, state, comments):
    summary, post, _ = _run(config, FakeAnalyzer(), SOURCES, make_report_html(outstanding=outstanding))

    assert summary.outcome is outcome
    urls = _posted_urls(post)
    assert urls[0] == config.status_url
    assert post.call_args_list[0][1]["json"]["state"] == state
    assert urls.count(config.comments_url) == comments


def test_full_quota_skips_the_build_but_still_reports(config):
    analyzer = FakeAnalyzer()

    summary, post, upload = _run(config, analyzer, SOURCES, make_report_html(outstanding="15", last_build="5 hours ago"))

    assert summary.quota.quota_full
    assert analyzer.calls == 0
    upload.assert_not_called()
    assert summary.outcome is Outcome.YELLOW_CARD
    assert config.comments_url in _posted_urls(post)


def test_unsupported_build_still_reports(config):
    analyzer = FakeAnalyzer(error=UnsupportedBuildError("cmake"))

    summary, post, upload = _run(config, analyzer, SOURCES, make_report_html(outstanding="0"))

    assert summary.build is None
    upload.assert_not_called()
    assert summary.outcome is Outcome.SUCCESS
    assert _posted_urls(post) == [config.status_url]


def test_failed_build_is_not_uploaded(config):
    summary, _, upload = _run(config, FakeAnalyzer(succeeded=False), SOURCES, make_report_html())

    assert not summary.build.succeeded
    assert not summary.uploaded
    upload.assert_not_called()


def test_unreadable_report_is_skipped(config):
    summary, post, _ = _run(config, FakeAnalyzer(), SOURCES, "<html><body>maintenance</body></html>")

    assert summary.report.outstanding is None
    assert summary.quota.quota_full
    assert summary.outcome is Outcome.SKIP
    assert _posted_urls(post) == [config.status_url]


def test_badge_is_written_for_the_scan(config):
    _run(config, FakeAnalyzer(), SOURCES, make_report_html(outstanding="6"))

    with open(config.badge_path) as f:
        assert json.load(f)["message"] == "6 defects"


def test_unwritable_report_dir_still_reports(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    config = make_config(tmp_path, report_dir=str(blocker / "report"))

    def fake_run(args, **kwargs):
        stdout = COV_BUILD_SUCCESS if args[0] == "cov-build" else ""
        return subprocess.CompletedProcess(args=args, returncode=0, stdout=stdout, stderr="")

    with patch("build_runner.shutil.which", return_value="/usr/bin/tool"), patch(
        "build_runner.subprocess.run", side_effect=fake_run
    ):
        summary, post, upload = _run(
            config, CoverityAnalyzer(str(tmp_path)), ["src/a.c"], make_report_html(outstanding="25")
        )

    assert summary.build.succeeded
    assert summary.outcome is Outcome.CRITICAL
    assert _posted_urls(post)[0] == config.status_url
    assert post.call_args_list[0][1]["json"]["state"] == "failure"


def test_upload_uses_the_analyzer_capture_directory(config):
    class RelocatedAnalyzer(FakeAnalyzer):
        def run(self, config):
            return AnalysisResult(succeeded=True, output=COV_BUILD_SUCCESS, result_dir="/work/project/cov-int")

    _, _, upload = _run(config, RelocatedAnalyzer(), SOURCES, make_report_html())

    assert upload.call_args[0][1] == "/work/project/cov-int"
