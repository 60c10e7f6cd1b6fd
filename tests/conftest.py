"""Shared fixtures: a complete run context and a sample Coverity project page."""

import pytest

from entities import ConfigurationEntity, Thresholds

SAMPLE_REPORT_HTML = """
<html>
  <head>
    <script>var labels = ["Outstanding", "Fixed"];</script>
  </head>
  <body>
    <table class="summary">
      <tr><td>Jun 03, 2019</td><td>Last Analyzed</td></tr>
      <tr><td>12,345</td><td>Lines of Code Analyzed</td></tr>
      <tr><td>0.49</td><td>Defect Density</td></tr>
    </table>
    <table class="status">
      <tr><td><span>{outstanding}</span></td><td><span>Outstanding</span></td></tr>
      <tr><td>7</td><td>Fixed</td></tr>
    </table>
    <table class="changes">
      <tr><td>2</td><td>Newly detected</td></tr>
      <tr><td>1</td><td>Eliminated</td></tr>
    </table>
    <dl>
      <dt>Last build analyzed</dt>
      <dd>
        {last_build}
      </dd>
    </dl>
  </body>
</html>
"""


def make_report_html(outstanding="6", last_build="3 days ago"):
    return SAMPLE_REPORT_HTML.format(outstanding=outstanding, last_build=last_build)


def make_config(tmp_path=None, **overrides):
    base = str(tmp_path) if tmp_path is not None else "."
    values = dict(
        github_account="nnsuite",
        repo_name="nnstreamer",
        github_token="gh-token",
        github_api_url="https://api.github.com/repos/nnsuite/nnstreamer",
        github_graphql_url="https://api.github.com/graphql",
        bot_name="cibot",
        commit_sha="abc123",
        pr_number="42",
        pr_author="octocat",
        coverity_token="cov-token",
        coverity_email="ci@example.com",
        coverity_build_type="meson",
        thresholds=Thresholds(yellow_card=10, red_card=20),
        quota_limit_hours=12,
        redcard_fails=True,
        ci_server_url="http://ci.example.com/",
        ci_commit_dir="20190603-abc123",
        report_dir=f"{base}/report",
        badge_path=f"{base}/badge/badge_coverity.json",
    )
    values.update(overrides)
    return ConfigurationEntity(**values)


@pytest.fixture()
def config(tmp_path):
    return make_config(tmp_path)
