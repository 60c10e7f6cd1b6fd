"""Runs the Coverity build capture over the project and uploads the result.

Coverity analyses the whole tree at once, so however many C/C++ files a
commit touches, one instrumented build is enough.

The CI server needs the Coverity package on ``PATH``, e.g.::

    tar xvzf cov-analysis-linux64-2019.03.tar.gz -C /opt
    export PATH=/opt/cov-analysis-linux64-2019.03/bin:$PATH
"""

import logging
import os
import shutil
import subprocess
import tarfile
from datetime import datetime
from typing import Iterable, List, Optional, Protocol

import requests

from entities import AnalysisResult, ConfigurationEntity

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".c", ".cc", ".cpp", ".c++")
EXCLUDED_PREFIXES = ("obsolete/", "external/")

COV_BUILD_SUCCESS = "The cov-build utility completed successfully"
COV_RESULT_DIR = "cov-int"
COV_ARCHIVE = "cov_project.tgz"
BUILD_DIR = "build-coverity"
REQUIRED_COMMANDS = ("git", "cov-configure", "cov-build", "meson", "ninja", "ccache")


class UnsupportedBuildError(RuntimeError):
    pass


class BuildAnalyzer(Protocol):
    def run(self, config: ConfigurationEntity) -> AnalysisResult:
        ...


def get_changed_files(repo_dir: str = ".", revision: str = "HEAD") -> List[str]:
    """Files added, modified, renamed or copied by ``revision``."""
    try:
        output = subprocess.run(
            ["git", "show", "--pretty=format:", "--name-only", "--diff-filter=AMRC", revision],
            cwd=repo_dir,
            capture_output=True,
            text=True,
            check=True,
        ).stdout
    except (subprocess.CalledProcessError, OSError) as e:
        logger.error("Could not list the changed files of %s: %s", revision, e)
        return []

    return [line.strip() for line in output.splitlines() if line.strip()]


def is_scan_candidate(path: str) -> bool:
    if path.startswith(EXCLUDED_PREFIXES):
        return False
    return path.endswith(SOURCE_SUFFIXES)


def select_scan_target(changed_files: Iterable[str]) -> Optional[str]:
    for path in changed_files:
        if is_scan_candidate(path):
            logger.debug("(%s) is a C/C++ source file", path)
            return path
        logger.debug("coverity does not examine (%s)", path)
    return None


class CoverityAnalyzer:
    """Drives ``cov-build`` around a meson/ninja build of the working tree."""

    def __init__(self, work_dir: str = ".") -> None:
        self.work_dir = work_dir

    def _call(self, args: List[str]) -> subprocess.CompletedProcess:
        logger.debug("%s", " ".join(args))
        return subprocess.run(args, cwd=self.work_dir, capture_output=True, text=True)

    def check_dependencies(self) -> None:
        missing = [cmd for cmd in REQUIRED_COMMANDS if shutil.which(cmd) is None]
        if missing:
            raise UnsupportedBuildError("missing commands: {}".format(", ".join(missing)))

        # An out-of-date Coverity can produce wrong results, so keep its version in the log.
        if shutil.which("coverity"):
            logger.info("%s", self._call(["coverity", "--version"]).stdout.strip())

    def configure(self) -> None:
        # https://community.synopsys.com/s/article/While-using-ccache-prefix-to-build-project-c-primary-source-files-are-not-captured
        self._call(["cov-configure", "--comptype", "prefix", "--compiler", "ccache"])
        self._call(["cov-configure", "--comptype", "gcc", "--compiler", "cc"])
        self._call(["cov-configure", "--comptype", "g++", "--compiler", "c++"])

    def run(self, config: ConfigurationEntity) -> AnalysisResult:
        if config.coverity_build_type != "meson":
            raise UnsupportedBuildError(
                "build type '{}' is not supported, only meson is".format(config.coverity_build_type)
            )

        self.check_dependencies()
        self.configure()

        shutil.rmtree(os.path.join(self.work_dir, BUILD_DIR), ignore_errors=True)
        logger.debug("Generating config files with meson")
        self._call(["meson", BUILD_DIR])

        logger.debug("Compiling the source files under cov-build")
        completed = self._call(["cov-build", "--dir", COV_RESULT_DIR, "ninja", "-C", BUILD_DIR])
        output = completed.stdout + completed.stderr

        try:
            os.makedirs(config.report_dir, exist_ok=True)
            with open(os.path.join(config.report_dir, "coverity_build_result.txt"), "w") as f:
                f.write(output)
        except OSError as e:
            logger.warning("Could not save the cov-build output: %s", e)

        return AnalysisResult(
            succeeded=COV_BUILD_SUCCESS in output,
            output=output,
            result_dir=os.path.join(self.work_dir, COV_RESULT_DIR),
        )


def run_build(config: ConfigurationEntity, analyzer: BuildAnalyzer) -> Optional[AnalysisResult]:
    try:
        result = analyzer.run(config)
    except UnsupportedBuildError as e:
        logger.warning("Skipping the build step (cov-build): %s", e)
        return None

    if result.succeeded:
        logger.info("cov-build: PASSED")
    else:
        logger.warning("cov-build: FAILED")
    return result


def create_archive(result_dir: str = COV_RESULT_DIR, archive: str = COV_ARCHIVE) -> str:
    with tarfile.open(archive, "w:gz") as tar:
        tar.add(result_dir, arcname=os.path.basename(os.path.normpath(result_dir)))
    return archive


def upload_results(
    config: ConfigurationEntity,
    result_dir: str = COV_RESULT_DIR,
    session: Optional[requests.Session] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Submits the captured build to scan.coverity.com.

    Coverity answers a bad submission with a normal page, so only a transport
    failure is reported as failure here.
    """
    version = (now or datetime.now()).strftime("%Y%m%d-%H%M")
    description = f"{version}-coverity"

    try:
        archive = create_archive(result_dir)
    except OSError as e:
        logger.error("Could not archive %s: %s", result_dir, e)
        return False

    http = session or requests
    logger.debug("Uploading %s to %s as version %s", archive, config.coverity_upload_url, version)
    try:
        with open(archive, "rb") as f:
            response = http.post(
                config.coverity_upload_url,
                data={
                    "token": config.coverity_token,
                    "email": config.coverity_email,
                    "version": version,
                    "description": description,
                },
                files={"file": (os.path.basename(archive), f, "application/gzip")},
            )
    except (requests.RequestException, OSError) as e:
        logger.error("The coverity upload failed: %s", e)
        return False

    try:
        os.makedirs(config.report_dir, exist_ok=True)
        with open(os.path.join(config.report_dir, "coverity_curl_output.txt"), "w") as f:
            f.write(response.text)
    except OSError as e:
        logger.warning("Could not save the upload response: %s", e)

    if not response.ok:
        logger.warning("scan.coverity.com answered the upload with HTTP %s", response.status_code)
    logger.info("Please visit %s", config.coverity_project_url)
    return True
