"""
Jib sync map client.

Runs the Jib Maven or Gradle plugin in its sync-map mode and turns the
JSON it prints into a Sync Map. The plugin output is scraped from stdout:
the payload is the single line following a "BEGIN JIB JSON" marker, and
it is not strictly JSON-escaped, so backslashes are doubled before decoding.
"""

import json
import logging
import os
import re
import subprocess
from typing import Callable, Mapping, Optional, Sequence

from ..files import file_mod_time, to_abs
from ..storage.models import SyncEntry, SyncMap
from .models import BuilderType, JibArtifact, JSONSyncEntry, JSONSyncMap

logger = logging.getLogger(__name__)


class RecomputationError(Exception):
    """Raised when a sync map cannot be computed for a workspace."""


class ProcessError(RecomputationError):
    """Raised when the build tool cannot be run or exits with an error."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ParseError(RecomputationError):
    """Raised when the build tool output does not contain a usable sync map."""


# Syncmap output is "BEGIN JIB JSON: SYNCMAP/1" from jib 2.0.0 onwards
SYNC_MAP_PATTERN = re.compile(r"BEGIN JIB JSON(?:: SYNCMAP/1)?\r?\n(\{.*\})")

MINIMUM_JIB_MAVEN_VERSION = "1.4.0"
MINIMUM_JIB_GRADLE_VERSION = "1.4.0"

MAVEN_BUILD_FILES = ("pom.xml",)
GRADLE_BUILD_FILES = (
    "build.gradle",
    "build.gradle.kts",
    "settings.gradle",
    "settings.gradle.kts",
)
GRADLE_PROJECT_FILES = GRADLE_BUILD_FILES + ("gradle.properties",)


def parse_sync_map_output(
    stdout: str,
    mod_time: Callable[[str], int] = file_mod_time,
) -> SyncMap:
    """
    Parse the sync map printed by the Jib plugin.

    Args:
        stdout: Full standard output of the build tool
        mod_time: Modification time lookup for the source files

    Returns:
        Sync Map with the current modification time of every source

    Raises:
        ParseError: If the marker is missing or the payload is malformed
        StatError: If a source file cannot be stat'ed
    """
    match = SYNC_MAP_PATTERN.search(stdout)
    if match is None:
        raise ParseError("failed to get Jib sync data")

    line = match.group(1).replace("\\", "\\\\")
    try:
        payload = JSONSyncMap.from_payload(json.loads(line))
    except (ValueError, KeyError, TypeError) as e:
        raise ParseError(f"malformed Jib sync data: {e}") from e

    sync_map: SyncMap = {}
    _add_entries(sync_map, payload.direct, True, mod_time)
    _add_entries(sync_map, payload.generated, False, mod_time)

    logger.debug(
        f"Parsed sync map: {len(payload.direct)} direct, "
        f"{len(payload.generated)} generated entries"
    )
    return sync_map


def _add_entries(
    sync_map: SyncMap,
    entries: Sequence[JSONSyncEntry],
    is_direct: bool,
    mod_time: Callable[[str], int],
) -> None:
    for entry in entries:
        src = to_abs(entry.src)
        sync_map[src] = SyncEntry(
            destinations=(entry.dest,),
            mod_time=mod_time(src),
            is_direct=is_direct,
        )


class SyncMapClient:
    """
    Computes Sync Maps by running the Jib plugin of a workspace.

    Handles:
    - Maven / Gradle detection from the workspace contents
    - Wrapper scripts (mvnw, gradlew) in preference to installed tools
    - Timeouts and non-zero exits of the build tool

    Usage:
        client = SyncMapClient(timeout=600.0)

        sync_map = client.compute_sync_map("/src/app", JibArtifact())
        build_files = client.list_build_definitions("/src/app", JibArtifact())
    """

    def __init__(
        self,
        maven_command: str = "mvn",
        gradle_command: str = "gradle",
        timeout: Optional[float] = None,
        env: Optional[Mapping[str, str]] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        """
        Initialize sync map client.

        Args:
            maven_command: Maven executable used when the workspace has no mvnw
            gradle_command: Gradle executable used when the workspace has no gradlew
            timeout: Maximum seconds to wait for the build tool, None for no limit
            env: Extra environment variables for the build tool
            runner: Process runner with the subprocess.run() signature
        """
        self.maven_command = maven_command
        self.gradle_command = gradle_command
        self.timeout = timeout
        self.env = dict(env or {})
        self._run = runner

    def detect_builder_type(self, workspace: str, artifact: JibArtifact) -> BuilderType:
        """
        Determine whether a workspace is built with Maven or Gradle.

        Raises:
            RecomputationError: If neither build tool is configured
        """
        if artifact.builder_type is not None:
            return artifact.builder_type

        if any(os.path.isfile(os.path.join(workspace, f)) for f in MAVEN_BUILD_FILES):
            return BuilderType.MAVEN
        if any(os.path.isfile(os.path.join(workspace, f)) for f in GRADLE_BUILD_FILES):
            return BuilderType.GRADLE

        raise RecomputationError(f"unable to determine Jib builder type for {workspace}")

    def sync_map_command(self, workspace: str, artifact: JibArtifact) -> list[str]:
        """Build the command line that prints the sync map for an artifact."""
        builder = self.detect_builder_type(workspace, artifact)

        if builder is BuilderType.MAVEN:
            return self._maven_command(workspace, artifact)
        return self._gradle_command(workspace, artifact)

    def _maven_command(self, workspace: str, artifact: JibArtifact) -> list[str]:
        args = [
            self._executable(workspace, "mvnw", self.maven_command),
            "jib:_skaffold-fail-if-jib-out-of-date",
            f"-Djib.requiredVersion={MINIMUM_JIB_MAVEN_VERSION}",
            *artifact.flags,
        ]
        if artifact.project:
            # multi-module: build the module and its dependencies, containerize the module
            args += ["--projects", artifact.project, "--also-make", f"-Djib.containerize={artifact.project}"]
        else:
            args.append("--non-recursive")

        args += ["-DskipTests=true", "prepare-package", "jib:_skaffold-sync-map", "--quiet"]
        return args

    def _gradle_command(self, workspace: str, artifact: JibArtifact) -> list[str]:
        task = "_jibSkaffoldSyncMap"
        if artifact.project:
            task = f":{artifact.project}:{task}"

        return [
            self._executable(workspace, "gradlew", self.gradle_command),
            "_jibSkaffoldFailIfJibOutOfDate",
            f"-Djib.requiredVersion={MINIMUM_JIB_GRADLE_VERSION}",
            *artifact.flags,
            task,
            "-x",
            "test",
            "--quiet",
            "--console=plain",
        ]

    @staticmethod
    def _executable(workspace: str, wrapper: str, default: str) -> str:
        wrapper_path = os.path.join(workspace, wrapper)
        if os.path.isfile(wrapper_path) and os.access(wrapper_path, os.X_OK):
            return wrapper_path
        return default

    def compute_sync_map(self, workspace: str, artifact: JibArtifact) -> SyncMap:
        """
        Run the plugin for an artifact and parse the resulting sync map.

        Args:
            workspace: Workspace directory of the artifact
            artifact: Artifact build configuration

        Returns:
            Freshly computed Sync Map

        Raises:
            ProcessError: If the build tool cannot be run or fails
            ParseError: If the output holds no usable sync map
            StatError: If a source file cannot be stat'ed
        """
        workspace = to_abs(workspace)
        argv = self.sync_map_command(workspace, artifact)
        logger.info(f"Computing sync map: {' '.join(argv)}")

        env = dict(os.environ, **self.env) if self.env else None
        try:
            process = self._run(
                argv,
                cwd=workspace,
                env=env,
                capture_output=True,
                text=True,
                # plugin output may carry non-UTF-8 bytes from the build log
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ProcessError(
                f"failed to get Jib sync map: timed out after {self.timeout}s"
            ) from e
        except OSError as e:
            raise ProcessError(f"failed to get Jib sync map: {e}") from e

        if process.returncode != 0:
            error_msg = f"failed to get Jib sync map: {argv[0]} exited with {process.returncode}"
            logger.error(error_msg)
            logger.debug(f"Sync map command stderr:\n{process.stderr}")
            raise ProcessError(
                error_msg,
                returncode=process.returncode,
                stderr=process.stderr or "",
            )

        return parse_sync_map_output(process.stdout or "")

    def list_build_definitions(self, workspace: str, artifact: JibArtifact) -> list[str]:
        """
        List the build definition files of a workspace.

        A change to any of these files invalidates incremental sync.

        Returns:
            Absolute paths of the existing build files
        """
        workspace = to_abs(workspace)
        try:
            builder = self.detect_builder_type(workspace, artifact)
        except RecomputationError:
            return []

        if builder is BuilderType.MAVEN:
            candidates = [os.path.join(workspace, f) for f in MAVEN_BUILD_FILES]
            if artifact.project:
                candidates.append(os.path.join(workspace, artifact.project, "pom.xml"))
        else:
            candidates = [os.path.join(workspace, f) for f in GRADLE_PROJECT_FILES]
            if artifact.project:
                project_dir = os.path.join(workspace, *artifact.project.split(":"))
                candidates += [
                    os.path.join(project_dir, "build.gradle"),
                    os.path.join(project_dir, "build.gradle.kts"),
                ]

        return [to_abs(p) for p in candidates if os.path.isfile(p)]
