#!/usr/bin/env python3
"""
Jib incremental sync planner - Main Entry Point

Computes the sync map of a Jib workspace and decides, for a set of
changed files, whether they can be copied into the running container
or whether the image must be rebuilt. The plan is printed as JSON.

Usage:
    syncplan --workspace . --show-map                       # Print the sync map
    syncplan --workspace . --show-map > map.json            # Save a baseline
    syncplan --workspace . --baseline map.json --modified src/main/resources/a
    syncplan --workspace . --project api --baseline api.json --deleted old.txt

Environment Variables:
    SYNCPLAN_MAVEN_CMD      - Maven executable (default: mvn)
    SYNCPLAN_GRADLE_CMD     - Gradle executable (default: gradle)
    SYNCPLAN_BUILD_TIMEOUT  - Build tool timeout in seconds, 0 for none (default: 600)
    SYNCPLAN_LOG_LEVEL      - Log level (default: INFO)
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from config.settings import load_settings, ConfigurationError
from syncplan.files import PathResolutionError, StatError
from syncplan.jib.client import SyncMapClient, RecomputationError
from syncplan.jib.models import BuilderType, JibArtifact
from syncplan.storage.models import ProjectKey, SyncMap, sync_map_from_dict, sync_map_to_dict
from syncplan.storage.sync_map_store import SyncMapStore
from syncplan.sync.diff import ChangeEvent
from syncplan.sync.engine import SyncDiffEngine


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    """
    Configure logging for the application.

    Logs go to stderr; stdout carries the JSON output.

    Args:
        verbose: If True, enable DEBUG level logging
        level: Level used when not verbose
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
        force=True,
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Plan incremental file sync for Jib container builds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    syncplan --workspace . --show-map > map.json
    syncplan --workspace . --baseline map.json --modified src/main/resources/app.properties
    syncplan --workspace . --builder gradle --project web --baseline web.json --added src/main/jib/new.txt
        """,
    )

    parser.add_argument(
        "--workspace",
        type=Path,
        default=Path("."),
        help="Workspace directory of the artifact (default: current directory)",
    )
    parser.add_argument(
        "--project",
        default="",
        help="Maven module or Gradle sub-project of the artifact",
    )
    parser.add_argument(
        "--builder",
        choices=[b.value for b in BuilderType],
        help="Build tool (default: detected from the workspace)",
    )
    parser.add_argument(
        "--flag",
        dest="flags",
        action="append",
        default=[],
        help="Extra argument for the build tool (repeatable)",
    )
    parser.add_argument("--modified", nargs="*", default=[], help="Modified files")
    parser.add_argument("--added", nargs="*", default=[], help="Added files")
    parser.add_argument("--deleted", nargs="*", default=[], help="Deleted files")
    parser.add_argument(
        "--show-map",
        action="store_true",
        help="Print the computed sync map and exit",
    )
    parser.add_argument(
        "--baseline",
        type=Path,
        help="Sync map saved with --show-map before the files changed (required to plan a change)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--env",
        type=Path,
        help="Path to .env file (default: .env in current directory)",
    )

    args = parser.parse_args(argv)
    if not args.show_map and args.baseline is None:
        parser.error("--baseline is required to plan a change (save one with --show-map)")
    return args


class BaselineError(Exception):
    """Raised when a saved baseline cannot be read."""
    pass


def load_baseline(path: Path) -> SyncMap:
    """
    Load a sync map saved with --show-map.

    Args:
        path: JSON file written by --show-map

    Returns:
        The saved Sync Map

    Raises:
        BaselineError: If the file cannot be read or holds no sync map
    """
    try:
        with open(path) as f:
            return sync_map_from_dict(json.load(f))
    except OSError as e:
        raise BaselineError(f"cannot read {path}: {e}") from e
    except ValueError as e:
        raise BaselineError(f"{path} does not hold a sync map: {e}") from e


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        settings = load_settings(env_file=args.env)
    except ConfigurationError as e:
        setup_logging(verbose=args.verbose)
        logging.getLogger(__name__).error(f"Configuration error: {e}")
        return 1

    setup_logging(verbose=args.verbose, level=settings.log_level)
    logger = logging.getLogger(__name__)

    workspace = str(args.workspace)
    artifact = JibArtifact(
        project=args.project,
        flags=tuple(args.flags),
        builder_type=BuilderType(args.builder) if args.builder else None,
    )

    client = SyncMapClient(
        maven_command=settings.builder.maven_command,
        gradle_command=settings.builder.gradle_command,
        timeout=settings.builder.timeout_seconds,
    )
    engine = SyncDiffEngine(store=SyncMapStore(), client=client)

    try:
        if args.show_map:
            sync_map = engine.init_sync(workspace, artifact)
            print(json.dumps(sync_map_to_dict(sync_map), indent=2))
            return 0

        baseline = load_baseline(args.baseline)
        engine.store.initialize(ProjectKey.for_artifact(workspace, artifact), baseline)
        logger.info(f"Loaded baseline from {args.baseline}: {len(baseline)} files tracked")

        event = ChangeEvent.of(
            modified=args.modified,
            added=args.added,
            deleted=args.deleted,
        )
        result = engine.get_sync_diff(workspace, artifact, event)

        print(json.dumps({
            "decision": result.decision.name.lower(),
            "rebuild": result.requires_rebuild,
            "copy": result.to_copy or {},
            "delete": result.to_delete or {},
        }, indent=2, sort_keys=True))
        return 0

    except RecomputationError as e:
        logger.error(f"Could not compute sync map: {e}")
        return 1
    except BaselineError as e:
        logger.error(f"Baseline error: {e}")
        return 1
    except (StatError, PathResolutionError) as e:
        logger.error(f"File error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
