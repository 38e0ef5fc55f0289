#!/usr/bin/env python3
"""
Run one pipeline orchestration in-process, without the API or a worker.
Usage: python scripts/run_orchestration.py <project> <definition> [--strategy New|Latest|Specific] [--stage NAME ...]
"""
import asyncio
import sys
import httpx
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pipeline_orchestrator.core.config import settings
from pipeline_orchestrator.core.errors import OrchestratorError
from pipeline_orchestrator.core.factory import create_orchestrator, default_run_settings
from pipeline_orchestrator.core.helpers import CommonHelper
from pipeline_orchestrator.core.logging import configure_logging, get_logger
from pipeline_orchestrator.core.workflow import RunStatus, Strategy
from pipeline_orchestrator.schemas.runs import FiltersModel, OrchestrationRequest, RunSettingsModel


def parse_pairs(helper: CommonHelper, values: list[str]) -> dict:
    return dict(helper.parse_key_value(v) for v in values)


def main():
    import argparse
    parser = argparse.ArgumentParser(description="Orchestrate a multi-stage pipeline run")
    parser.add_argument("project", help="Project name or id")
    parser.add_argument("definition", help="Pipeline definition name")
    parser.add_argument("--strategy", choices=[s.value for s in Strategy], default=Strategy.NEW.value)
    parser.add_argument("--stage", dest="stages", action="append", default=[], help="Target stage (repeatable)")
    parser.add_argument("--parameter", dest="parameters", action="append", default=[], help="Template parameter name=value (repeatable)")
    parser.add_argument("--branch", default="", help="Source branch name")
    parser.add_argument("--build-number", default="", help="Build number (Specific strategy)")
    parser.add_argument("--build-result", default="", help="Build result filter (Latest strategy)")
    parser.add_argument("--build-tag", dest="build_tags", action="append", default=[], help="Build tag filter (repeatable)")
    parser.add_argument("--pipeline-resource", dest="pipeline_resources", action="append", default=[], help="name=version (repeatable)")
    parser.add_argument("--repository-resource", dest="repository_resources", action="append", default=[], help="name=branch (repeatable)")
    parser.add_argument("--cancel-failed-checkpoint", action="store_true", default=None)
    parser.add_argument("--proceed-skipped-stages", action="store_true", default=None)
    parser.add_argument("--skip-tracking", action="store_true", default=None)
    parser.add_argument("--update-interval", type=int, help="Milliseconds between progress updates")
    parser.add_argument("--approval-attempts", type=int)
    parser.add_argument("--approval-interval", type=int, help="Milliseconds between approval attempts")
    args = parser.parse_args()

    configure_logging(settings.log_level)
    logger = get_logger(settings.app_name)
    helper = CommonHelper(logger)

    try:
        request = OrchestrationRequest(
            strategy=Strategy(args.strategy),
            project_name=args.project,
            definition_name=args.definition,
            stages=args.stages,
            parameters=parse_pairs(helper, args.parameters),
            filters=FiltersModel(
                build_number=args.build_number,
                branch_name=args.branch,
                build_result=args.build_result,
                build_tags=args.build_tags,
                pipeline_resources=parse_pairs(helper, args.pipeline_resources),
                repository_resources=parse_pairs(helper, args.repository_resources),
            ),
            settings=RunSettingsModel(
                update_interval=args.update_interval,
                approval_attempts=args.approval_attempts,
                approval_interval=args.approval_interval,
                cancel_failed_checkpoint=args.cancel_failed_checkpoint,
                proceed_skipped_stages=args.proceed_skipped_stages,
                skip_tracking=args.skip_tracking,
            ),
        )
        orchestrator = create_orchestrator(logger=logger)
        progress = asyncio.run(orchestrator.orchestrate(request.to_parameters(default_run_settings())))
    except (OrchestratorError, httpx.HTTPError, ValueError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"Run {progress.name} ({progress.id}): {progress.status.value}")
    print(progress.url)

    if progress.status == RunStatus.PARTIALLY_SUCCEEDED:
        print("WARNING: run partially succeeded")
    elif progress.status == RunStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
