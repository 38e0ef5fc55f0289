from __future__ import annotations
import logging
from dataclasses import dataclass

import httpx

from pipeline_orchestrator.core.config import Settings, settings as default_settings
from pipeline_orchestrator.core.devops import DevOpsClient
from pipeline_orchestrator.core.engine import Orchestrator
from pipeline_orchestrator.core.helpers import CommonHelper
from pipeline_orchestrator.core.logging import get_logger
from pipeline_orchestrator.core.retry import RetryPolicy
from pipeline_orchestrator.models.run import RunSettings
from pipeline_orchestrator.selectors.build_selector import BuildSelector
from pipeline_orchestrator.selectors.definition_selector import DefinitionSelector
from pipeline_orchestrator.selectors.project_selector import ProjectSelector
from pipeline_orchestrator.selectors.stage_selector import StageSelector
from pipeline_orchestrator.services.build_api import BuildApi
from pipeline_orchestrator.services.build_web_api import BuildWebApi
from pipeline_orchestrator.services.core_api import CoreApi
from pipeline_orchestrator.services.pipelines_api import PipelinesApi
from pipeline_orchestrator.workers.filter_creator import FilterCreator
from pipeline_orchestrator.workers.progress_monitor import ProgressMonitor
from pipeline_orchestrator.workers.progress_reporter import ProgressReporter
from pipeline_orchestrator.workers.run_creator import RunCreator
from pipeline_orchestrator.workers.run_deployer import RunDeployer
from pipeline_orchestrator.workers.stage_approver import StageApprover
from pipeline_orchestrator.workers.stage_deployer import StageDeployer


def default_run_settings(config: Settings = default_settings) -> RunSettings:
    return RunSettings(
        update_interval=config.update_interval,
        stage_start_attempts=config.stage_start_attempts,
        stage_start_interval=config.stage_start_interval,
        approval_interval=config.approval_interval,
        approval_attempts=config.approval_attempts,
        cancel_failed_checkpoint=config.cancel_failed_checkpoint,
        proceed_skipped_stages=config.proceed_skipped_stages,
        skip_tracking=config.skip_tracking,
    )


@dataclass
class ApiSet:
    core: CoreApi
    build: BuildApi
    pipelines: PipelinesApi
    build_web: BuildWebApi

    @staticmethod
    def create(client: DevOpsClient, logger: logging.Logger, config: Settings = default_settings) -> "ApiSet":
        retry = RetryPolicy(
            attempts=config.retry_attempts,
            delay=config.retry_delay,
            logger=logger.getChild("RetryPolicy"),
        )
        return ApiSet(
            core=CoreApi(client, logger, retry),
            build=BuildApi(client, logger, retry),
            pipelines=PipelinesApi(client, logger, retry),
            build_web=BuildWebApi(client, logger, retry),
        )


def create_orchestrator(
    token: str | None = None,
    logger: logging.Logger | None = None,
    config: Settings = default_settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Orchestrator:
    """Wire every orchestration component against one DevOps organisation."""
    logger = logger or get_logger(config.app_name)

    token = token or config.devops_token
    if not token:
        raise ValueError("DevOps access token is not configured")

    client = DevOpsClient(token=token, base_url=config.devops_url, timeout=config.devops_timeout, transport=transport)
    apis = ApiSet.create(client, logger, config)

    helper = CommonHelper(logger)
    reporter = ProgressReporter(logger)

    build_selector = BuildSelector(apis.build, apis.pipelines, apis.build_web, logger)
    stage_selector = StageSelector(apis.build, apis.pipelines, helper, logger)
    stage_approver = StageApprover(build_selector, stage_selector, helper, logger)
    stage_deployer = StageDeployer(helper, stage_selector, stage_approver, reporter, logger)

    run_creator = RunCreator(
        ProjectSelector(apis.core, logger),
        DefinitionSelector(apis.build, logger),
        build_selector,
        FilterCreator(logger),
        reporter,
        logger,
        latest_top=config.latest_build_top,
    )
    run_deployer = RunDeployer(helper, stage_deployer, ProgressMonitor(logger), reporter, logger)

    return Orchestrator(run_creator, run_deployer, reporter, logger)
