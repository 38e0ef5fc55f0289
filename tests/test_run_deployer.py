"""Tests for the run control loops."""
from unittest.mock import AsyncMock, MagicMock
import pytest
from pipeline_orchestrator.core.workflow import RunStatus, TaskResult, TimelineRecordState
from pipeline_orchestrator.models.run import Run, RunStage
from pipeline_orchestrator.workers.progress_monitor import ProgressMonitor
from pipeline_orchestrator.workers.run_deployer import RunDeployer
from pipeline_orchestrator.workers.stage_deployer import StageDeployer

IN_PROGRESS = TimelineRecordState.IN_PROGRESS
COMPLETED = TimelineRecordState.COMPLETED


def make_run(project, definition, build, settings, *names):
    return Run(
        project=project,
        definition=definition,
        build=build,
        stages=[RunStage(id=f"id-{n}", name=n, target=True) for n in names],
        settings=settings,
    )


def scripted_selector(script):
    """Stage selector whose get_stage replays per-stage state sequences."""
    selector = MagicMock()
    selector.start_stage = AsyncMock()
    selector.confirm_stage = AsyncMock(side_effect=lambda build, stage, attempts, interval: stage)
    fetches = []

    async def get_stage(build, stage):
        fetches.append(stage.name)
        state, result = script[stage.name].pop(0)
        stage.state = state
        stage.result = result
        return stage

    selector.get_stage = AsyncMock(side_effect=get_stage)
    return selector, fetches


def make_deployer(logger, selector):
    helper = MagicMock()
    helper.wait = AsyncMock()
    approver = MagicMock()
    approver.is_approval_pending = MagicMock(return_value=False)
    approver.is_check_pending = MagicMock(return_value=False)
    reporter = MagicMock()
    stage_deployer = StageDeployer(helper, selector, approver, reporter, logger)
    return RunDeployer(helper, stage_deployer, ProgressMonitor(logger), reporter, logger), helper, reporter


@pytest.mark.asyncio
async def test_automated_polls_until_terminal(logger, project, definition, build, settings):
    """Test that automated rounds continue until every stage completes."""
    selector, fetches = scripted_selector({
        "DEV": [(IN_PROGRESS, None), (COMPLETED, TaskResult.SUCCEEDED)],
        "PROD": [(IN_PROGRESS, None), (IN_PROGRESS, None), (COMPLETED, TaskResult.SUCCEEDED_WITH_ISSUES)],
    })
    deployer, helper, reporter = make_deployer(logger, selector)

    progress = await deployer.deploy_automated(make_run(project, definition, build, settings, "DEV", "PROD"))

    assert progress.status == RunStatus.PARTIALLY_SUCCEEDED
    assert fetches == ["DEV", "PROD", "DEV", "PROD", "PROD"]
    assert helper.wait.await_count == 2
    reporter.log_stages_progress.assert_called_once_with(progress.stages)


@pytest.mark.asyncio
async def test_automated_skip_tracking_single_pass(logger, project, definition, build, settings):
    """Test one fetch per stage and no sleep when tracking is skipped."""
    settings.skip_tracking = True
    selector, fetches = scripted_selector({
        "DEV": [(IN_PROGRESS, None)],
        "PROD": [(IN_PROGRESS, None)],
    })
    deployer, helper, _ = make_deployer(logger, selector)

    progress = await deployer.deploy_automated(make_run(project, definition, build, settings, "DEV", "PROD"))

    assert progress.status == RunStatus.IN_PROGRESS
    assert fetches == ["DEV", "PROD"]
    helper.wait.assert_not_called()


@pytest.mark.asyncio
async def test_manual_skip_tracking_single_pass(logger, project, definition, build, settings):
    """Test one fetch per stage and no sleep in manual mode with skip_tracking."""
    settings.skip_tracking = True
    selector, fetches = scripted_selector({
        "DEV": [(IN_PROGRESS, None)],
        "PROD": [(IN_PROGRESS, None)],
    })
    deployer, helper, _ = make_deployer(logger, selector)

    await deployer.deploy_manual(make_run(project, definition, build, settings, "DEV", "PROD"))

    assert fetches == ["DEV", "PROD"]
    helper.wait.assert_not_called()
    assert selector.start_stage.await_count == 2
    selector.confirm_stage.assert_not_called()


@pytest.mark.asyncio
async def test_manual_runs_stages_in_order(logger, project, definition, build, settings):
    """Test that each stage completes before the next one starts."""
    selector, fetches = scripted_selector({
        "DEV": [(IN_PROGRESS, None), (COMPLETED, TaskResult.SUCCEEDED)],
        "PROD": [(COMPLETED, TaskResult.FAILED)],
    })
    deployer, _, reporter = make_deployer(logger, selector)

    progress = await deployer.deploy_manual(make_run(project, definition, build, settings, "DEV", "PROD"))

    assert fetches == ["DEV", "DEV", "PROD"]
    assert selector.start_stage.await_count == 2
    assert progress.status == RunStatus.FAILED
    reporter.log_stages_progress.assert_called_once()
