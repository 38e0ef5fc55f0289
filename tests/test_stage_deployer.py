"""Tests for the per-stage manual and automated drives."""
from unittest.mock import AsyncMock, MagicMock
import pytest
from pipeline_orchestrator.core.workflow import TaskResult, TimelineRecordState
from pipeline_orchestrator.models.devops import Timeline, TimelineRecord
from pipeline_orchestrator.models.progress import BuildCheckpoint, BuildJob, BuildStage
from pipeline_orchestrator.selectors.stage_selector import StageSelector
from pipeline_orchestrator.workers.stage_deployer import StageDeployer

PENDING = TimelineRecordState.PENDING
IN_PROGRESS = TimelineRecordState.IN_PROGRESS
COMPLETED = TimelineRecordState.COMPLETED


def progression(*states, jobs=True):
    """get_stage side effect that walks the stage through states."""
    states = list(states)

    async def get_stage(build, stage):
        stage.state = states.pop(0)
        if stage.state == COMPLETED:
            stage.result = TaskResult.SUCCEEDED
            if jobs:
                stage.jobs = [BuildJob(id="job-1", name="Deploy")]
        return stage

    return get_stage


def make_deployer(logger):
    helper = MagicMock()
    helper.wait = AsyncMock()
    stage_selector = MagicMock()
    stage_selector.start_stage = AsyncMock()
    stage_selector.confirm_stage = AsyncMock(side_effect=lambda build, stage, attempts, interval: stage)
    stage_approver = MagicMock()
    stage_approver.is_approval_pending = MagicMock(return_value=False)
    stage_approver.is_check_pending = MagicMock(return_value=False)
    stage_approver.approve = AsyncMock(side_effect=lambda stage, build, settings: stage)
    stage_approver.check = AsyncMock(side_effect=lambda stage, build, settings: stage)
    reporter = MagicMock()
    deployer = StageDeployer(helper, stage_selector, stage_approver, reporter, logger)
    return deployer, helper, stage_selector, stage_approver, reporter


@pytest.mark.asyncio
async def test_manual_starts_pending_stage_and_tracks(logger, build, settings):
    """Test start, confirm, then poll until completed."""
    deployer, helper, stage_selector, _, reporter = make_deployer(logger)
    stage_selector.get_stage = AsyncMock(side_effect=progression(IN_PROGRESS, IN_PROGRESS, COMPLETED))

    stage = await deployer.deploy_manual(BuildStage(id="s", name="DEV"), build, settings)

    assert stage.state == COMPLETED
    stage_selector.start_stage.assert_awaited_once()
    stage_selector.confirm_stage.assert_awaited_once()
    assert stage_selector.confirm_stage.call_args.args[2:] == (settings.stage_start_attempts, settings.stage_start_interval)
    assert stage_selector.get_stage.await_count == 3
    assert helper.wait.await_count == 2
    reporter.log_stage_progress.assert_called_once_with(stage)


@pytest.mark.asyncio
async def test_manual_does_not_restart_running_stage(logger, build, settings):
    """Test that a stage already in progress is only tracked."""
    deployer, _, stage_selector, _, _ = make_deployer(logger)
    stage_selector.get_stage = AsyncMock(side_effect=progression(COMPLETED))

    await deployer.deploy_manual(BuildStage(id="s", name="DEV", state=IN_PROGRESS), build, settings)

    stage_selector.start_stage.assert_not_called()
    stage_selector.confirm_stage.assert_not_called()


@pytest.mark.asyncio
async def test_manual_skip_tracking_fetches_once(logger, build, settings):
    """Test that skip_tracking returns after one fetch without sleeping."""
    settings.skip_tracking = True
    deployer, helper, stage_selector, stage_approver, _ = make_deployer(logger)
    stage_selector.get_stage = AsyncMock(side_effect=progression(IN_PROGRESS))

    stage = await deployer.deploy_manual(BuildStage(id="s", name="DEV"), build, settings)

    assert stage.state == IN_PROGRESS
    assert stage_selector.get_stage.await_count == 1
    helper.wait.assert_not_called()
    stage_approver.approve.assert_not_called()
    stage_selector.start_stage.assert_awaited_once()
    stage_selector.confirm_stage.assert_not_called()


@pytest.mark.asyncio
async def test_manual_proceeds_past_pending_stage(logger, build, settings):
    """Test that proceed_skipped_stages skips confirmation and tolerates Pending."""
    settings.proceed_skipped_stages = True
    deployer, helper, stage_selector, _, _ = make_deployer(logger)
    stage_selector.get_stage = AsyncMock(side_effect=progression(PENDING))

    stage = await deployer.deploy_manual(BuildStage(id="s", name="DEV"), build, settings)

    assert stage.state == PENDING
    stage_selector.start_stage.assert_awaited_once()
    stage_selector.confirm_stage.assert_not_called()
    helper.wait.assert_not_called()


@pytest.mark.asyncio
async def test_manual_resolves_approval_then_check(logger, build, settings):
    """Test checkpoint resolution order."""
    deployer, _, stage_selector, stage_approver, _ = make_deployer(logger)
    stage_selector.get_stage = AsyncMock(side_effect=progression(COMPLETED))
    stage_approver.is_approval_pending = MagicMock(return_value=True)
    stage_approver.is_check_pending = MagicMock(return_value=True)
    calls = []
    stage_approver.approve = AsyncMock(side_effect=lambda stage, build, settings: calls.append("approve") or stage)
    stage_approver.check = AsyncMock(side_effect=lambda stage, build, settings: calls.append("check") or stage)
    stage = BuildStage(id="s", name="DEV", state=IN_PROGRESS)

    await deployer.deploy_manual(stage, build, settings)

    assert calls == ["approve", "check"]


@pytest.mark.asyncio
async def test_completed_checkpoint_not_resolved(logger, build, settings):
    """Test that a completed checkpoint is left alone."""
    deployer, _, stage_selector, stage_approver, _ = make_deployer(logger)
    stage_approver.is_approval_pending = MagicMock(return_value=True)

    async def get_stage(build, stage):
        stage.state = IN_PROGRESS
        stage.checkpoint = BuildCheckpoint(id="cp", state=COMPLETED)
        return stage

    stage_selector.get_stage = AsyncMock(side_effect=get_stage)

    await deployer.deploy_automated(BuildStage(id="s", name="DEV"), build, settings)

    stage_approver.approve.assert_not_called()


@pytest.mark.asyncio
async def test_rejected_stage_not_reported(logger, build, settings):
    """Test that a completed stage without jobs has no job report."""
    deployer, _, stage_selector, _, reporter = make_deployer(logger)
    stage_selector.get_stage = AsyncMock(side_effect=progression(COMPLETED, jobs=False))

    await deployer.deploy_automated(BuildStage(id="s", name="DEV"), build, settings)

    reporter.log_stage_progress.assert_not_called()


@pytest.mark.asyncio
async def test_automated_single_pass(logger, build, settings):
    """Test that the automated drive fetches once and never sleeps."""
    deployer, helper, stage_selector, _, reporter = make_deployer(logger)
    stage_selector.get_stage = AsyncMock(side_effect=progression(IN_PROGRESS))

    stage = await deployer.deploy_automated(BuildStage(id="s", name="DEV"), build, settings)

    assert stage.state == IN_PROGRESS
    assert stage_selector.get_stage.await_count == 1
    stage_selector.start_stage.assert_not_called()
    helper.wait.assert_not_called()
    reporter.log_stage_progress.assert_not_called()


@pytest.mark.asyncio
async def test_automated_skip_tracking(logger, build, settings):
    """Test that skip_tracking skips checkpoint handling."""
    settings.skip_tracking = True
    deployer, _, stage_selector, stage_approver, _ = make_deployer(logger)
    stage_approver.is_approval_pending = MagicMock(return_value=True)
    stage_selector.get_stage = AsyncMock(side_effect=progression(IN_PROGRESS))

    await deployer.deploy_automated(BuildStage(id="s", name="DEV"), build, settings)

    stage_approver.approve.assert_not_called()


@pytest.mark.asyncio
async def test_manual_skip_tracking_with_timeline(logger, build, settings):
    """Test one timeline read and no wait for a started stage when tracking is skipped."""
    settings.skip_tracking = True
    build_api = MagicMock()
    build_api.update_stage = AsyncMock()
    build_api.get_build_timeline = AsyncMock(return_value=Timeline(id="plan-1", records=[
        TimelineRecord(id="s1", type="Stage", name="DEV", state=IN_PROGRESS),
    ]))
    helper = MagicMock()
    helper.wait = AsyncMock()
    stage_selector = StageSelector(build_api, MagicMock(), helper, logger)
    deployer = StageDeployer(helper, stage_selector, MagicMock(), MagicMock(), logger)

    stage = await deployer.deploy_manual(BuildStage(id="s1", name="DEV"), build, settings)

    assert stage.state == IN_PROGRESS
    build_api.update_stage.assert_awaited_once()
    build_api.get_build_timeline.assert_awaited_once()
    helper.wait.assert_not_called()
