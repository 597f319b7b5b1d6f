import pytest

from vadis_intake.contracts.analysis import ALL_FEATURES, FeatureKey
from vadis_intake.contracts.project import WorkflowStep
from vadis_intake.errors import APIError, AnalysisRunError
from vadis_intake.intake import IntakePhase
from vadis_intake.workflow import ProductionWorkflow


async def submit_project(session, project_info, pdf_script):
    for name, value in project_info.items():
        session.intake.set_field(name, value)
    session.intake.advance_step()
    session.intake.select_file(pdf_script)
    return await session.submit()


@pytest.mark.asyncio
async def test_created_id_is_handed_to_analysis(mock_api, settings, project_info, pdf_script):
    async with ProductionWorkflow(mock_api, settings=settings) as session:
        project = await submit_project(session, project_info, pdf_script)
        assert session.repository.cached(project.id) == project

        result = await session.analyze()

    assert session.intake.phase is IntakePhase.CREATED
    assert result.project_id == 42
    assert len(result.completed) == len(ALL_FEATURES)
    assert {call.args[0] for call in mock_api.run_feature.await_args_list} == {42}


@pytest.mark.asyncio
async def test_analyze_invalidates_cached_project(mock_api, settings, project_info, pdf_script):
    async with ProductionWorkflow(mock_api, settings=settings) as session:
        await submit_project(session, project_info, pdf_script)

        await session.analyze([FeatureKey.VFX_ANALYSIS])

        assert session.repository.cached(42) is None


@pytest.mark.asyncio
async def test_analyze_before_creation_is_refused(mock_api, settings):
    async with ProductionWorkflow(mock_api, settings=settings) as session:
        with pytest.raises(AnalysisRunError, match="No project has been created"):
            await session.analyze()

    mock_api.run_feature.assert_not_awaited()


@pytest.mark.asyncio
async def test_analyze_existing_project(mock_api, settings):
    async with ProductionWorkflow(mock_api, settings=settings) as session:
        result = await session.analyze(["vfx_analysis"], project_id="proj-9")

    assert result.project_id == "proj-9"
    assert result.completed == [FeatureKey.VFX_ANALYSIS]


@pytest.mark.asyncio
async def test_settings_drive_aggregator(mock_api, settings):
    settings.merge_policy = "replace"
    settings.max_concurrency = 2

    session = ProductionWorkflow(mock_api, settings=settings)

    assert session.aggregator.policy.value == "replace"
    assert session.aggregator.max_concurrency == 2
    assert session.aggregator.feature_timeout == settings.feature_timeout


@pytest.mark.asyncio
async def test_exit_stops_watchers_and_drops_file(mock_api, settings, project_info, pdf_script):
    with pytest.raises(RuntimeError):
        async with ProductionWorkflow(mock_api, settings=settings) as session:
            for name, value in project_info.items():
                session.intake.set_field(name, value)
            session.intake.select_file(pdf_script)
            watcher = session.watch(project_id=42)
            await watcher.start()
            raise RuntimeError("view closed")

    assert not watcher.running
    assert session.intake.file is None
    mock_api.close.assert_not_awaited()


@pytest.mark.asyncio
async def test_owned_client_is_closed(mock_api, settings):
    async with ProductionWorkflow(mock_api, settings=settings, owns_api=True):
        pass

    mock_api.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_save_progress_stores_current_step(mock_api, settings, project_info, pdf_script):
    async with ProductionWorkflow(mock_api, settings=settings) as session:
        await submit_project(session, project_info, pdf_script)

        assert await session.save_progress({"flow": "script_analysis"})

    mock_api.save_workflow_step.assert_awaited_once_with(
        42, WorkflowStep.ANALYSIS, {"flow": "script_analysis"}
    )


@pytest.mark.asyncio
async def test_save_progress_failure_is_reported(mock_api, settings, project_info, pdf_script):
    mock_api.save_workflow_step.side_effect = APIError("Workflow store down", status_code=503)

    async with ProductionWorkflow(mock_api, settings=settings) as session:
        await submit_project(session, project_info, pdf_script)

        assert not await session.save_progress()


@pytest.mark.asyncio
async def test_save_progress_before_creation_is_refused(mock_api, settings):
    async with ProductionWorkflow(mock_api, settings=settings) as session:
        with pytest.raises(AnalysisRunError):
            await session.save_progress()

    mock_api.save_workflow_step.assert_not_awaited()


@pytest.mark.asyncio
async def test_start_notice_enabled_from_settings(mock_api, settings):
    settings.notify_analysis_start = True

    async with ProductionWorkflow(mock_api, settings=settings) as session:
        await session.analyze([FeatureKey.VFX_ANALYSIS], project_id=42)

    mock_api.start_analysis.assert_awaited_once_with(42, [FeatureKey.VFX_ANALYSIS])


def test_from_settings_passes_both_timeouts(settings):
    settings.request_timeout = 5.0

    session = ProductionWorkflow.from_settings(settings)

    assert session.api.timeout == 5.0
    assert session.api.feature_timeout == settings.feature_timeout
