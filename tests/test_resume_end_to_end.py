"""Reload-and-resume scenarios wired through the real session service."""

import pytest
from conftest import ServiceGateway, answer_all

import api.session as session_store
from leadership_assessment.models.session_state import AssessmentVersion, Fresh, Prompt
from leadership_assessment.services.flow_runner import AssessmentFlowRunner, FlowPhase
from leadership_assessment.services.resume_controller import ResumeController
from leadership_assessment.services.resume_gateway import GatewayTransportError
from leadership_assessment.services.session_identity import resolve_identity


def controller_for(location, drafts, gateway):
    identity = resolve_identity(location.query_params())
    return ResumeController(identity, gateway, drafts, location, timeout=1.0)


async def answer_chunk(runner, upto=None):
    for qid, value in list(answer_all(runner.questions).items())[:upto]:
        runner.select_answer(qid, value, response_time_ms=250)


@pytest.mark.asyncio
async def test_reload_mid_chunk_resumes_with_drafts(location_factory, drafts):
    gateway = ServiceGateway()
    runner = AssessmentFlowRunner(AssessmentVersion.DEEP, gateway, drafts)
    await runner.start()
    await answer_chunk(runner)
    await runner.submit_chunk()
    await answer_chunk(runner, upto=2)
    answered = dict(runner.answers)

    # page reload: the URL now carries the session token
    location = location_factory(f"?version=deep&token={runner.token}")
    controller = controller_for(location, drafts, gateway)
    await controller.mount()

    assert isinstance(controller.state, Prompt)
    assert controller.state.data.descriptor.current_chunk == 2
    assert controller.state.data.draft_answers == answered

    controller.continue_session()
    resumed = AssessmentFlowRunner(
        AssessmentVersion.DEEP, gateway, drafts, resume_data=controller.state.data
    )
    await resumed.start()

    assert resumed.answers == answered
    assert resumed.question_index == 2
    await answer_chunk(resumed)
    assert await resumed.submit_chunk() is FlowPhase.QUESTIONING
    assert resumed.current_chunk == 3


@pytest.mark.asyncio
async def test_reload_after_completion_starts_fresh(location_factory, drafts):
    gateway = ServiceGateway()
    runner = AssessmentFlowRunner(AssessmentVersion.QUICK, gateway, drafts)
    await runner.start()
    while runner.phase is FlowPhase.QUESTIONING:
        await answer_chunk(runner)
        await runner.submit_chunk()
    assert runner.phase is FlowPhase.COMPLETE

    location = location_factory(f"?version=quick&token={runner.token}")
    controller = controller_for(location, drafts, gateway)
    await controller.mount()

    assert isinstance(controller.state, Fresh)
    assert location.query_params() == {"version": "quick"}


@pytest.mark.asyncio
async def test_expired_session_starts_fresh(location_factory, drafts, monkeypatch):
    gateway = ServiceGateway()
    runner = AssessmentFlowRunner(AssessmentVersion.QUICK, gateway, drafts)
    await runner.start()
    monkeypatch.setattr(session_store, "SESSION_TTL", -1)

    location = location_factory(f"?version=quick&token={runner.token}")
    controller = controller_for(location, drafts, gateway)
    await controller.mount()

    assert isinstance(controller.state, Fresh)
    assert session_store.get_by_id(runner.session_id) is None


@pytest.mark.asyncio
async def test_upgrade_after_quick_completion(location_factory, drafts):
    gateway = ServiceGateway()
    quick = AssessmentFlowRunner(AssessmentVersion.QUICK, gateway, drafts)
    await quick.start()
    while quick.phase is FlowPhase.QUESTIONING:
        await answer_chunk(quick)
        await quick.submit_chunk()

    location = location_factory(f"?version=deep&upgrade_from={quick.token}")
    identity = resolve_identity(location.query_params())
    controller = controller_for(location, drafts, gateway)
    assert isinstance(controller.state, Fresh)

    deep = AssessmentFlowRunner(
        identity.version, gateway, drafts, upgrade_from_token=identity.flow_upgrade_token
    )
    assert await deep.start() is FlowPhase.QUESTIONING
    assert deep.total_chunks == 7
    assert session_store.get_by_token(deep.token).upgrade_from_token == quick.token


@pytest.mark.asyncio
async def test_upgrade_from_unfinished_quick_fails(drafts):
    gateway = ServiceGateway()
    quick = AssessmentFlowRunner(AssessmentVersion.QUICK, gateway, drafts)
    await quick.start()

    deep = AssessmentFlowRunner(AssessmentVersion.DEEP, gateway, drafts, upgrade_from_token=quick.token)
    assert await deep.start() is FlowPhase.ERROR
    assert deep.error


class LostResponseGateway(ServiceGateway):
    """Applies the next submit on the server but loses its response once."""

    def __init__(self):
        self.drop_next_response = False

    async def submit_chunk(self, session_id, responses):
        result = await super().submit_chunk(session_id, responses)
        if self.drop_next_response:
            self.drop_next_response = False
            raise GatewayTransportError("connection reset after send")
        return result


@pytest.mark.asyncio
async def test_retry_after_lost_submit_response_moves_on(drafts):
    """Retrying a chunk the server already took must not leave the user stuck."""
    gateway = LostResponseGateway()
    runner = AssessmentFlowRunner(AssessmentVersion.QUICK, gateway, drafts)
    await runner.start()
    first_chunk = [q.id for q in runner.questions]
    await answer_chunk(runner)

    gateway.drop_next_response = True
    assert await runner.submit_chunk() is FlowPhase.ERROR
    assert runner.current_chunk == 1

    assert await runner.retry() is FlowPhase.QUESTIONING
    assert runner.current_chunk == 2
    assert runner.error is None
    assert not {q.id for q in runner.questions} & set(first_chunk)

    # the rest of the flow still finishes normally
    while runner.phase is FlowPhase.QUESTIONING:
        await answer_chunk(runner)
        await runner.submit_chunk()
    assert runner.phase is FlowPhase.COMPLETE
    assert len(session_store.get_by_token(runner.token).responses) == 15


@pytest.mark.asyncio
async def test_retry_after_lost_final_response_completes(drafts):
    gateway = LostResponseGateway()
    runner = AssessmentFlowRunner(AssessmentVersion.QUICK, gateway, drafts)
    await runner.start()
    for _ in range(2):
        await answer_chunk(runner)
        await runner.submit_chunk()
    assert runner.current_chunk == 3

    await answer_chunk(runner)
    gateway.drop_next_response = True
    assert await runner.submit_chunk() is FlowPhase.ERROR

    assert await runner.retry() is FlowPhase.COMPLETE
    assert drafts.get() is None
