"""
views/assess_view.py — 진단 화면

렌더링 분기 (ResumeController.render_target):
  - loading : resume 확인 중 (입력 불가 스피너)
  - prompt  : 이어하기 / 새로 시작 선택
  - flow    : 진단 진행 (재개 또는 새 시작)

상태 관리:
  - st.session_state.resume_controller  (ResumeController, 페이지 뷰당 1개)
  - st.session_state.flow_runner        (AssessmentFlowRunner)
  - 세션 식별은 URL 쿼리(st.query_params)에만 둔다
"""

from __future__ import annotations

import asyncio
from typing import Dict

import streamlit as st

from config import (
    API_BASE_URL,
    DRAFT_FILE,
    DRAFT_NAMESPACE,
    REQUEST_TIMEOUT_SECONDS,
    RESUME_TIMEOUT_SECONDS,
)
from leadership_assessment.models.session_state import Resuming
from leadership_assessment.services.draft_store import DraftStore, JsonFileStorage
from leadership_assessment.services.flow_runner import AssessmentFlowRunner, FlowPhase
from leadership_assessment.services.location import Location
from leadership_assessment.services.resume_controller import ResumeController
from leadership_assessment.services.resume_gateway import HttpAssessmentGateway
from leadership_assessment.services.session_identity import (
    TOKEN_PARAM,
    UPGRADE_FROM_PARAM,
    resolve_identity,
)
from leadership_assessment.views.components import progress_bar
from leadership_assessment.views.components import question_card as qcard
from leadership_assessment.views.components import resume_prompt


class StreamlitLocation(Location):
    """st.query_params 기반 주소창. 값을 바꿔도 페이지가 다시 로드되지 않는다."""

    def query_params(self) -> Dict[str, str]:
        return st.query_params.to_dict()

    def remove_param(self, name: str) -> None:
        if name in st.query_params:
            del st.query_params[name]

    def set_param(self, name: str, value: str) -> None:
        st.query_params[name] = value


def _get_controller() -> ResumeController:
    if "resume_controller" not in st.session_state:
        location = StreamlitLocation()
        st.session_state.resume_controller = ResumeController(
            identity=resolve_identity(location.query_params()),
            gateway=HttpAssessmentGateway(API_BASE_URL, timeout=REQUEST_TIMEOUT_SECONDS),
            drafts=DraftStore(JsonFileStorage(DRAFT_FILE), namespace=DRAFT_NAMESPACE),
            location=location,
            timeout=RESUME_TIMEOUT_SECONDS,
        )
    return st.session_state.resume_controller


def _get_runner(controller: ResumeController) -> AssessmentFlowRunner:
    if "flow_runner" not in st.session_state:
        state = controller.state
        st.session_state.flow_runner = AssessmentFlowRunner(
            version=controller.identity.version,
            gateway=controller.gateway,
            drafts=controller.drafts,
            resume_data=state.data if isinstance(state, Resuming) else None,
            upgrade_from_token=controller.identity.flow_upgrade_token,
        )
    return st.session_state.flow_runner


def _clear_answer_widgets() -> None:
    """청크가 바뀌면 이전 청크의 라디오 위젯 값을 버린다."""
    for key in [k for k in st.session_state if str(k).startswith("answer_")]:
        del st.session_state[key]


def _submit(runner: AssessmentFlowRunner) -> None:
    with st.spinner("Saving your answers..."):
        asyncio.run(runner.submit_chunk())
    if runner.phase is not FlowPhase.ERROR:
        _clear_answer_widgets()
    st.rerun()


def _render_flow(controller: ResumeController) -> None:
    runner = _get_runner(controller)

    if runner.phase is FlowPhase.STARTING:
        with st.spinner("Loading..."):
            asyncio.run(runner.start())
        if runner.token:
            # 새로 받은 토큰을 URL에 싣는다. upgrade_from 은 한 번 쓰고 버린다.
            controller.location.remove_param(UPGRADE_FROM_PARAM)
            if controller.location.query_params().get(TOKEN_PARAM) != runner.token:
                controller.location.set_param(TOKEN_PARAM, runner.token)

    if runner.phase is FlowPhase.ERROR:
        st.error(runner.error or "Something went wrong.")
        if st.button("Try again", key="flow_retry", type="primary"):
            with st.spinner("Retrying..."):
                asyncio.run(runner.retry())
            st.rerun()
        return

    if runner.phase is FlowPhase.COMPLETE:
        st.success("Assessment complete. Your results are being prepared.")
        return

    question = runner.current_question
    if question is None:
        return

    progress_bar.render(
        runner.current_chunk, runner.total_chunks, len(runner.answers), len(runner.questions)
    )

    selected = qcard.render(
        question=question,
        question_number=runner.question_index + 1,
        total=len(runner.questions),
        saved_answer=runner.answers.get(question.id),
    )
    # 선택한 답을 즉시 드래프트에 저장
    if selected is not None and runner.answers.get(question.id) != selected:
        runner.select_answer(question.id, selected)

    st.markdown("<br>", unsafe_allow_html=True)
    nav_left, nav_center, nav_right = st.columns([1, 2, 1])

    with nav_left:
        if runner.question_index > 0:
            st.button("← Back", key="prev_btn", use_container_width=True, on_click=runner.go_back)

    with nav_center:
        st.markdown(
            f"<p style='text-align:center; font-size:0.85rem; color:#9ca3af; padding-top:8px;'>"
            f"{runner.question_index + 1} / {len(runner.questions)}</p>",
            unsafe_allow_html=True,
        )

    with nav_right:
        if runner.question_index < len(runner.questions) - 1:
            st.button(
                "Next →",
                key="next_btn",
                type="primary",
                use_container_width=True,
                disabled=question.id not in runner.answers,
                on_click=runner.advance,
            )
        elif st.button(
            "Submit section →",
            key="submit_chunk",
            type="primary",
            use_container_width=True,
            disabled=not runner.chunk_complete,
        ):
            _submit(runner)


def render() -> None:
    """진단 화면 렌더링."""
    controller = _get_controller()

    if controller.render_target == "loading":
        with st.spinner("Loading..."):
            asyncio.run(controller.check())

    if controller.render_target == "prompt":
        resume_prompt.render(
            controller.state.data,
            on_continue=controller.continue_session,
            on_start_fresh=controller.start_fresh,
        )
        return

    _render_flow(controller)
