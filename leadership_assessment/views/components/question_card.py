"""
views/components/question_card.py

단일 문항(ClientQuestion)을 카드 형태로 렌더링하고
사용자의 선택을 반환하는 컴포넌트.
"""

from __future__ import annotations

from typing import Optional

import streamlit as st

from leadership_assessment.models.question_model import AnswerValue, ClientQuestion

LIKERT_LABELS = {
    1: "Strongly disagree",
    2: "Disagree",
    3: "Neutral",
    4: "Agree",
    5: "Strongly agree",
}


def render(
    question: ClientQuestion,
    question_number: int,
    total: int,
    saved_answer: Optional[AnswerValue] = None,
) -> Optional[AnswerValue]:
    """
    문항 카드를 렌더링하고 사용자가 고른 응답값을 반환한다.

    Args:
        question:        렌더링할 문항
        question_number: 청크 내 몇 번째 문항인지 (1-based 표시용)
        total:           청크 문항 수
        saved_answer:    드래프트/이전 선택 (없으면 None)

    Returns:
        likert 이면 1~5 정수, 선택형이면 보기 key. 아무것도 고르지 않았으면 None
    """

    # ── 문항 헤더 ──────────────────────────────────────────────────────────
    st.markdown(
        f"""
        <div style="display:flex; align-items:center; gap:10px; margin-bottom:12px;">
            <span class="question-number-badge">{question_number} / {total}</span>
        </div>
        """,
        unsafe_allow_html=True,
    )

    # ── 문항 본문 ──────────────────────────────────────────────────────────
    st.markdown(
        f"""
        <div class="question-card">
            <p style="font-size:1.05rem; font-weight:600; line-height:1.7; margin:0;">
                {question.text}
            </p>
        </div>
        """,
        unsafe_allow_html=True,
    )

    # ── 응답 선택 (Radio) ─────────────────────────────────────────────────
    if question.type == "likert":
        values: list[AnswerValue] = list(LIKERT_LABELS)
        labels = LIKERT_LABELS
    else:
        values = [o.key for o in question.options or []]
        labels = {o.key: o.text for o in question.options or []}

    radio_key = f"answer_{question.id}"

    # 위젯이 처음 그려질 때만 saved_answer가 기본값이 된다 (이후엔 위젯 상태 유지)
    current_val = st.session_state.get(radio_key, saved_answer)
    default_index = values.index(current_val) if current_val in values else None

    return st.radio(
        "Choose an answer",
        options=values,
        index=default_index,
        format_func=lambda v: labels.get(v, str(v)),
        key=radio_key,
        label_visibility="collapsed",
    )
