"""
views/components/resume_prompt.py

재개 여부를 묻는 화면. 자동 전이는 없다. 사용자가 둘 중 하나를 눌러야 한다.
"""

from __future__ import annotations

from typing import Callable

import streamlit as st

from leadership_assessment.models.session_state import ResumeData


def render(data: ResumeData, on_continue: Callable[[], object], on_start_fresh: Callable[[], object]) -> None:
    d = data.descriptor

    st.markdown(
        "<span style='font-size:0.65rem; letter-spacing:0.25em;'>[ RESUME ]</span>",
        unsafe_allow_html=True,
    )
    st.markdown("## Pick up where you left off")
    st.caption(f"SECTION {d.current_chunk} OF {d.total_chunks}")
    st.write(
        "You have an in-progress assessment. Continue from where you "
        "stopped, or start a fresh session."
    )

    col_continue, col_fresh, _ = st.columns([1, 1, 2])
    with col_continue:
        st.button("Continue", key="resume_continue", type="primary", on_click=on_continue)
    with col_fresh:
        st.button("Start Fresh", key="resume_start_fresh", on_click=on_start_fresh)
