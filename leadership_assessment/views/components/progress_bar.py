"""
views/components/progress_bar.py

섹션(청크) 진행 현황 표시.
"""

import streamlit as st


def render(current_chunk: int, total_chunks: int, answered: int, chunk_size: int) -> None:
    """
    Args:
        current_chunk: 현재 섹션 (1-based)
        total_chunks:  전체 섹션 수
        answered:      현재 섹션에서 답한 문항 수
        chunk_size:    현재 섹션 문항 수
    """
    st.markdown(
        f"""
        <div style="display:flex; justify-content:space-between;
                    font-size:0.8rem; color:#6b7280; margin-bottom:4px;">
            <span>SECTION {current_chunk} OF {total_chunks}</span>
            <span><b>{answered}</b> / {chunk_size}</span>
        </div>
        """,
        unsafe_allow_html=True,
    )
    done = (current_chunk - 1 + (answered / chunk_size if chunk_size else 0)) / total_chunks if total_chunks else 0
    st.progress(min(max(done, 0.0), 1.0))
