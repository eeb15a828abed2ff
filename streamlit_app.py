"""
streamlit_app.py — 리더십 진단 UI 진입점

    streamlit run streamlit_app.py   (API 서버 주소는 ASSESSMENT_API_URL)
"""

import logging

import streamlit as st

from leadership_assessment.views import assess_view

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')

st.set_page_config(page_title="Leadership Assessment", page_icon="🧭", layout="centered")

assess_view.render()
