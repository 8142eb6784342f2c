# ui.py
"""
Main UI page for the Board Game Recommender.

Take or upload a photo of your shelf, pick a player count and a playing time,
and the recommendations stream in below as they are generated.
"""

import logging

import streamlit as st

from src.client.api_client import RecommenderApiClient
from src.client.image_input import CaptureStatus, ImageInput
from src.client.stream_consumer import PreconditionError, RecommendationSession, StreamStatus
from src.models.schemas import PLAYER_COUNT_OPTIONS, PLAYING_TIME_OPTIONS
from src.utils.config_loader import get_config

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)-8s] [%(module)-20s] %(message)s')

# --- Page Configuration ---
st.set_page_config(
    page_title="Board Game Recommender",
    page_icon="🎲",
    layout="centered",
)

config = get_config()

# --- Session State Initialization ---
if "image_input" not in st.session_state:
    st.session_state.image_input = ImageInput.from_config(config)
if "recommendations" not in st.session_state:
    st.session_state.recommendations = RecommendationSession(RecommenderApiClient.from_config(config))

image_input: ImageInput = st.session_state.image_input
session: RecommendationSession = st.session_state.recommendations

# --- UI Title ---
st.title("🎲 Board Game Recommender")
st.caption("Show me your collection and I'll tell you what to play tonight.")

# --- Image Input ---
st.subheader("Your collection")
camera_tab, upload_tab = st.tabs(["📷 Camera", "📁 Upload"])

with camera_tab:
    snapshot = st.camera_input("Point your camera at your board game shelf")
    if snapshot is not None:
        snapshot_id = getattr(snapshot, "file_id", snapshot.name)
        if image_input.is_new_source(snapshot_id):
            if image_input.capture(snapshot.getvalue(), snapshot.type or "image/jpeg", snapshot_id) \
                    is CaptureStatus.CAPTURED:
                st.toast("Image captured!")

with upload_tab:
    uploaded = st.file_uploader("Or drop a photo here", type=["jpg", "jpeg", "png", "webp"])
    if uploaded is not None:
        upload_id = getattr(uploaded, "file_id", uploaded.name)
        if image_input.is_new_source(upload_id):
            if image_input.upload(uploaded.getvalue(), uploaded.type, upload_id) is CaptureStatus.CAPTURED:
                st.toast("Image uploaded!")

if image_input.status is CaptureStatus.ERROR:
    st.error(image_input.error_message)
elif image_input.status is CaptureStatus.CAPTURED:
    st.image(image_input.image_bytes, caption="Selected photo")
    if st.button("Clear photo"):
        image_input.clear()
        st.rerun()

# --- Preferences ---
st.subheader("Preferences")
col1, col2 = st.columns(2)
player_count = col1.selectbox("Player Count", PLAYER_COUNT_OPTIONS, index=None, placeholder="Select...")
playing_time = col2.selectbox("Playing Time", PLAYING_TIME_OPTIONS, index=None, placeholder="Select...")

recommend_clicked = st.button(
    "Recommend Games",
    type="primary",
    disabled=image_input.data_url is None or session.is_streaming,
)

# --- Recommendations ---
st.subheader("Recommendations")
output_placeholder = st.empty()
session.on_update = lambda text: output_placeholder.markdown(text or "Thinking...")

if recommend_clicked:
    try:
        with st.spinner("Reading your shelf and asking the board game expert..."):
            session.run(image_input.data_url, player_count, playing_time)
    except PreconditionError as e:
        st.toast(str(e))

if session.status is StreamStatus.ERROR:
    st.error(session.error_message)
if session.identified_collection:
    st.caption("Identified: " + ", ".join(game.gameName for game in session.identified_collection))

if session.output:
    output_placeholder.markdown(session.output)
elif session.status is StreamStatus.DONE:
    output_placeholder.warning("The model did not return any recommendations. Please try again.")
else:
    output_placeholder.markdown("_Recommendations will appear here..._")
