"""
Streamlit UI for NeckSense (browser-first).

Responsibilities:
- Video processing (WebRTC processor owning one SessionLoop per camera session)
- Posture status, score and detection counter rendering
- Exercise and prevention tip tabs
"""

from utils.logging_config import configure_silent_logging, configure_app_logging
configure_silent_logging()  # Must be first import

import html
import logging
import time
from typing import Optional

import av
import streamlit as st
from streamlit_webrtc import VideoProcessorBase, WebRtcMode, webrtc_streamer

from config.defaults import CAMERA_SETTINGS, EXERCISE_TIPS, MODEL_SETTINGS, PREVENTION_TIPS
from core.capabilities import CaptureProfile
from core.errors import ModelLoadError, NeckSenseError
from core.pose_detector import PoseDetector
from core.session_loop import SessionLoop
from utils.camera import OpenCvRenderSink, PushCamera
from utils.scheduler import FrameScheduler

configure_app_logging()
logger = logging.getLogger("necksense_web")

CAPTURE_PROFILE = CaptureProfile.from_settings(CAMERA_SETTINGS)

st.set_page_config(page_title="NeckSense 🦒", layout="wide", initial_sidebar_state="collapsed")

st.markdown("""
<style>
    .main-title {
        font-size: 2.3rem;
        font-weight: 700;
        background: linear-gradient(135deg, #3b82f6 0%, #6366f1 100%);
        -webkit-background-clip: text;
        -webkit-text-fill-color: transparent;
        text-align: center;
        margin-bottom: 0.25rem;
    }
    .subtitle {
        color: #888;
        font-size: 0.9rem;
        text-align: center;
        margin-bottom: 1.5rem;
    }
    .tip-card {
        border-radius: 12px;
        padding: 1rem;
        border: 1px solid #6366f130;
        background: linear-gradient(135deg, #3b82f610 0%, #6366f110 100%);
        margin-bottom: 0.75rem;
    }
</style>
""", unsafe_allow_html=True)

st.markdown('<h1 class="main-title">Tech Neck Detector</h1>', unsafe_allow_html=True)
st.markdown('<p class="subtitle">AI-powered posture analysis. Video is processed locally</p>', unsafe_allow_html=True)


# ---------------------------
# Model readiness
# ---------------------------
@st.cache_resource(show_spinner="Loading AI model... This may take a moment")
def _check_model(model_path: str) -> bool:
    """Load the pose model once to surface ModelLoadError before any session starts."""
    detector = PoseDetector(model_path)
    detector.initialize()
    detector.cleanup()
    return True


# ---------------------------
# Video Processor
# ---------------------------
class _VideoProcessor(VideoProcessorBase):
    """One camera session: recv() is the display-refresh tick."""

    def __init__(self):
        self.error: Optional[NeckSenseError] = None
        self.camera = PushCamera()
        self.scheduler = FrameScheduler()
        self.render_sink = OpenCvRenderSink()
        self.pose_detector = PoseDetector(MODEL_SETTINGS["model_path"])
        self.session = SessionLoop(
            source=self.pose_detector,
            capture=self.camera,
            scheduler=self.scheduler,
            render=self.render_sink,
            profile=CAPTURE_PROFILE,
        )
        try:
            self.pose_detector.initialize()
            self.session.start()
        except NeckSenseError as e:
            logger.error("Session could not start: %s", e)
            self.error = e

    def recv(self, frame: av.VideoFrame) -> av.VideoFrame:
        bgr = frame.to_ndarray(format="bgr24")
        timestamp_ms = frame.time * 1000.0 if frame.time is not None else self.scheduler.now_ms()

        self.camera.push(bgr, timestamp_ms)
        self.scheduler.run_pending()

        annotated = self.render_sink.latest
        out = annotated if annotated is not None and annotated.shape == bgr.shape else bgr
        return av.VideoFrame.from_ndarray(out, format="bgr24")

    def on_ended(self):
        self.session.stop()
        self.pose_detector.cleanup()


# ---------------------------
# Rendering Helpers
# ---------------------------
def _chip(placeholder, label: str, value: str, gradient: str):
    placeholder.markdown(
        f"""<div style='padding:12px;border-radius:10px;background:{gradient};
        color:#fff;font-size:0.85rem;text-align:center;box-shadow:0 2px 8px rgba(0,0,0,0.1);line-height:1.3'>
        <div style='opacity:0.9;margin-bottom:4px'>{html.escape(label)}</div>
        <b style='font-size:1.3rem'>{html.escape(value)}</b></div>""",
        unsafe_allow_html=True
    )


GRADIENT_OK = "linear-gradient(135deg, #11998e 0%, #38ef7d 100%)"
GRADIENT_ALERT = "linear-gradient(135deg, #ee0979 0%, #ff6a00 100%)"
GRADIENT_INFO = "linear-gradient(135deg, #667eea 0%, #764ba2 100%)"
GRADIENT_IDLE = "linear-gradient(135deg, #868f96 0%, #596164 100%)"


def _reload_button():
    if st.button("🔄 Reload"):
        st.cache_resource.clear()
        st.rerun()


def render_session_status(vp, placeholders):
    """Draw the status chips. Returns the session error, if any, instead of drawing chips."""
    status_pl, score_pl, poses_pl, count_pl = placeholders
    error = vp.error or vp.session.last_error
    if error is not None:
        status_pl.error(error.user_message)
        return error

    state = vp.session.state
    result = state.last_result
    if result is None:
        _chip(status_pl, "Status", "No person detected", GRADIENT_IDLE)
        _chip(score_pl, "Posture Score", "-", GRADIENT_IDLE)
    elif result.has_tech_neck:
        _chip(status_pl, "Status", "⚠️ Tech neck detected", GRADIENT_ALERT)
        _chip(score_pl, "Posture Score", f"{result.score} ({result.band})", GRADIENT_ALERT)
    else:
        _chip(status_pl, "Status", "✓ Good posture", GRADIENT_OK)
        _chip(score_pl, "Posture Score", f"{result.score} ({result.band})", GRADIENT_OK)
    _chip(poses_pl, "Poses Detected", str(state.poses_detected), GRADIENT_INFO)
    _chip(count_pl, "Tech Neck Detections", str(state.detection_count), GRADIENT_INFO)
    return None


def render_exercises():
    for exercise in EXERCISE_TIPS:
        st.markdown(
            f"""<div class='tip-card'>
            <div style='display:flex;gap:12px;align-items:flex-start'>
                <div style='font-size:1.6rem'>{exercise['icon']}</div>
                <div>
                    <b>{html.escape(exercise['title'])}</b>
                    <span style='float:right;color:#6366f1;font-size:0.8rem'>{html.escape(exercise['duration'])}</span>
                    <div style='color:#555;font-size:0.9rem;margin:4px 0'>{html.escape(exercise['description'])}</div>
                    <small style='color:#888'>{html.escape(exercise['frequency'])}</small>
                </div>
            </div></div>""",
            unsafe_allow_html=True
        )


def render_prevention_tips():
    for category in PREVENTION_TIPS:
        items = "".join(f"<li>{html.escape(tip)}</li>" for tip in category["tips"])
        st.markdown(
            f"""<div class='tip-card'>
            <b>{category['icon']} {html.escape(category['category'])}</b>
            <ul style='margin:6px 0 0 0;color:#555;font-size:0.9rem'>{items}</ul></div>""",
            unsafe_allow_html=True
        )


def main_loop(ctx, placeholders) -> Optional[ModelLoadError]:
    update_interval = 0.5
    while ctx.state.playing:
        vp = ctx.video_processor
        if vp is not None:
            error = render_session_status(vp, placeholders)
            if isinstance(error, ModelLoadError):
                return error
        time.sleep(update_interval)
    return None


# ---------------------------
# Top-Level Control
# ---------------------------
camera_tab, exercises_tab, tips_tab = st.tabs(["📷 Camera", "🏃 Exercises", "💡 Tips"])

with exercises_tab:
    render_exercises()

with tips_tab:
    render_prevention_tips()

with camera_tab:
    try:
        _check_model(MODEL_SETTINGS["model_path"])
    except ModelLoadError as e:
        logger.error("Model load failed: %s", e)
        st.error(e.user_message)
        _reload_button()
        st.stop()

    video_col, status_col = st.columns([3, 2])
    with video_col:
        ctx = webrtc_streamer(
            key="necksense-live",
            mode=WebRtcMode.SENDRECV,
            media_stream_constraints=CAPTURE_PROFILE.as_media_constraints(),
            video_processor_factory=_VideoProcessor,
        )
    with status_col:
        placeholders = (st.empty(), st.empty(), st.empty(), st.empty())

    if ctx.state.playing:
        if main_loop(ctx, placeholders) is not None:
            # the session stopped itself; the model has to be loaded again
            with status_col:
                _reload_button()
    else:
        st.markdown("""
            <div style='padding:2rem;border-radius:12px;background:linear-gradient(135deg, #667eea15 0%, #764ba215 100%);
            border:2px dashed #667eea50;text-align:center;margin:2rem 0'>
                <div style='font-size:3rem;margin-bottom:1rem'>📹</div>
                <h3 style='color:#667eea;margin-bottom:0.5rem'>Camera Access Required</h3>
                <p style='color:#888;margin-bottom:1rem'>Press START and allow camera access to check your posture</p>
                <small style='color:#aaa'>Your video is processed locally and never uploaded</small>
            </div>
        """, unsafe_allow_html=True)
