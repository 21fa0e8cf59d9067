"""
Streamlit UI for SlouchGuard (browser-first).

Responsibilities:
- Video processing (WebRTC processor feeding the posture session)
- Operator controls (pause / resume / recalibrate / overlay toggle)
- Status, calibration progress and alert rendering

Threading: the WebRTC processor runs on its own worker thread and owns the
PostureSession. The Streamlit script thread never calls the session; it posts
control commands to a queue that the worker drains before every poll, and it
only reads the status snapshot the worker publishes.
"""

from slouchguard.utils.logging_config import configure_logging
logger = configure_logging()  # Must be first import

import html
import queue
import time

import av
import streamlit as st
from streamlit_webrtc import VideoProcessorBase, WebRtcMode, webrtc_streamer

from slouchguard.config.defaults import ALERT_MESSAGES, ALERT_SOUND_FILE, COLOR_HINTS
from slouchguard.config.settings import EngineConfig
from slouchguard.core.processing import FrameProcessor
from slouchguard.core.session import PostureSession, SessionState
from slouchguard.utils.camera import draw_overlay
from slouchguard.utils.system_notifier import SystemNotifier

system_notifier = SystemNotifier()

CONTROL_COMMANDS = ("pause", "resume", "recalibrate", "toggle_visualization")

st.set_page_config(page_title="SlouchGuard", layout="wide", initial_sidebar_state="expanded")

st.markdown("""
<style>
    .main-title { font-size: 2.3rem; font-weight: 700; margin-bottom: 0.25rem; }
    .subtitle { color: #888; font-size: 0.9rem; margin-bottom: 1.5rem; }
    .status-badge { padding: 10px 14px; border-radius: 10px; color: #fff; font-weight: 600; text-align: center; }
</style>
""", unsafe_allow_html=True)

st.markdown('<h1 class="main-title">SlouchGuard</h1>', unsafe_allow_html=True)
st.markdown('<p class="subtitle">Real-time slouch detection, processed locally</p>', unsafe_allow_html=True)

with st.sidebar:
    st.markdown("### ⚙️ Configuration")
    reference_mode = st.radio(
        "Reference", ["baseline", "rolling"], index=0,
        help="Baseline: compare against a calibrated good posture. Rolling: compare against your last few seconds.",
    )
    enable_sound = st.checkbox("Sound Alerts", value=True)
    enable_system_notifications = st.checkbox("System Notifications", value=False)

    st.markdown("### 🎛 Controls")
    col_a, col_b = st.columns(2)
    pause_clicked = col_a.button("⏸ Pause", use_container_width=True)
    resume_clicked = col_b.button("▶ Resume", use_container_width=True)
    recalibrate_clicked = st.button("🔄 Recalibrate", use_container_width=True)
    overlay_clicked = st.button("👁 Toggle Overlay", use_container_width=True)

    st.markdown("### 🎯 Calibration")
    calibration_placeholder = st.empty()
    st.markdown("### 🧘 Posture")
    posture_placeholder = st.empty()
    alerts_placeholder = st.empty()
    with st.expander("📈 Raw Status", expanded=False):
        raw_placeholder = st.empty()


# ---------------------------
# Video Processor
# ---------------------------
class _VideoProcessor(VideoProcessorBase):
    def __init__(self, mode: str = "baseline"):
        self.commands: "queue.Queue[str]" = queue.Queue()
        self.frame_processor = FrameProcessor()
        self.detector_ready = self.frame_processor.initialize()
        self.session = PostureSession(self.frame_processor, config=EngineConfig.from_env(reference_mode=mode))
        self.session.on_tick(self._on_tick)
        self.status = {}
        self.alert_count = 0
        self.last_alert_message = None
        self.enable_sound = True
        self.enable_notifications = False
        self._started = False

    def post(self, command: str) -> None:
        if command not in CONTROL_COMMANDS:
            raise ValueError(f"Unknown command: {command}")
        self.commands.put(command)

    def _drain_commands(self) -> None:
        while True:
            try:
                command = self.commands.get_nowait()
            except queue.Empty:
                return
            getattr(self.session, command)()

    def _on_tick(self, result) -> None:
        if not result.should_alert:
            return
        self.alert_count += 1
        self.last_alert_message = result.message
        if self.enable_sound:
            system_notifier.play_sound(ALERT_SOUND_FILE)
        if self.enable_notifications:
            system_notifier.notify("SlouchGuard", result.message)

    def _overlay(self):
        session = self.session
        if session.state is SessionState.CALIBRATING and session.last_progress:
            return session.last_progress.detection, COLOR_HINTS["calibrating"]
        if session.state is SessionState.MONITORING and session.last_result:
            return session.last_result.detection, session.last_result.color_hint
        return None, COLOR_HINTS["no_subject"]

    def _publish_status(self) -> None:
        session = self.session
        status = session.get_status()
        if session.state is SessionState.CALIBRATING and session.last_progress:
            status["message"] = session.last_progress.message
        elif session.state is SessionState.PAUSED:
            status["message"] = ALERT_MESSAGES["paused"]
        elif session.last_result:
            status["message"] = session.last_result.message
            status["result"] = session.last_result.as_dict()
        elif session.calibration_failed:
            status["message"] = ALERT_MESSAGES["calibration_failed"]
        status["alert_count"] = self.alert_count
        self.status = status

    def recv(self, frame: av.VideoFrame) -> av.VideoFrame:
        bgr = frame.to_ndarray(format="bgr24")
        if not self.detector_ready:
            return av.VideoFrame.from_ndarray(bgr, format="bgr24")

        self.frame_processor.submit_frame(bgr)
        if not self._started:
            # first frame means the camera is ready
            self.session.start()
            self._started = True

        self._drain_commands()
        self.session.poll()
        self._publish_status()

        landmarks, color = self._overlay()
        out = draw_overlay(bgr, landmarks, color, self.session.visualization_enabled)
        return av.VideoFrame.from_ndarray(out, format="bgr24")

    def on_ended(self):
        self.session.stop()
        self.frame_processor.cleanup()


ctx = webrtc_streamer(
    key=f"slouchguard-{reference_mode}",
    mode=WebRtcMode.SENDRECV,
    media_stream_constraints={"video": True, "audio": False},
    video_processor_factory=lambda: _VideoProcessor(reference_mode),
)


# ---------------------------
# Rendering Helpers
# ---------------------------
def _badge(placeholder, text: str, color: str) -> None:
    placeholder.markdown(
        f"<div class='status-badge' style='background:{color}'>{html.escape(text)}</div>",
        unsafe_allow_html=True,
    )


def render_calibration(status: dict) -> None:
    cal = status.get("calibration", {})
    state = cal.get("state")
    if status.get("reference_mode") == "rolling":
        _badge(calibration_placeholder, "Rolling reference (no calibration)", "#596164")
    elif state == "active":
        _badge(calibration_placeholder, f"⏳ Calibrating... {cal.get('seconds_remaining', 0)}s left", "#0097a7")
    elif state == "complete":
        _badge(calibration_placeholder, f"✓ Baseline {status.get('baseline') or 0:.3f}", "#11998e")
    elif state == "failed":
        _badge(calibration_placeholder, "✗ Calibration failed, recalibrate", "#c0392b")
    else:
        _badge(calibration_placeholder, "Waiting for camera", "#868f96")


def render_posture(status: dict) -> None:
    result = status.get("result")
    message = status.get("message", "Starting...")
    if status.get("state") == SessionState.PAUSED.value:
        color = "#868f96"
    elif result and status.get("state") == SessionState.MONITORING.value:
        color = COLOR_HINTS.get(result["state"], "#868f96")
    else:
        color = COLOR_HINTS["calibrating"]
    _badge(posture_placeholder, message, color)
    count = status.get("alert_count", 0)
    alerts_placeholder.markdown(f"<small>Alerts this session: <b>{count}</b></small>", unsafe_allow_html=True)


def main_loop(vp):
    update_interval = 0.5
    while ctx.state.playing:
        status = dict(vp.status)
        render_calibration(status)
        render_posture(status)
        raw_placeholder.json(status)
        time.sleep(update_interval)


# ---------------------------
# Top-Level Control
# ---------------------------
if ctx.state.playing and ctx.video_processor:
    vp = ctx.video_processor
    vp.enable_sound = enable_sound
    vp.enable_notifications = enable_system_notifications
    if not vp.detector_ready:
        st.error("Could not load the pose model. Check MODEL_SETTINGS['model_path'].")
    if pause_clicked:
        vp.post("pause")
    if resume_clicked:
        vp.post("resume")
    if recalibrate_clicked:
        vp.post("recalibrate")
    if overlay_clicked:
        vp.post("toggle_visualization")
    main_loop(vp)
else:
    st.info("Grant camera access and press START to begin posture monitoring. Video is processed locally.")
