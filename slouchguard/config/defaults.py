"""
Default configuration values for SlouchGuard
"""

# Posture thresholds
POSTURE_THRESHOLDS = {
    'slouch_decrease_threshold': 0.10,  # 10% drop in ear-shoulder vertical separation
    'persistence_frames': 10,  # consecutive bad ticks before a slouch is confirmed
    'min_landmark_visibility': 0.0,  # 0 disables visibility gating
}

# Timing settings (milliseconds)
TIMING_SETTINGS = {
    'calibration_duration_ms': 3000,  # default 3 sec
    'calibration_tick_ms': 1000,  # calibration samples at 1 Hz
    'monitoring_tick_ms': 500,  # 10 persistence frames ~ 5 sec to confirm
    'history_retention_ms': 2500,
    'alert_cooldown_ms': 3000,
}

# Which reference the classifier compares against: "baseline" or "rolling"
REFERENCE_MODE = 'baseline'

# Camera settings
CAMERA_SETTINGS = {
    'camera_id': 0,
    'target_fps': 15,
}

# MediaPipe model settings
MODEL_SETTINGS = {
    'model_path': './models/pose_landmarker_full.task',
    'running_mode': 'VIDEO',
    'min_pose_detection_confidence': 0.5,
    'min_pose_presence_confidence': 0.5,
    'min_tracking_confidence': 0.5,
}

# Alert messages
ALERT_MESSAGES = {
    'slouching': "Slouching! Sit straight!",
    'slouching_pending': "Posture slipping...",
    'good_posture': "Good posture!",
    'indeterminate': "Adjust to see your ears and shoulders!",
    'no_subject': "No person detected. Please adjust your position.",
    'calibration_instruction': "Calibrating good posture... Sit up straight.",
    'calibration_complete': "Calibration complete! Baseline established.",
    'calibration_failed': "Calibration failed: No person detected. Please try again.",
    'paused': "Tracking paused.",
    'resumed': "Tracking resumed.",
}

# Overlay colour per reported state (hex, consumed by renderers)
COLOR_HINTS = {
    'calibrating': '#00FFFF',
    'good': '#00FF00',
    'slouching_pending': '#FFA500',
    'slouching_confirmed': '#FF0000',
    'indeterminate': '#FFFF00',
    'no_subject': '#808080',
}

# Alert sound played by the desktop/web front-ends
ALERT_SOUND_FILE = './assets/alert.wav'
