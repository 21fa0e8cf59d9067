"""
Logging configuration for SlouchGuard.
Routes our own loggers to the console and keeps MediaPipe / TensorFlow quiet.
"""

import logging
import os
import warnings
from typing import Optional

from slouchguard.config.settings import debug_enabled

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

NOISY_LOGGERS = [
    'mediapipe',
    'mediapipe.python',
    'tensorflow',
    'absl',
    'matplotlib',
    'PIL',
    'streamlit',
    'aioice',
    'aiortc',
]


def configure_silent_logging():
    # Third-party warnings are not actionable for the user
    warnings.filterwarnings('ignore')

    for logger_name in NOISY_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.CRITICAL)
        logger.propagate = False

    # Environment variables for C++ logs
    os.environ["GLOG_minloglevel"] = "3"
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"
    os.environ["MEDIAPIPE_DISABLE_GPU"] = "1"

    import absl.logging
    absl.logging.set_verbosity(absl.logging.FATAL)
    absl.logging.use_absl_handler()


def configure_logging(debug: Optional[bool] = None) -> logging.Logger:
    """Console logging for the slouchguard logger tree (DEBUG with SLOUCHGUARD_DEBUG=1)."""
    configure_silent_logging()
    if debug is None:
        debug = debug_enabled()

    logger = logging.getLogger("slouchguard")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(handler)
    logger.propagate = False
    return logger
