"""
Logging configuration for NeckSense.
Silences third-party framework logs and sets up the application's own loggers.
"""

import logging
import os
import warnings

import absl.logging

DEBUG = os.getenv("NECKSENSE_DEBUG", "0") in ("1", "true", "True")

# Top-level packages of this application
APP_LOGGERS = ['core', 'utils', 'config', 'main', 'necksense_web']


def configure_silent_logging():
    # Suppress all warnings
    warnings.filterwarnings('ignore')

    # Configure root logger
    logging.getLogger().setLevel(logging.CRITICAL)

    # Suppress specific loggers
    LOGGERS_TO_DISABLE = [
        'mediapipe',
        'mediapipe.python',
        'tensorflow',
        'absl',
        'matplotlib',
        'PIL',
        'streamlit',
        'aiortc',
        'aioice',
    ]

    for logger_name in LOGGERS_TO_DISABLE:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.CRITICAL)
        logger.propagate = False

    # Environment variables for C++ logs
    os.environ["GLOG_minloglevel"] = "3"
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"
    os.environ["MEDIAPIPE_DISABLE_GPU"] = "1"
    os.environ["METAL_DEVICE_WRAPPER_TYPE"] = "1"

    absl.logging.set_verbosity(absl.logging.FATAL)
    absl.logging.use_absl_handler()


def configure_app_logging(debug: bool = DEBUG) -> None:
    """Attach one stream handler to the application loggers (DEBUG with NECKSENSE_DEBUG=1)"""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[NeckSense] %(levelname)s %(name)s: %(message)s"))
    level = logging.DEBUG if debug else logging.INFO

    for name in APP_LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.setLevel(level)
        logger.propagate = False
