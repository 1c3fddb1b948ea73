"""
Default configuration values for NeckSense
"""
import os

# Tech neck heuristic constants (forward ratio = horizontal ear-shoulder offset / vertical neck length)
TECH_NECK_THRESHOLDS = {
    'forward_ratio_threshold': 0.15,  # ratio > threshold => tech neck
    'score_zero_ratio': 0.3,  # ratio at which the posture score reaches 0
}

# Score bands for the status badge (lower bound inclusive)
SCORE_BANDS = [
    (80, "Excellent"),
    (50, "Fair"),
    (0, "Poor"),
]

# Camera capture profile
CAMERA_SETTINGS = {
    'camera_id': 0,
    'ideal_width': 640,
    'ideal_height': 480,
    'min_width': 320,
    'min_height': 240,
    'max_width': 1280,
    'max_height': 720,
    'facing_mode': 'user',  # front-facing
}

# MediaPipe model settings
MODEL_SETTINGS = {
    'model_path': os.getenv("NECKSENSE_MODEL_PATH", "./models/pose_landmarker_lite.task"),
    'num_poses': 2,
    'min_pose_detection_confidence': 0.5,
    'min_pose_presence_confidence': 0.5,
    'min_tracking_confidence': 0.5,
}

# Session loop settings
SESSION_SETTINGS = {
    'display_refresh_hz': 60,
    'inference_timeout_ms': 1000,  # abandon a detect request with no result after this
}

# User-facing error messages
ERROR_MESSAGES = {
    'capture_unavailable': "Camera not supported on this device.",
    'permission_denied': "Camera permission denied. Please allow camera access and try again.",
    'device_not_found': "No camera found on this device.",
    'device_busy': "Camera is already in use by another application.",
    'unsupported': "The camera cannot deliver a supported resolution.",
    'model_load_failed': "Failed to load the pose model. Please reload and try again.",
}

EXERCISE_TIPS = [
    {
        'title': "Chin Tucks",
        'description': "Pull your chin back towards your neck, creating a double chin. Hold for 5 seconds.",
        'frequency': "10 reps, 3x daily",
        'icon': "🔄",
        'duration': "2 min",
    },
    {
        'title': "Neck Stretches",
        'description': "Gently tilt your head to each side, holding for 15-30 seconds.",
        'frequency': "3 sets each direction",
        'icon': "↔️",
        'duration': "3 min",
    },
    {
        'title': "Upper Trap Stretch",
        'description': "Tilt head to one side while pulling opposite shoulder down.",
        'frequency': "Hold 30 sec each side",
        'icon': "⬇️",
        'duration': "2 min",
    },
    {
        'title': "Wall Angels",
        'description': "Stand against wall, move arms up and down like making snow angels.",
        'frequency': "15 reps, 3 sets",
        'icon': "👼",
        'duration': "4 min",
    },
    {
        'title': "Doorway Chest Stretch",
        'description': "Place forearm on doorframe, step forward to stretch chest.",
        'frequency': "Hold 30 sec each arm",
        'icon': "🚪",
        'duration': "2 min",
    },
]

PREVENTION_TIPS = [
    {
        'category': "Phone Usage",
        'icon': "📱",
        'tips': [
            "Hold phone at eye level",
            "Use voice-to-text when possible",
            "Take breaks every 15 minutes",
            "Use a phone stand or holder",
        ],
    },
    {
        'category': "Workstation Setup",
        'icon': "🖥️",
        'tips': ["Monitor at eye level", "Feet flat on floor", "Shoulders relaxed", "Elbows at 90 degrees"],
    },
    {
        'category': "Break Reminders",
        'icon': "⏰",
        'tips': [
            "Take breaks every 30 minutes",
            "Look away from screen regularly",
            "Stand and stretch hourly",
            "Practice the 20-20-20 rule",
        ],
    },
]
