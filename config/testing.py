from .config import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

STORAGE = "memory"
AUTO_INIT_DB = False

REFERENCE_TIMEZONE = "Asia/Kolkata"
OFFICES = [
    {
        "id": "main",
        "name": "Main Office",
        "latitude": 19.1628987,
        "longitude": 72.8355871,
        "radius": 100.0,
        "address": "Main Office Location",
    }
]
BLOCK_ON_HIGH_RISK = False

MAX_WORKING_HOURS = 8.0
AUTO_CLOSE_ENABLED = True
BREAK_MINUTES = 0
LATE_AFTER = "09:15"
CHECKOUT_RULE = "none"
