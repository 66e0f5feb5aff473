"""Policy constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

# Reconciliation
DISCREPANCY_THRESHOLD_MINUTES = 15
STANDARD_WORKING_HOURS = 8
MAX_HOURS_PER_DAY = 24
DEFAULT_MAX_WORKING_HOURS = 8
DEFAULT_LATE_AFTER = time(9, 15)

# Geolocation
DEFAULT_OFFICE_RADIUS_METERS = 100
EARTH_RADIUS_METERS = 6_371_000
MAX_REASONABLE_VELOCITY_MPS = 50
BUSINESS_HOURS_START = 6
BUSINESS_HOURS_END = 22
SUSPICIOUS_ACCURACY_METERS = 10

# Verification scoring
EXPECTED_CHECKIN_HOUR = 9
LOCATION_DRIFT_METERS = 1000

# Import
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_IMPORT_ROWS = 50_000
CLOSE_MATCH_MINUTES = 15
MINOR_DRIFT_MINUTES = 30

# Payroll
REQUIRED_DAYS_CEILING = 26
OVERTIME_MULTIPLIER = 1.5
PERFECT_ATTENDANCE_RATE = 0.05
EFFICIENCY_BONUS_RATE = 0.03
POOR_ATTENDANCE_RATE = 0.05
OVERTIME_EXCELLENCE_HOURS = 20
OVERTIME_EXCELLENCE_BONUS = 500
LATE_DAYS_THRESHOLD = 3
LATE_PENALTY_PER_DAY = 50
DISCREPANCY_COUNT_THRESHOLD = 2
DISCREPANCY_PENALTY_EACH = 100
