"""Internal constants shared across the package."""

# ------------------------------------------------------------------
# Store layout (Firebase Realtime Database paths)
# ------------------------------------------------------------------

BUSES_PATH = "buses"
STUDENTS_PATH = "students"
DRIVERS_PATH = "drivers"
BUS_LOCATIONS_PATH = "busLocations"
EMERGENCY_PATH = "Emergency"
BUS_LOGS_PATH = "busLogs"

# Indexed fields used for credential lookups.
READER_INDEX_FIELD = "rfidReaderUsername"
STUDENT_INDEX_FIELD = "studentId"
DRIVER_INDEX_FIELD = "driverId"

# ------------------------------------------------------------------
# Location tracking / retention
# ------------------------------------------------------------------

#: Angular displacement (degrees) below which a new fix is not written.
#: 0.00005 deg of latitude is roughly 5.5 m.
MOVEMENT_THRESHOLD_DEG = 0.00005

HISTORY_LIMIT = 500
RETENTION_WINDOW_SECONDS = 24 * 60 * 60

#: Accepted fixes kept in memory per reader for the predictor.
RECENT_FIX_COUNT = 10

KMH_PER_MS = 3.6

# ------------------------------------------------------------------
# ETA fallback
# ------------------------------------------------------------------

EARTH_RADIUS_KM = 6371.0088
AVERAGE_BUS_SPEED_KMH = 25.0
ETA_RANGE_LOW_FACTOR = 0.7
ETA_RANGE_HIGH_FACTOR = 1.5
MIN_ETA_MINUTES = 1

# ------------------------------------------------------------------
# Response messages
# ------------------------------------------------------------------

MSG_PROCESSED = "Update processed successfully"
MSG_CONFLICT = "Student is already checked in on another bus"
