"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Timing (seconds)
# ------------------------------------------------------------------

TICK_INTERVAL_S = 0.5
STALENESS_THRESHOLD_S = 3.0
OFFLINE_GRACE_S = 3.0

# ------------------------------------------------------------------
# Simulation
# ------------------------------------------------------------------

# The server and client simulators are independent and fill at
# different rates; both values are kept as observed in the field.
SERVER_SIM_INCREMENT = 2.0
CLIENT_SIM_INCREMENT = 0.5

PERCENT_MIN = 0.0
PERCENT_MAX = 100.0

# Level is expressed as empty space in the same unit as the dashboard.
CAPACITY_UNIT = 100.0

# ------------------------------------------------------------------
# History
# ------------------------------------------------------------------

DURABLE_CAPACITY = 500
MEMORY_CAPACITY = 50
HISTORY_LIMIT = 50
CLIENT_VIEW_WINDOW = 20

# ------------------------------------------------------------------
# Push channel event names
# ------------------------------------------------------------------

EVENT_NEW_READING = "new_reading"
EVENT_MOTOR_UPDATE = "motor_update"
EVENT_HISTORY_DATA = "history_data"

CHANNEL_EVENTS: frozenset[str] = frozenset({EVENT_NEW_READING, EVENT_MOTOR_UPDATE, EVENT_HISTORY_DATA})
