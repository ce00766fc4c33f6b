"""
Constants used throughout the receiver.

All project constants are centralized here for easy maintenance and configuration.
"""

# API configuration
API_PREFIX = "/api/v1"
API_KEY_HEADER = "x-api-key"
DEFAULT_REQUEST_TIMEOUT = 10  # Seconds

# Debounce configuration
DEBOUNCE_COOLDOWN_MS = 60000  # Minimum interval between notifications per campaign
LAST_SEEN_KEY_PREFIX = "last_seen_"

# Rule cache configuration
CAMPAIGNS_CACHE_KEY = "campaigns"
DEFAULT_ORGANIZATION = "default"
DEFAULT_CACHE_DIR = "~/.beacon-receiver/cache"

# Reporting defaults
CAMPAIGN_TRIGGERED_EVENT = "campaign_triggered"
DEFAULT_BATTERY_LEVEL = 100  # Reported when the scanner supplies no battery data
DEFAULT_DEVICE_ID = "device-123"

# Dispatcher defaults
DEFAULT_DISPATCH_WORKERS = 4
DEFAULT_DISPATCH_BACKLOG = 32  # Queued tasks beyond the running ones; more are dropped

# Scanner defaults
DEFAULT_REGION_UUID = "fda50693-a4e2-4fb1-afcf-c6eb07647825"
APPLE_COMPANY_ID = 0x004C
IBEACON_PREFIX = b"\x02\x15"
IBEACON_PAYLOAD_LENGTH = 23  # prefix(2) + uuid(16) + major(2) + minor(2) + tx_power(1)
DEFAULT_TX_POWER = -59
DEFAULT_PATH_LOSS_N = 2.0

# Notifier defaults
DEFAULT_NOTIFY_COMMAND = "notify-send"
DEFAULT_NOTIFY_TIMEOUT = 5  # Seconds

# Status messages shown to the user
STATUS_INITIALIZING = "Initializing..."
STATUS_FETCHING = "Fetching campaigns..."
STATUS_OFFLINE = "Offline Mode: Using cached rules."
