"""Configuration for the Cloudy Calculator.

Every value can be overridden through an environment variable prefixed with
``CLOUDY_CALC_``.
"""

import os

# --- Storage ---
DATABASE = os.getenv("CLOUDY_CALC_DATABASE", "sessions.db")

# --- Web server ---
DEBUG_MODE = os.getenv("CLOUDY_CALC_DEBUG", "false").lower() == "true"
HOST = os.getenv("CLOUDY_CALC_HOST", "0.0.0.0")
PORT = int(os.getenv("CLOUDY_CALC_PORT", "5200"))

# --- Logging ---
LOG_LEVEL = os.getenv("CLOUDY_CALC_LOG_LEVEL", "INFO")

# --- Session limits ---
MAX_HISTORY = int(os.getenv("CLOUDY_CALC_MAX_HISTORY", "100"))  # input lines kept for recall
MAX_VARIABLES = int(os.getenv("CLOUDY_CALC_MAX_VARIABLES", "50"))  # not counting '@'
MAX_RESULTS = int(os.getenv("CLOUDY_CALC_MAX_RESULTS", "100"))  # result lines kept in the log

# --- CLI workspace ---
WORKSPACE_DIR = os.getenv(
    "CLOUDY_CALC_WORKSPACE_DIR",
    os.path.join(os.path.expanduser("~"), ".config", "cloudy_calc"),
)
HISTORY_FILE = os.getenv(
    "CLOUDY_CALC_HISTORY_FILE",
    os.path.join(os.path.expanduser("~"), ".cloudy_calc_history"),
)
