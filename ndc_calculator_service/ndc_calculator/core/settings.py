import os

from ndc_calculator.core.env import load_env

load_env()

# ---------------------------
# Cache
# ---------------------------
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "1000"))

SIG_PARSE_TTL = 30 * 24 * 60 * 60
RXNORM_NAME_TTL = 7 * 24 * 60 * 60
RXNORM_PROPERTIES_TTL = 7 * 24 * 60 * 60
FDA_PACKAGES_TTL = 24 * 60 * 60
AUTOCOMPLETE_TTL = 24 * 60 * 60

# ---------------------------
# Upstream calls
# ---------------------------
RXNORM_BASE_URL = os.getenv("RXNORM_BASE_URL", "https://rxnav.nlm.nih.gov/REST")
FDA_NDC_URL = os.getenv("FDA_NDC_URL", "https://api.fda.gov/drug/ndc.json")
FDA_API_KEY = os.getenv("FDA_API_KEY", "")

REQUEST_TIMEOUT_S = float(os.getenv("REQUEST_TIMEOUT_S", "10"))

RETRY_MAX_ATTEMPTS = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
RETRY_INITIAL_DELAY_S = float(os.getenv("RETRY_INITIAL_DELAY_S", "1"))
RETRY_MAX_DELAY_S = float(os.getenv("RETRY_MAX_DELAY_S", "10"))
RETRY_BACKOFF_MULTIPLIER = float(os.getenv("RETRY_BACKOFF_MULTIPLIER", "2"))

RESOLVER_WORKERS = int(os.getenv("RESOLVER_WORKERS", "8"))

# ---------------------------
# Autocomplete
# ---------------------------
AUTOCOMPLETE_MIN_CHARS = 3
NDC_AUTOCOMPLETE_MIN_CHARS = 2
AUTOCOMPLETE_LIMIT = 20
# below this many name suggestions, openFDA generic names are consulted too
AUTOCOMPLETE_FDA_THRESHOLD = 10

# ---------------------------
# Instruction parsing
# ---------------------------
MATCHER_MIN_CONFIDENCE = 0.7
ACCEPT_CONFIDENCE = 0.8
MAX_REWRITE_DEPTH = 1

# ---------------------------
# Quantity / ranking policy
# ---------------------------
# as-needed instructions carry no frequency; this is the assumed doses per day
AS_NEEDED_DOSES_PER_DAY = float(os.getenv("AS_NEEDED_DOSES_PER_DAY", "1"))
MAX_DAYS_SUPPLY = 365

MAX_RESULTS = int(os.getenv("MAX_RESULTS", "5"))
MAX_PACKAGES = int(os.getenv("MAX_PACKAGES", "10"))
PREFERRED_BOOST = 20
OVERFILL_WARNING_PERCENT = 10.0
DEFAULT_INSULIN_STRENGTH = 100  # U-100

# 10-digit NDCs without dashes are read as 4-4-2 and padded to 5-4-2
NDC_PAD_TEN_DIGIT = os.getenv("NDC_PAD_TEN_DIGIT", "true").lower() == "true"

INTERNAL_SERVICE_SECRET_ENV = "INTERNAL_SERVICE_SECRET"
