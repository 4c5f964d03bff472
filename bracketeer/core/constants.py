"""Global constants for the bracketeer application."""

# Document store collections
TOURNAMENTS_COLLECTION = "tournaments"
USERS_COLLECTION = "users"
COMMENTS_COLLECTION = "comments"
COLLECTIONS = (TOURNAMENTS_COLLECTION, USERS_COLLECTION, COMMENTS_COLLECTION)

# Store backends
STORE_FIRESTORE = "firestore"
STORE_FILESYSTEM = "filesystem"

# Bracket rules
MIN_PARTICIPANTS = 2

# Participant pagination
DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10

# Accounts
MIN_PASSWORD_LENGTH = 6
PROFILE_FIELDS = (
    "stats",
    "info",
    "email",
    "age",
    "nativeLanguage",
    "colorPreference",
)

# Results e-mail
RESULTS_PODIUM_SIZE = 3

# Email-related constants
SMTP_AUTH_ERROR_CODE = 534
