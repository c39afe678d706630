"""Global constants for the rpsbracket application."""

# Collection names
TOURNAMENTS_COLLECTION = "tournaments"
MATCHES_COLLECTION = "matches"

# Firestore allows 500 writes per batch; stay below it
FIRESTORE_BATCH_LIMIT = 400

# Match rules
WINS_REQUIRED = 3
MIN_PLAYERS = 2

# Game codes
GAME_CODE_LENGTH = 6
GAME_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
GAME_CODE_ATTEMPTS = 10

# Player input
DISPLAY_NAME_MAX_LENGTH = 24
TOURNAMENT_NAME_MAX_LENGTH = 60
