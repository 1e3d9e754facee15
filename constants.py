import os

from dotenv import load_dotenv

load_dotenv()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

FRONTEND_URL = os.getenv("FRONTEND_URL", "*")
STATIC_DIR = os.getenv("STATIC_DIR", "public")

PERPLEXITY_API_URL = os.getenv("PERPLEXITY_API_URL", "https://api.perplexity.ai/chat/completions")
PERPLEXITY_API_KEY = os.getenv("PERPLEXITY_API_KEY", None)
PERPLEXITY_MODEL = os.getenv("PERPLEXITY_MODEL", "sonar-pro")
COMPLETION_TIMEOUT = float(os.getenv("COMPLETION_TIMEOUT", 30))

FEEDBACK_MAX_TOKENS = 1024
MODERATION_MAX_TOKENS = 2048

VIOLATION_BAN_THRESHOLD = 3
HISTORY_SUMMARY_LIMIT = 10

DENYLIST_WORDS = ("fuck", "shit", "damn", "hell", "bitch", "asshole", "crap")

GAME_SLOTS = ("player1", "player2")
ROOM_SLOTS = ("host", "guest")
