import os

from dotenv import load_dotenv

load_dotenv()

# --- Store ---
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "promptform")

# --- Public links ---
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000")

# --- Google / Firebase ---
FIREBASE_SERVICE_ACCOUNT_JSON = os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON")
SERVICE_ACCOUNT_JSON = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON")  # JSON string or path
DRIVE_FOLDER_ID = os.getenv("DRIVE_FOLDER_ID")  # Folder to store uploads

# --- Generation backend ---
LLM_API_KEY = os.getenv("LLM_API_KEY") or os.getenv("GEMINI_API_KEY", "")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/")
# Most capable first
LLM_MODELS = [
    m.strip()
    for m in os.getenv("LLM_MODELS", "gemini-2.0-flash,gemini-1.5-flash,gemini-1.5-pro").split(",")
    if m.strip()
]

# --- Similarity service (optional, both required) ---
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL")
VECTOR_INDEX_NAME = os.getenv("VECTOR_INDEX_NAME")

# --- Retrieval ---
RETRIEVAL_LIMIT = int(os.getenv("RETRIEVAL_LIMIT", 5))
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", 3600))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
