"""Application configuration. Loads from environment and .env file."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")

# Output codecs offered to the client, in display order
OUTPUT_FORMATS = ["jpeg", "png", "webp", "avif", "heic"]
DEFAULT_OUTPUT_FORMAT = os.getenv("DEFAULT_OUTPUT_FORMAT", "jpeg").strip().lower()

# Quality search. Quality is a 0-1 float, mapped to the encoder's 0-100 scale.
DEFAULT_QUALITY = 0.92
SEARCH_QUALITY_LOW = 0.35
SEARCH_QUALITY_HIGH = 0.95
SEARCH_ITERATIONS = 8

# WebP encoder effort (Pillow "method", 0=fast .. 6=slowest/smallest)
ENCODER_EFFORT = int(os.getenv("ENCODER_EFFORT", "4"))

# Size presets (name -> fraction of the original byte size); custom takes a KB value
SIZE_PRESETS = {
    "same": 1.0,
    "large": 0.75,
    "medium": 0.5,
    "small": 0.25,
    "custom": None,
}

# HEIC/HEIF input decoding helper, imported on first use
HEIF_HELPER_MODULE = os.getenv("HEIF_HELPER_MODULE", "pillow_heif").strip()

# Limits (env)
MAX_IMAGES_PER_UPLOAD = int(os.getenv("MAX_IMAGES_PER_UPLOAD", "20"))
MAX_IMAGE_SIZE_MB = int(os.getenv("MAX_IMAGE_SIZE_MB", "25"))
MAX_IMAGE_SIZE_BYTES = MAX_IMAGE_SIZE_MB * 1024 * 1024

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
# CORS: comma-separated origins, e.g. "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("converter")
