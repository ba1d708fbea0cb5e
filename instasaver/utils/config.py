"""Configuration management for InstaSaver."""

import os
from pathlib import Path
from typing import List, Optional

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Download configuration
DOWNLOAD_DIR = Path(os.environ.get("INSTASAVER_DOWNLOAD_DIR", PROJECT_ROOT / "downloads"))
DOWNLOAD_CHUNK_SIZE = 8192  # Bytes
CONFLICT_ACTION = "uniquify"

# Logs configuration
LOG_DIR = PROJECT_ROOT / "logs"
LOG_DIR.mkdir(exist_ok=True)
LOG_FILE = LOG_DIR / "instasaver.log"

# Browser profile holding the already logged-in Instagram session
BROWSER_PROFILE_DIR = Path(os.environ.get("INSTASAVER_PROFILE_DIR", PROJECT_ROOT / ".browser_profile"))
BROWSER_HEADLESS = False

# Rate limiting configuration
REQUEST_DELAY = 1.0  # Seconds between API requests
REQUEST_JITTER = 0.2  # ±20% randomization

# Retry configuration (connection errors on API lookups only)
MAX_RETRIES = 3
RETRY_INITIAL_WAIT = 1.0  # Seconds
RETRY_MAX_WAIT = 10.0  # Seconds
RETRY_MULTIPLIER = 2.0  # Exponential backoff

# HTTP configuration
CONNECT_TIMEOUT = 30.0  # Seconds
READ_TIMEOUT: Optional[float] = None  # A hung request keeps the control "in progress"

# User agent pool for rotation
USER_AGENTS: List[str] = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

# Instagram endpoints
INSTAGRAM_BASE_URL = "https://www.instagram.com"
INSTAGRAM_API_URL = f"{INSTAGRAM_BASE_URL}/api/v1"
PROFILE_INFO_URL = f"{INSTAGRAM_API_URL}/users/web_profile_info/"
REELS_MEDIA_URL = f"{INSTAGRAM_API_URL}/feed/reels_media/"
MEDIA_INFO_URL = INSTAGRAM_API_URL + "/media/{media_id}/info/"
INSTAGRAM_APP_ID = "936619743392459"  # Instagram web app ID
COOKIE_DOMAIN = "instagram.com"

# Saved file naming: <PRODUCT_TAG>_<username>_<kind>_<timestamp>[_<n>].<ext>
PRODUCT_TAG = "instaloader"

# Injected controls
MARKER_ATTRIBUTE = "data-insta-saver"
STORY_LABEL = "Download Story"
POST_ALL_LABEL = "Download All Media"
POST_CURRENT_LABEL = "Download Current"
POST_SINGLE_LABEL = "Download"
REEL_LABEL = "Download Reel"
LABEL_RESET_DELAY = 2.5  # Seconds

# App information
APP_NAME = "InstaSaver"
APP_VERSION = "0.1.0"
