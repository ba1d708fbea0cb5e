"""Styling of the controls injected into Instagram menus."""

# Colors
COLOR_IDLE = "#00c853"
COLOR_SUCCESS = "#00c853"
COLOR_ERROR = "#ff5252"

# Fonts
FONT_WEIGHT = "600"

# Label states
LABEL_BUSY = "Downloading…"
LABEL_DONE = "Downloaded ✓"
LABEL_DONE_COUNT = "Downloaded {downloaded}/{total} ✓"
LABEL_FAILED = "Failed — retry"
