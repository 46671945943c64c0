import os
import re
from datetime import datetime
from pathlib import Path


def sanitize_for_filename(text: str) -> str:
    """Sanitize text for use in filenames."""
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'[-\s]+', '_', text)
    return text.strip('_').lower()[:100]


def file_timestamp() -> str:
    # Microseconds keep names unique across parallel contexts
    return datetime.now().strftime("%Y%m%d_%H%M%S_%f")


def screenshot_path(directory: Path, name: str, context: str = "", extension: str = "png") -> Path:
    """Build a timestamp-qualified screenshot path inside `directory`."""
    slug = sanitize_for_filename(name) or "screenshot"
    context_slug = f"_{sanitize_for_filename(context)}" if context else ""
    return Path(directory) / f"{slug}{context_slug}_{file_timestamp()}.{extension}"


def screenshot_delay_ms() -> int:
    try:
        return int(os.environ.get("SCREENSHOT_DELAY_MS", "0"))
    except ValueError:
        return 0
