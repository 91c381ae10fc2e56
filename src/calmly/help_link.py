from __future__ import annotations

import logging
import webbrowser
from typing import Callable

logger = logging.getLogger(__name__)

HELP_URL = "https://www.google.com/search?q=mental+health+hotline+Tunisia"
EMERGENCY_NOTICE = "If you are in danger or considering self-harm, please seek emergency help immediately."


def open_urgent_help(opener: Callable[[str], bool] = webbrowser.open_new_tab) -> bool:
    """Open the help resource in a new browser tab. Never raises."""
    try:
        opened = bool(opener(HELP_URL))
    except webbrowser.Error as e:
        logger.warning("Could not open %s: %s", HELP_URL, e)
        return False
    if not opened:
        logger.warning("No browser available to open %s", HELP_URL)
    return opened
