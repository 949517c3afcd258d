"""Folder names recognised and created inside production projects."""

from __future__ import annotations

from typing import Dict, Tuple

# First variant is the one created when nothing matches.
FOLDER_NAMES: Dict[str, Tuple[str, ...]] = {
    "Audio": ("03_Audio", "Audio", "Muziek"),
    "Music": ("01_Music", "Music", "Muziek"),
    "SFX": ("04_SFX", "02_SFX", "SFX", "Geluidseffecten"),
    "VO": ("03_VO", "VO", "VoiceOver"),
    "Visuals": ("04_Visuals", "Visuals"),
    "Graphics": ("01_Graphics", "Graphics"),
    "MotionGraphics": ("02_MotionGraphics", "MotionGraphics"),
    "Stills": ("03_Stills", "Stills"),
    "Grade": ("04_Grade", "Grade"),
    "VFX": ("05_VFX", "VFX"),
}

STOCK_FOOTAGE_FOLDER = "StockFootage"
YOUTUBE_4K_FOLDER = "4KYoutube downloader"
MOOD_FOLDER = "Mood"
GENRE_FOLDER = "Genre"

STRUCTURE_PREFIXES = ("02_", "03_", "04_", "05_", "06_")
AUDIO_FOLDER_NAMES = frozenset({"audio", "music", "muziek"})

EDITING_APP_MARKERS = ("adobe", "premiere", "audio previews", "auto-save")
EDITING_APP_PREFIX = "01_"


def is_editing_app_folder(name: str) -> bool:
    """Return whether ``name`` looks like an editing application's own folder."""
    lower = name.lower()
    return lower.startswith(EDITING_APP_PREFIX) or any(marker in lower for marker in EDITING_APP_MARKERS)


def is_structure_marker(name: str) -> bool:
    """Return whether ``name`` is a project structure folder such as ``03_Audio``."""
    lower = name.lower()
    if is_editing_app_folder(lower) or "preview" in lower:
        return False
    return lower.startswith(STRUCTURE_PREFIXES) or lower in AUDIO_FOLDER_NAMES


__all__ = [
    "AUDIO_FOLDER_NAMES",
    "EDITING_APP_MARKERS",
    "EDITING_APP_PREFIX",
    "FOLDER_NAMES",
    "GENRE_FOLDER",
    "MOOD_FOLDER",
    "STOCK_FOOTAGE_FOLDER",
    "STRUCTURE_PREFIXES",
    "YOUTUBE_4K_FOLDER",
    "is_editing_app_folder",
    "is_structure_marker",
]
