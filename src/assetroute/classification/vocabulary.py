"""Keyword vocabularies used by the rule-based classifiers."""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from importlib import resources
from typing import Iterable, List, Optional, Sequence, Tuple

LOGGER = logging.getLogger(__name__)

AUDIO_EXTENSIONS = frozenset({"wav", "aiff", "aif", "mp3", "m4a", "aac", "flac", "ogg"})
VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "avi", "mxf", "mkv", "webm", "m4v", "prores"})
IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "svg", "psd", "gif", "webp", "tiff", "tif"})
MOTION_TEMPLATE_EXTENSIONS = frozenset({"mogrt", "aep", "aet"})
ARCHIVE_EXTENSIONS = frozenset({"zip"})

STEM_KEYWORDS = ("stems", "stem", "bass", "drums", "instruments", "melody", "vocals", "vocal")

SFX_KEYWORDS = (
    "sfx", "sound-effect", "sound effect", "effect", "impact", "whoosh", "swoosh",
    "hit", "crash", "bang", "explosion", "ambience", "ambient", "foley",
    "transition", "riser", "downer", "swish", "click", "beep",
    "notification", "ui", "button", "interface", "glitch", "noise",
    "wind", "rain", "thunder", "water", "fire", "wave",
    "organic", "nature", "bird", "animal", "door",
    "footstep", "buzz", "alarm", "siren", "horn", "bell", "knock", "creak",
    "rumble", "static", "hum", "drone", "texture", "stinger", "sweep",
)

VO_KEYWORDS = (
    "vo", "voice", "narration", "dialogue", "dialog", "speech", "spoken",
    "narrator", "announcer", "commentary", "voiceover", "voice-over",
    "elevenlabs", "text-to-speech", "tts",
)

MUSIC_KEYWORDS = (
    "music", "track", "song", "beat", "score", "soundtrack", "theme",
    "remix", "mix", "album", "single", "instrumental",
)

STOCK_FOOTAGE_KEYWORDS = (
    "stock", "footage", "b-roll", "broll", "clip", "scene", "shot",
    "_hd", "_4k", "_uhd", "_1080", "_720", "artgrid", "artlist",
)

MOTION_GRAPHIC_KEYWORDS = (
    "mogrt", "motion", "graphic", "title", "lower third", "lower-third",
    "bumper", "intro", "outro", "overlay", "template",
    "promo", "opener", "end screen", "subscribe",
)

STOCK_FOOTAGE_PLATFORMS = (
    "artgrid", "artlist.io", "shutterstock", "gettyimages", "pond5",
    "storyblocks", "videoblocks", "envato", "videohive", "adobe.com/stock",
    "istockphoto", "depositphotos", "pexels", "pixabay",
)

STOCK_FILENAME_MARKERS = ("_by_", "artlist", "artgrid", "shutterstock", "gettyimages", "pond5", "storyblocks")

VO_PLATFORMS = ("elevenlabs", "murf.ai", "play.ht")
SFX_PLATFORMS = ("freesound", "zapsplat", "soundsnap")
MUSIC_PLATFORMS = ("epidemicsound", "artlist", "audiojungle")

PLATFORM_SUFFIXES = ("epidemic sound", "artlist", "freesound", "pond5", "shutterstock")

FALLBACK_GENRES: Tuple[str, ...] = (
    "EDM", "Hip Hop", "Pop", "Rock", "Cinematic", "Ambient",
    "DnB", "House", "Orchestral", "Jazz", "Blues", "Country",
    "Folk", "Reggae", "Latin", "World", "Electronic", "Techno",
    "Trance", "Dubstep",
)

FALLBACK_MOODS: Tuple[str, ...] = (
    "Angry", "Busy & Frantic", "Changing Tempo", "Chasing", "Dark",
    "Dreamy", "Epic", "Happy", "Laid Back", "Mysterious", "Peaceful",
    "Relaxing", "Romantic", "Sad", "Scary", "Sentimental", "Sexy",
    "Smooth", "Suspense", "Quirky", "Weird",
)

# Ordered: the first table row with a hit wins.
GENRE_HINTS: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("edm", "electronic", "electro", "synth"), "Electronic"),
    (("house", "deep house", "tech house"), "House"),
    (("techno", "minimal"), "Techno"),
    (("trance", "psy"), "Trance"),
    (("dubstep",), "Dubstep"),
    (("dnb", "drum and bass", "drum & bass", "jungle"), "DnB"),
    (("hip hop", "hiphop", "hip-hop", "rap", "trap"), "Hip Hop"),
    (("rock", "guitar", "punk", "grunge", "metal"), "Rock"),
    (("pop", "mainstream"), "Pop"),
    (("jazz", "swing", "bebop"), "Jazz"),
    (("blues", "bluesy"), "Blues"),
    (("country", "western", "americana"), "Country"),
    (("folk", "acoustic", "singer"), "Folk"),
    (("reggae", "ska", "dub"), "Reggae"),
    (("latin", "salsa", "bossa", "samba"), "Latin"),
    (("world", "ethnic", "tribal", "african", "asian"), "World"),
    (("cinematic", "epic", "trailer", "film", "movie", "orchestral", "orchestra", "score", "soundtrack"), "Cinematic"),
    (("ambient", "atmospheric", "drone", "texture"), "Ambient"),
)

MOOD_HINTS: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("happy", "joy", "cheerful", "upbeat", "fun", "playful", "bright"), "Happy"),
    (("epic", "heroic", "powerful", "grand", "triumphant", "majestic"), "Epic"),
    (("energetic", "uplifting", "positive", "inspiring"), "Happy"),
    (("angry", "aggressive", "intense", "fierce", "rage"), "Angry"),
    (("action", "chase", "pursuit", "driving", "urgent"), "Chasing"),
    (("busy", "frantic", "hectic", "fast", "rush"), "Busy & Frantic"),
    (("relaxing", "relaxed", "calm", "soothing", "peaceful", "serene", "gentle", "soft"), "Relaxing"),
    (("dreamy", "ethereal", "floating", "hazy"), "Dreamy"),
    (("smooth", "silky", "elegant", "sophisticated"), "Smooth"),
    (("chill", "chilled", "laid back", "laid-back", "lounge", "groovy", "cool"), "Laid Back"),
    (("sad", "melancholic", "melancholy", "emotional", "somber"), "Sad"),
    (("romantic", "love", "loving", "tender", "intimate"), "Romantic"),
    (("sentimental", "nostalgic", "heartfelt", "touching"), "Sentimental"),
    (("dark", "ominous", "sinister", "menacing", "gloomy"), "Dark"),
    (("mysterious", "mystery", "enigmatic", "intriguing"), "Mysterious"),
    (("scary", "horror", "creepy", "spooky", "eerie"), "Scary"),
    (("suspense", "suspenseful", "tense", "tension", "thriller"), "Suspense"),
    (("quirky", "whimsical", "funny", "comedy", "humorous", "weird", "strange"), "Quirky"),
)

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
_SHORT_KEYWORD = 3


def tokenize(text: str) -> List[str]:
    """Split lowercase text into alphanumeric tokens."""
    return [token for token in _TOKEN_SPLIT.split(text.lower()) if token]


def has_keyword(text: str, keywords: Iterable[str]) -> Optional[str]:
    """Return the first keyword found in ``text``.

    Keywords of three characters or fewer must appear as whole tokens so that
    ``vo`` does not match ``revolution``; longer keywords match as substrings.
    """
    lower = text.lower()
    tokens = set(tokenize(lower))
    for keyword in keywords:
        if len(keyword) <= _SHORT_KEYWORD and keyword.isalnum():
            if keyword in tokens:
                return keyword
        elif keyword in lower:
            return keyword
    return None


def load_genres() -> List[str]:
    """Return the bundled genre vocabulary, falling back to a built-in list."""
    return list(_load_vocabulary("genre_list.json", FALLBACK_GENRES))


def load_moods() -> List[str]:
    """Return the bundled mood vocabulary, falling back to a built-in list."""
    return list(_load_vocabulary("mood_list.json", FALLBACK_MOODS))


def guess_genre_mood(filename: str) -> Tuple[Optional[str], Optional[str]]:
    """Guess a genre and mood from filename keywords.

    The hint tables are consulted first; afterwards any vocabulary term that
    appears as a whole phrase in the name is used. Nothing is guessed when no
    keyword is present.
    """
    genre = _first_hint(filename, GENRE_HINTS) or _vocabulary_hit(filename, load_genres())
    mood = _first_hint(filename, MOOD_HINTS) or _vocabulary_hit(filename, load_moods())
    return genre, mood


def read_vocabulary(resource_name: str, fallback: Tuple[str, ...]) -> Tuple[str, ...]:
    """Read a bundled JSON list of terms, returning ``fallback`` when unusable."""
    try:
        resource = resources.files("assetroute").joinpath("resources").joinpath(resource_name)
        text = resource.read_text(encoding="utf-8")
        data = json.loads(text)
    except (OSError, ValueError) as exc:
        LOGGER.warning("Using built-in vocabulary; could not read %s: %s", resource_name, exc)
        return fallback
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data) or not data:
        LOGGER.warning("Using built-in vocabulary; %s is not a list of strings", resource_name)
        return fallback
    return tuple(data)


@lru_cache(maxsize=None)
def _load_vocabulary(resource_name: str, fallback: Tuple[str, ...]) -> Tuple[str, ...]:
    return read_vocabulary(resource_name, fallback)


def _first_hint(filename: str, table: Sequence[Tuple[Tuple[str, ...], str]]) -> Optional[str]:
    for keywords, value in table:
        if has_keyword(filename, keywords):
            return value
    return None


def _vocabulary_hit(filename: str, terms: Iterable[str]) -> Optional[str]:
    haystack = " ".join(tokenize(filename))
    for term in terms:
        needle = " ".join(tokenize(term))
        if needle and f" {needle} " in f" {haystack} ":
            return term
    return None


__all__ = [
    "AUDIO_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "IMAGE_EXTENSIONS",
    "MOTION_TEMPLATE_EXTENSIONS",
    "ARCHIVE_EXTENSIONS",
    "FALLBACK_GENRES",
    "FALLBACK_MOODS",
    "guess_genre_mood",
    "has_keyword",
    "load_genres",
    "load_moods",
    "read_vocabulary",
    "tokenize",
]
