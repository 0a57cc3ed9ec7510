"""
Parser for the AI's free-text suggestions.

Grammar, one suggestion per line:

    line   := [marker] name [" - " artist]
    marker := "1." | "1)" | "-" | "*" | "•"   (followed by whitespace)

Blank lines are skipped. The line is split on the first " - ".
A line without the separator is kept as a track whose artist is None;
malformed lines never raise.
"""

import re

from .models import Track

SEPARATOR = ' - '

_MARKER = re.compile(r'^\s*(?:\d+[.)]|[-*•])\s+')
_QUOTES = '"\'“”‘’'


def _clean(s):
    return s.strip().strip(_QUOTES).strip()


def parse_line(line):
    """Parse one line; returns None for blank lines."""
    line = _MARKER.sub('', line, count=1).strip()
    if not line:
        return None
    if SEPARATOR in line:
        name, artist = line.split(SEPARATOR, 1)
        return Track(name=_clean(name), artist=_clean(artist) or None)
    return Track(name=_clean(line), artist=None)


def parse_recommendations(text):
    """Turn completion output into a list of Tracks, in the order given."""
    tracks = []
    for line in (text or '').splitlines():
        track = parse_line(line)
        if track is not None:
            tracks.append(track)
    return tracks
