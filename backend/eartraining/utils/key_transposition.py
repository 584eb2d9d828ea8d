"""
Key Transposition
Turns roman-numeral degrees ("ii7", "V7", "I^maj7", "bVII") into chord
symbols in a concrete key.

A degree is: accidentals (b / #) + roman numeral + extensions.
Upper-case numerals are major chords, lower-case numerals minor chords.
"""
import random
import re
from typing import Optional, Sequence
from pydantic import BaseModel


CHROMATIC_SHARP = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
CHROMATIC_FLAT = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

# Canonical key names (flats)
KEYS = list(CHROMATIC_FLAT)

FLAT_KEYS = {"F", "Bb", "Eb", "Ab", "Db", "Gb"}

KEY_ALIASES = {
    "C#": "Db",
    "D#": "Eb",
    "F#": "Gb",
    "G#": "Ab",
    "A#": "Bb",
}

ROMAN_NUMERALS = {
    "I": 0, "II": 2, "III": 4, "IV": 5, "V": 7, "VI": 9, "VII": 11,
    "i": 0, "ii": 2, "iii": 4, "iv": 5, "v": 7, "vi": 9, "vii": 11,
}

DEGREE_PATTERN = re.compile(r"^(b*|#*)(VII|VI|IV|V|III|II|I|vii|vi|iv|v|iii|ii|i)(.*)$")
NUMERAL_PATTERN = re.compile(r"(VII|VI|IV|V|III|II|I|vii|vi|iv|v|iii|ii|i)")


class TransposedExercise(BaseModel):
    """A set of progressions spelled in the same random key"""
    key: str
    semitone_offset: int
    options: list[dict]


def normalize_key(key: str) -> str:
    """Map sharp key names onto the flat spelling used in KEYS."""
    return KEY_ALIASES.get(key, key)


def is_valid_key(key: str) -> bool:
    return normalize_key(key) in KEYS


def random_key(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(KEYS)


def semitone_distance(from_key: str, to_key: str) -> int:
    """Upward distance in semitones between two keys (0 if either is unknown)."""
    from_key, to_key = normalize_key(from_key), normalize_key(to_key)
    if from_key not in KEYS or to_key not in KEYS:
        return 0
    return (KEYS.index(to_key) - KEYS.index(from_key)) % 12


def extract_quality(symbol: str) -> str:
    """
    Chord quality suffix for a degree symbol.

    More specific extensions are checked first; plain sevenths and triads
    take their quality from the case of the numeral.
    """
    lower = symbol.lower()

    if "dim7" in lower or "°7" in lower:
        return "dim7"
    if "dim" in lower or "°" in lower:
        return "dim"
    if any(mark in lower for mark in ("ø7", "m7b5", "m7♭5", "7b5", "7(b5)")):
        return "m7♭5"
    if any(mark in lower for mark in ("maj7", "∆7", "^7")):
        return "maj7"
    if "alt" in lower:
        return "7alt"
    if "sus4" in lower:
        return "sus4"
    if "sus2" in lower:
        return "sus2"
    if "add9" in lower:
        return "(add9)"
    if "6/9" in lower:
        return "6/9"
    if "6" in lower:
        return "6"
    if "+" in lower:
        return "+"
    if "13" in lower:
        return "13"
    if "11" in lower:
        return "11"
    if "9" in lower:
        return "9"

    match = NUMERAL_PATTERN.search(symbol)
    minor = bool(match) and match.group(1)[0].islower()

    if "7" in lower:
        return "m7" if minor else "7"
    return "m" if minor else ""


def parse_degree(degree: str) -> tuple[int, str]:
    """
    Split a degree into (semitones above the tonic, quality suffix).
    """
    match = DEGREE_PATTERN.match(degree)
    if not match:
        return 0, extract_quality(degree)

    accidentals, numeral, extensions = match.groups()
    flats = accidentals.count("b")
    sharps = accidentals.count("#")
    interval = (ROMAN_NUMERALS[numeral] - flats + sharps) % 12
    return interval, extract_quality(numeral + extensions)


def transpose_chord(degree: str, target_key: str) -> str:
    """Chord symbol of `degree` in `target_key` (degree unchanged for unknown keys)."""
    key = normalize_key(target_key)
    if key not in KEYS:
        return degree

    interval, quality = parse_degree(degree)
    chord_index = (KEYS.index(key) + interval) % 12
    spelling = CHROMATIC_FLAT if key in FLAT_KEYS else CHROMATIC_SHARP
    return spelling[chord_index] + quality


def transpose_progression(degrees: Sequence[str], target_key: str) -> list[str]:
    return [transpose_chord(degree, target_key) for degree in degrees]


def create_randomized_exercise(
    options: Sequence[dict],
    rng: Optional[random.Random] = None
) -> TransposedExercise:
    """
    Spell every option progression in one random key.

    Each returned option is a copy of the input dict with a "chords" list.
    """
    key = random_key(rng)
    transposed = [
        {**option, "chords": transpose_progression(option["degrees"], key)}
        for option in options
    ]
    return TransposedExercise(
        key=key,
        semitone_offset=semitone_distance("C", key),
        options=transposed
    )
