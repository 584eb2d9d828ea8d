"""
Level / XP curve.

XP required to *reach* a level follows a power curve:

    xp_for_level(L) = round(100 * L^1.5)   (L > 1)
    xp_for_level(1) = 0

    Level 2: 283 XP, Level 3: 520 XP, Level 4: 800 XP, ...

An older square-root rule, level = 1 + floor(sqrt(xp / 100)), is kept as an
alternative curve selectable through the LEVEL_CURVE setting.
"""
import math


LEVEL_CURVES = ("power", "sqrt")


def xp_for_level(level: int) -> int:
    """XP needed to reach a specific level."""
    if level <= 1:
        return 0
    return round(100 * math.pow(level, 1.5))


def xp_for_next_level(current_level: int) -> int:
    """XP needed to reach the level after current_level."""
    return xp_for_level(current_level + 1)


def level_from_xp(total_xp: float) -> int:
    """Level reached with total_xp on the power curve."""
    level = 1
    while xp_for_level(level + 1) <= total_xp:
        level += 1
    return level


def sqrt_level_from_xp(total_xp: float) -> int:
    """Level reached with total_xp on the square-root curve."""
    return max(1, math.floor(math.sqrt(max(0, total_xp) / 100)) + 1)


def resolve_level(total_xp: float, curve: str = "power") -> int:
    """Level for total_xp using the named curve."""
    if curve == "power":
        return level_from_xp(total_xp)
    if curve == "sqrt":
        return sqrt_level_from_xp(total_xp)
    raise ValueError(f"Unknown level curve: {curve}")


def level_progress(current_xp: float, current_level: int) -> float:
    """Percentage (0-100) of the way from current_level to the next one."""
    current_level_xp = xp_for_level(current_level)
    next_level_xp = xp_for_level(current_level + 1)
    progress_xp = current_xp - current_level_xp
    needed_xp = next_level_xp - current_level_xp

    if needed_xp <= 0:
        return 100.0

    return min(100.0, max(0.0, (progress_xp / needed_xp) * 100))


def xp_to_next_level(current_xp: float, current_level: int) -> int:
    """XP still missing to reach the next level."""
    return max(0, xp_for_level(current_level + 1) - int(current_xp))


def level_info(current_xp: float) -> dict:
    """Detailed information about the level reached with current_xp."""
    current_level = level_from_xp(current_xp)
    current_level_xp = xp_for_level(current_level)
    next_level_xp = xp_for_level(current_level + 1)

    return {
        "current_level": current_level,
        "current_xp": current_xp,
        "current_level_xp": current_level_xp,
        "next_level_xp": next_level_xp,
        "progress_xp": current_xp - current_level_xp,
        "needed_xp": next_level_xp - current_level_xp,
        "progress_percentage": level_progress(current_xp, current_level),
        "xp_to_next_level": xp_to_next_level(current_xp, current_level),
    }
