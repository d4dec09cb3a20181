"""
Avatar fallbacks: initial letter and a stable background colour per user,
shown when no avatar image has been uploaded.
"""

GUEST_INITIAL = "G"

PALETTE = (
    "#1a73e8",
    "#34a853",
    "#ea4335",
    "#fbbc05",
    "#8e24aa",
    "#00acc1",
    "#fb8c00",
)

DEFAULT_COLOR = PALETTE[0]


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def string_to_color(seed: str | None) -> str:
    """
    Pick a palette colour from ``seed``.
    Same 32-bit ``hash * 31 + char`` hash the web client uses, so both agree.
    """
    s = (seed or "").strip()
    if not s:
        return DEFAULT_COLOR

    h = 0
    for ch in s:
        h = ord(ch) + (_to_int32(_to_int32(h) << 5) - h)

    return PALETTE[abs(h) % len(PALETTE)]


def email_initial(email: str | None) -> str:
    s = (email or "").strip()
    return (s[0] if s else GUEST_INITIAL).upper()
