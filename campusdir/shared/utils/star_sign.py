"""Star sign derivation from a birth date.

Uses the tropical zodiac date boundaries commonly printed in Japanese
calendars. Names are returned in Japanese as stored on student profiles.
"""
from datetime import date
from typing import List, Tuple

# (sign, last month, last day) in calendar order; a date belongs to the
# first sign whose end boundary it does not pass.
STAR_SIGN_BOUNDARIES: List[Tuple[str, int, int]] = [
    ("山羊座", 1, 19),    # Capricorn
    ("水瓶座", 2, 18),    # Aquarius
    ("魚座", 3, 20),      # Pisces
    ("牡羊座", 4, 19),    # Aries
    ("牡牛座", 5, 20),    # Taurus
    ("双子座", 6, 21),    # Gemini
    ("蟹座", 7, 22),      # Cancer
    ("獅子座", 8, 22),    # Leo
    ("乙女座", 9, 22),    # Virgo
    ("天秤座", 10, 23),   # Libra
    ("蠍座", 11, 22),     # Scorpio
    ("射手座", 12, 21),   # Sagittarius
]

STAR_SIGNS = [sign for sign, _, _ in STAR_SIGN_BOUNDARIES]


def get_star_sign(birth_date: date) -> str:
    """Return the star sign for a birth date.

    Args:
        birth_date: Date of birth (year is ignored)

    Returns:
        Japanese star sign name, e.g. "牡牛座" for May 15
    """
    key = (birth_date.month, birth_date.day)
    for sign, month, day in STAR_SIGN_BOUNDARIES:
        if key <= (month, day):
            return sign
    # Dec 22 - Dec 31 wraps around to Capricorn
    return STAR_SIGN_BOUNDARIES[0][0]
