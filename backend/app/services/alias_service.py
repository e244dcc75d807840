from typing import List

from ..utils import normalize_person_name

NAME_PARTICLES = {'DE', 'DEL', 'LA', 'LAS', 'LOS'}
MIN_SURNAME_ALIAS_LENGTH = 5


def generate_default_aliases(full_name: str) -> List[str]:
    """
    Name variants a supervisor is likely to write on a roster grid.

    For "JESUS DAVID MAGALLANES PEREZ":
        JESUS DAVID MAGALLANES PEREZ, JESUS PEREZ, DAVID PEREZ, PEREZ
    Particles (DE, DEL, LA, LAS, LOS) are skipped when picking words.
    """
    normalized = normalize_person_name(full_name)
    if not normalized:
        return []

    words = [word for word in normalized.split(' ') if word not in NAME_PARTICLES]
    candidates = [normalized]
    if len(words) >= 2:
        candidates.append(f'{words[0]} {words[-1]}')
    if len(words) >= 3:
        candidates.append(f'{words[1]} {words[-1]}')
    if words and len(words[-1]) >= MIN_SURNAME_ALIAS_LENGTH:
        candidates.append(words[-1])

    aliases: List[str] = []
    for candidate in candidates:
        if candidate not in aliases:
            aliases.append(candidate)
    return aliases
