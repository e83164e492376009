# utils.py

import random
from typing import Dict, Hashable, List, Optional, Sequence, Union

Key = Union[int, str]


def parse_sequence(text: str) -> List[Key]:
    """Parse a comma separated access sequence; numeric tokens become ints."""
    seq: List[Key] = []
    for token in text.split(','):
        token = token.strip()
        if token == '':
            continue
        seq.append(int(token) if token.lstrip('-').isdigit() else token)
    return seq


def generate_access_sequence(length: int, possible_values: Sequence[Key],
                             rng: Optional[random.Random] = None) -> List[Key]:
    """Draw `length` values from a small set so that the sequence contains repeats."""
    rng = rng or random.Random()
    return [rng.choice(list(possible_values)) for _ in range(length)]


def get_color(occupied: bool, rng: random.Random) -> str:
    """Return a color for occupied/free slots."""
    if not occupied:
        return "#d3d3d3"  # light grey
    # random pastel colors
    return f"hsl({rng.randint(0, 360)}, 70%, 75%)"


class ColorPalette:
    """Stable pastel colour per key, drawn from a seeded generator."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = random.Random(seed)
        self.colors: Dict[Hashable, str] = {}

    def color_for(self, key: Hashable) -> str:
        if key not in self.colors:
            self.colors[key] = get_color(True, self.rng)
        return self.colors[key]

    def reset(self):
        self.rng = random.Random(self.seed)
        self.colors = {}
