"""Match mode strategies."""
from .matching import (
    ContainsStrategy,
    EndsWithStrategy,
    MatchStrategy,
    StartsWithStrategy,
    get_strategy,
    highlight_field,
    locate,
    matches,
)

__all__ = [
    "ContainsStrategy",
    "EndsWithStrategy",
    "MatchStrategy",
    "StartsWithStrategy",
    "get_strategy",
    "highlight_field",
    "locate",
    "matches",
]
