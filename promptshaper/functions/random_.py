"""Built-in random() function."""

import random

from . import Functions


@Functions.register("random")
def random_function(low=0, high=100) -> int:
    """Random integer between `low` and `high` inclusive.

    Usage: {{random(1, 6)}} or {{random(1, 6) * 10}}
    """
    return random.randint(int(low), int(high))
