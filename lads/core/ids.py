"""
Short node identifier generation
"""

import logging
import random
import string
from typing import Container, Optional

from .errors import LadsError

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_uppercase + string.digits


class NodeIdGenerator:
    """Samples fixed-length ids from A-Z0-9, rejecting ids already in use"""

    def __init__(self, length: int = 4, max_attempts: int = 1000, rng: Optional[random.Random] = None):
        if length <= 0:
            raise ValueError("length must be positive")
        self.length = length
        self.max_attempts = max_attempts
        self._rng = rng or random.Random()

    def generate(self, taken: Container[str] = ()) -> str:
        for attempt in range(self.max_attempts):
            candidate = "".join(self._rng.choice(ID_ALPHABET) for _ in range(self.length))
            if candidate not in taken:
                if attempt:
                    logger.debug(f"Generated node id {candidate} after {attempt} collisions")
                return candidate
        raise LadsError(
            f"Could not generate a unique node id of length {self.length} "
            f"after {self.max_attempts} attempts"
        )
