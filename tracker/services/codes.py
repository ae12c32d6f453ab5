"""Short, shareable group join codes."""

from __future__ import annotations

import random
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from tracker.config import DEFAULT_CODE_ALPHABET
from tracker.errors import CodeCollisionError
from tracker.logging_config import get_logger, log_context
from tracker.models import Group

logger = get_logger(__name__)


def allocate_group_code(
    is_taken: Callable[[str], bool],
    length: int = 5,
    alphabet: str = DEFAULT_CODE_ALPHABET,
    max_attempts: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Return a code that ``is_taken`` reports as free.

    Candidates are re-sampled until one does not collide. Without
    ``max_attempts`` the loop is unbounded, so callers on a request path
    should always pass a cap. Nothing is reserved: the code only becomes
    taken once the caller inserts the group row.
    """
    if length <= 0 or not alphabet:
        raise ValueError("code length and alphabet must be non-empty")
    rng = rng or random.SystemRandom()
    attempts = 0
    while max_attempts is None or attempts < max_attempts:
        attempts += 1
        code = "".join(rng.choices(alphabet, k=length))
        if not is_taken(code):
            if attempts > 1:
                logger.debug("group code allocated after retries", extra=log_context(attempts=attempts))
            return code
    logger.warning("group code space exhausted", extra=log_context(attempts=attempts, length=length))
    raise CodeCollisionError(attempts)


def group_code_taken(session: Session) -> Callable[[str], bool]:
    """Collision check against existing group rows."""

    def _taken(code: str) -> bool:
        return session.execute(select(Group.code).where(Group.code == code)).first() is not None

    return _taken
