import logging
from typing import Awaitable, Callable, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

A = TypeVar("A")
R = TypeVar("R")

def _attempt_name(attempt) -> str:
    return getattr(attempt, "name", None) or repr(attempt)

async def run_ladder(
    attempts: Sequence[A],
    operation: Callable[[A], Awaitable[R]],
    label: str = "operation",
) -> Tuple[A, R]:
    """Try `operation` with each attempt in order until one succeeds.

    Returns the winning attempt together with its result. Earlier failures are
    only logged; once every attempt has failed the last error is re-raised.
    """
    if not attempts:
        raise ValueError(f"{label}: no attempts to run")

    last_error: Optional[Exception] = None
    for index, attempt in enumerate(attempts, start=1):
        name = _attempt_name(attempt)
        try:
            logger.debug("[*] %s: attempt %d/%d with %s", label, index, len(attempts), name)
            result = await operation(attempt)
        except Exception as e:
            logger.warning("[-] %s failed with %s: %s", label, name, e)
            last_error = e
            continue
        if index > 1:
            logger.info("[+] %s succeeded with %s after %d attempts", label, name, index)
        return attempt, result

    logger.error("[!] %s exhausted %d attempts", label, len(attempts))
    raise last_error
