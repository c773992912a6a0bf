import re
import uuid
from collections.abc import Awaitable, Callable

from loguru import logger

CODE_PATTERN = re.compile(r"^APT-[A-Z0-9]{4}$")


def random_token() -> str:
    """A 128-bit random value as 32 hex characters."""
    return uuid.uuid4().hex


async def generate_confirmation_code(
    exists: Callable[[str], Awaitable[bool]],
    token_source: Callable[[], str] = random_token,
    *,
    prefix: str = "APT-",
    length: int = 4,
) -> str:
    """Mint a confirmation code no existing appointment owns.

    Takes the first ``length`` characters of a 128-bit random token,
    upper-cased, and re-samples until ``exists`` reports the code free.
    Codes of cancelled and completed appointments stay taken.
    """
    while True:
        code = prefix + token_source()[:length].upper()
        if not await exists(code):
            return code
        logger.warning("Confirmation code collision on {}; re-sampling", code)
