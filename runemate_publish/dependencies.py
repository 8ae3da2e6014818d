"""External dependency allow-list.

RuneMate bots may only depend on a fixed set of libraries. Keys are
``group:artifact`` (a trailing ``:version`` is ignored) and are matched
against glob patterns.
"""

import logging
from fnmatch import fnmatchcase
from typing import Iterable, List, Sequence

from runemate_publish.constants import DEPENDENCY_ALLOW_LIST
from runemate_publish.errors import ExternalDependencyError

logger = logging.getLogger(__name__)


def dependency_key(coordinate: str) -> str:
    """Reduce ``group:artifact[:version[:classifier]]`` to ``group:artifact``."""
    return ":".join(coordinate.strip().split(":")[:2])


def is_allowed(coordinate: str, allow_list: Sequence[str] = DEPENDENCY_ALLOW_LIST) -> bool:
    key = dependency_key(coordinate)
    return any(fnmatchcase(key, pattern) for pattern in allow_list)


def check_dependencies(
    coordinates: Iterable[str],
    *,
    fail_on_external: bool,
    allow_list: Sequence[str] = DEPENDENCY_ALLOW_LIST,
) -> List[str]:
    """Check resolved dependencies against the allow-list.

    Args:
        coordinates: Resolved dependency coordinates
        fail_on_external: True raises on any disallowed key, False only warns
        allow_list: Glob patterns over ``group:artifact``

    Returns:
        Disallowed keys, in input order, without duplicates

    Raises:
        ExternalDependencyError: if ``fail_on_external`` and any key is disallowed
    """
    disallowed: List[str] = []
    for coordinate in coordinates:
        key = dependency_key(coordinate)
        if key not in disallowed and not is_allowed(key, allow_list):
            disallowed.append(key)

    if disallowed and fail_on_external:
        raise ExternalDependencyError(disallowed)

    for key in disallowed:
        logger.warning(f"RuneMate does not support external dependencies, please remove: {key}")
    return disallowed
