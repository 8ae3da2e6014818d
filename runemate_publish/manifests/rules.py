"""Manifest business rules.

Rules are evaluated in declaration order and the first one that rejects a
manifest decides the reported reason. A new rule is one new ``Rule`` member.
"""

import logging
from collections import defaultdict
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional

from runemate_publish.errors import DuplicateIdentityError, ManifestValidationError
from runemate_publish.manifests.schema import Access, BotManifest

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 110
MAX_TAGLINE_LENGTH = 50
MAX_TAGS = 50


def _length_outside(value: str, maximum: int) -> bool:
    return not 1 <= len(value) <= maximum


class Rule(Enum):
    """Each member holds a rejecting predicate and the reason shown to the user."""

    INTERNAL_ID = (
        lambda m: not m.internal_id,
        "An internal-id has not been set in the bot manifest",
    )
    DESCRIPTION = (
        lambda m: _length_outside(m.description, MAX_DESCRIPTION_LENGTH),
        f"Descriptions must be between 1 and {MAX_DESCRIPTION_LENGTH} characters in size",
    )
    TAG_LINE = (
        lambda m: _length_outside(m.tagline, MAX_TAGLINE_LENGTH),
        f"Taglines must be between 1 and {MAX_TAGLINE_LENGTH} characters in size",
    )
    PRICE_TOO_LOW = (
        lambda m: m.price < 0,
        "Price cannot be negative",
    )
    PRICE_BAD_ACCESS = (
        lambda m: m.price > 0 and m.access != Access.PUBLIC,
        "Bots with a positive price must have access level PUBLIC",
    )
    TRIAL_INVALID = (
        lambda m: m.trial is not None and m.trial.is_negative,
        "Trial window and allowance must both be non-negative durations",
    )
    TRIAL_NON_PREMIUM = (
        lambda m: m.trial is not None and not m.trial.is_zero and m.price <= 0,
        "Only bots with a positive price may have a trial",
    )
    TAGS = (
        lambda m: len(m.tags) > MAX_TAGS,
        f"Bots may not have more than {MAX_TAGS} tags",
    )

    def __init__(self, predicate: Callable[[BotManifest], bool], reason: str):
        self.predicate = predicate
        self.reason = reason

    def rejects(self, manifest: BotManifest) -> bool:
        return self.predicate(manifest)


def first_violation(manifest: BotManifest) -> Optional[Rule]:
    """Return the first rule ``manifest`` breaks, or None."""
    return next((rule for rule in Rule if rule.rejects(manifest)), None)


def validate_manifest(manifest: BotManifest, source: str) -> BotManifest:
    """Return ``manifest`` unchanged if it satisfies every rule.

    Args:
        manifest: Manifest to check
        source: Where the manifest came from, e.g. ``generate Woodcutter``
            or ``file src/main/resources/bot.manifest.yaml``

    Raises:
        ManifestValidationError: for the first rule that rejects it
    """
    rule = first_violation(manifest)
    if rule is not None:
        raise ManifestValidationError(rule, rule.reason, source)
    logger.debug(f"Manifest '{manifest.internal_id}' passed validation ({source})")
    return manifest


def check_duplicate_ids(manifests: Mapping[str, BotManifest]) -> None:
    """Fail if two manifests in the batch share an internalId.

    Args:
        manifests: Source description -> manifest, for the whole batch
    """
    by_id: Dict[str, List[str]] = defaultdict(list)
    for source, manifest in manifests.items():
        by_id[manifest.internal_id].append(source)

    for internal_id, sources in by_id.items():
        if len(sources) > 1:
            raise DuplicateIdentityError(internal_id, sources)
