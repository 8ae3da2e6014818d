"""Manifest declarations - mutable builders that produce a BotManifest.

Example::

    decl = ManifestDeclaration("Magic Woodcutter")
    decl.main_class = "com/example/woodcutter/Woodcutter"
    decl.tagline = "Cuts magic logs"
    decl.description = "Cuts and banks magic logs anywhere"
    decl.version = "1.0.0"
    decl.categories = {Category.WOODCUTTING}

    with decl.pricing() as pricing:
        pricing.price = 4.99
        with pricing.trial() as trial:
            trial.allowance = timedelta(hours=2)
            trial.window = timedelta(days=7)

    with decl.features() as features:
        features.optional(FeatureType.DIRECT_INPUT)

    manifest = decl.build()
"""
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterator, List, Optional, Set

from pydantic import ValidationError

from runemate_publish.errors import (
    ConfigurationError,
    MalformedManifestError,
    MissingRequiredFieldError,
)
from runemate_publish.manifests.schema import (
    Access,
    BotManifest,
    Category,
    Feature,
    FeatureMode,
    FeatureType,
    GameType,
    Trial,
)

logger = logging.getLogger(__name__)


class _Required:
    """Descriptor for a declaration field that has no default."""

    def __set_name__(self, owner, name):
        self.name = name
        self.slot = f"_{name}"

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        value = instance.__dict__.get(self.slot)
        if value is None:
            raise MissingRequiredFieldError(instance.name, [self.name])
        return value

    def __set__(self, instance, value):
        instance.__dict__[self.slot] = value

    def is_set(self, instance) -> bool:
        return instance.__dict__.get(self.slot) is not None


class _Spec:
    """Nested builder usable as a context manager; commits on a clean exit."""

    def __init__(self, commit: Callable[[_Spec], None]):
        self._commit = commit

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self._commit(self)
        return False


class TrialSpec(_Spec):
    allowance: timedelta = timedelta(0)
    window: timedelta = timedelta(0)


class PricingSpec(_Spec):
    def __init__(self, commit):
        super().__init__(commit)
        self.price: float = 0.0
        self.trial_policy: Optional[Trial] = None

    def trial(self) -> TrialSpec:
        def commit(spec: TrialSpec) -> None:
            self.trial_policy = Trial(allowance=spec.allowance, window=spec.window)

        return TrialSpec(commit)


class FeatureSpec(_Spec):
    def __init__(self, commit):
        super().__init__(commit)
        self.features: Set[Feature] = set()

    def required(self, feature: FeatureType) -> None:
        self.features.add(Feature(type=feature, mode=FeatureMode.REQUIRED))

    def optional(self, feature: FeatureType) -> None:
        self.features.add(Feature(type=feature, mode=FeatureMode.OPTIONAL))


class ResourcesSpec(_Spec):
    def __init__(self, commit):
        super().__init__(commit)
        self.resources: Set[str] = set()

    def include(self, rule: str) -> None:
        self.resources.add(rule)


class ObfuscationSpec(_Spec):
    def __init__(self, commit):
        super().__init__(commit)
        self.exclusions: Set[str] = set()

    def exclude(self, rule: str) -> None:
        self.exclusions.add(rule)


class ManifestDeclaration:
    """Named, mutable pre-validation form of a manifest.

    Required fields raise MissingRequiredFieldError when read before being
    assigned. ``build()`` reports every missing field at once.
    """

    main_class = _Required()
    tagline = _Required()
    description = _Required()
    version = _Required()

    REQUIRED_FIELDS = ("main_class", "tagline", "description", "version")

    def __init__(self, name: str):
        self.name = name
        self.publish: bool = True
        self.internal_id: Optional[str] = None
        self.compatibility: Set[GameType] = {GameType.OSRS}
        self.categories: Set[Category] = {Category.OTHER}
        self.features_set: Set[Feature] = set()
        self.access: Access = Access.PUBLIC
        self.hidden: bool = False
        self.open_source: bool = False
        self.price: Decimal = Decimal("0")
        self.trial: Optional[Trial] = None
        self.resources_set: Set[str] = set()
        self.tags: Set[str] = set()
        self.obfuscation_set: Set[str] = set()

    def pricing(self) -> PricingSpec:
        """Price and trial. A price of zero or less makes the bot free and drops the trial."""

        def commit(spec: PricingSpec) -> None:
            if spec.price > 0:
                self.price = Decimal(str(spec.price))
                self.trial = spec.trial_policy
            else:
                self.price = Decimal("0")
                self.trial = None

        return PricingSpec(commit)

    def features(self) -> FeatureSpec:
        def commit(spec: FeatureSpec) -> None:
            self.features_set = set(spec.features)

        return FeatureSpec(commit)

    def resources(self) -> ResourcesSpec:
        def commit(spec: ResourcesSpec) -> None:
            self.resources_set = set(spec.resources)

        return ResourcesSpec(commit)

    def obfuscation(self) -> ObfuscationSpec:
        def commit(spec: ObfuscationSpec) -> None:
            self.obfuscation_set = set(spec.exclusions)

        return ObfuscationSpec(commit)

    def missing_fields(self) -> List[str]:
        cls = type(self)
        return [f for f in self.REQUIRED_FIELDS if not getattr(cls, f).is_set(self)]

    def build(self) -> BotManifest:
        """Convert this declaration into an (unvalidated) BotManifest.

        Raises:
            MissingRequiredFieldError: listing every unset required field
            MalformedManifestError: a field holds a value of the wrong type
        """
        missing = self.missing_fields()
        if missing:
            raise MissingRequiredFieldError(self.name, missing)

        fields = dict(
            main_class=self.main_class,
            name=self.name,
            tagline=self.tagline,
            description=self.description,
            version=self.version,
            compatibility=self.compatibility,
            categories=self.categories,
            features=self.features_set,
            access=self.access,
            hidden=self.hidden,
            open_source=self.open_source,
            price=self.price,
            trial=self.trial,
            resources=self.resources_set,
            tags=self.tags,
            obfuscation=self.obfuscation_set,
        )
        if self.internal_id is not None:
            fields["internal_id"] = self.internal_id

        try:
            return BotManifest(**fields)
        except ValidationError as e:
            raise MalformedManifestError(f"Invalid declaration: {e}", source=self.name) from e

    def __repr__(self) -> str:
        return f"ManifestDeclaration({self.name!r}, publish={self.publish})"


class ManifestDeclarations:
    """Ordered, name-keyed container of declarations for one project."""

    def __init__(self):
        self._declarations: Dict[str, ManifestDeclaration] = {}

    def create(
        self,
        name: str,
        configure: Optional[Callable[[ManifestDeclaration], None]] = None,
    ) -> ManifestDeclaration:
        """Create and register a declaration, optionally configuring it."""
        if name in self._declarations:
            raise ConfigurationError(f"Manifest '{name}' is already declared")
        declaration = ManifestDeclaration(name)
        if configure is not None:
            configure(declaration)
        self._declarations[name] = declaration
        logger.debug(f"Declared manifest '{name}'")
        return declaration

    def get(self, name: str) -> Optional[ManifestDeclaration]:
        return self._declarations.get(name)

    def publishable(self) -> List[ManifestDeclaration]:
        return [d for d in self._declarations.values() if d.publish]

    def __iter__(self) -> Iterator[ManifestDeclaration]:
        return iter(self._declarations.values())

    def __len__(self) -> int:
        return len(self._declarations)

    def __contains__(self, name: object) -> bool:
        return name in self._declarations
