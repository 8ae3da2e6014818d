"""Bot manifest model - the publishable metadata of a single bot."""

from datetime import timedelta
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, FrozenSet, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _upper(value: Any) -> Any:
    """Enum values are matched case-insensitively."""
    return value.upper() if isinstance(value, str) else value


class Access(str, Enum):
    """Store visibility of a bot."""

    PUBLIC = "PUBLIC"
    SUPPORTER = "SUPPORTER"


class GameType(str, Enum):
    OSRS = "OSRS"


class Category(str, Enum):
    """Store categories."""

    AGILITY = "AGILITY"
    COMBAT = "COMBAT"
    CONSTRUCTION = "CONSTRUCTION"
    COOKING = "COOKING"
    CRAFTING = "CRAFTING"
    DEVELOPER_TOOLS = "DEVELOPER_TOOLS"
    DIVINATION = "DIVINATION"
    DUNGEONEERING = "DUNGEONEERING"
    INVENTION = "INVENTION"
    FARMING = "FARMING"
    FIREMAKING = "FIREMAKING"
    FISHING = "FISHING"
    FLETCHING = "FLETCHING"
    HERBLORE = "HERBLORE"
    HUNTER = "HUNTER"
    MAGIC = "MAGIC"
    MINIGAMES = "MINIGAMES"
    MINING = "MINING"
    MONEYMAKING = "MONEYMAKING"
    OTHER = "OTHER"
    PRAYER = "PRAYER"
    QUESTING = "QUESTING"
    RUNECRAFTING = "RUNECRAFTING"
    SLAYER = "SLAYER"
    SMITHING = "SMITHING"
    SUMMONING = "SUMMONING"
    THIEVING = "THIEVING"
    WOODCUTTING = "WOODCUTTING"
    BOSSING = "BOSSING"


class FeatureType(str, Enum):
    DIRECT_INPUT = "DIRECT_INPUT"


class FeatureMode(str, Enum):
    REQUIRED = "REQUIRED"
    OPTIONAL = "OPTIONAL"
    NONE = "NONE"


AccessValue = Annotated[Access, BeforeValidator(_upper)]
GameTypeValue = Annotated[GameType, BeforeValidator(_upper)]
CategoryValue = Annotated[Category, BeforeValidator(_upper)]
FeatureTypeValue = Annotated[FeatureType, BeforeValidator(_upper)]
FeatureModeValue = Annotated[FeatureMode, BeforeValidator(_upper)]


class Feature(BaseModel):
    """A client feature the bot uses, and whether it is required."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: FeatureTypeValue
    mode: FeatureModeValue


class Trial(BaseModel):
    """Free-trial policy: ``allowance`` of run time within each ``window``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowance: timedelta = timedelta(0)
    window: timedelta = timedelta(0)

    @property
    def is_zero(self) -> bool:
        return not self.allowance and not self.window

    @property
    def is_negative(self) -> bool:
        return self.allowance < timedelta(0) or self.window < timedelta(0)


def derive_internal_id(main_class: str) -> str:
    """Return the part of ``main_class`` after the last ``/``."""
    return main_class.rsplit("/", 1)[-1]


class BotManifest(BaseModel):
    """Manifest describing one publishable bot.

    On disk the keys are camelCase (``mainClass``, ``internalId``,
    ``openSource``); the snake_case attribute names are accepted too.
    Instances are immutable.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    main_class: str = Field(min_length=1)
    name: str
    tagline: str
    description: str
    version: str
    internal_id: str = ""
    compatibility: FrozenSet[GameTypeValue] = frozenset({GameType.OSRS})
    categories: FrozenSet[CategoryValue] = Field(
        default=frozenset({Category.OTHER}), min_length=1
    )
    features: FrozenSet[Feature] = frozenset()
    access: AccessValue = Access.PUBLIC
    hidden: bool = False
    open_source: bool = False
    price: Decimal = Decimal("0")
    trial: Optional[Trial] = None
    resources: FrozenSet[str] = frozenset()
    tags: FrozenSet[str] = frozenset()
    obfuscation: FrozenSet[str] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def _default_internal_id(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "internalId" in data or "internal_id" in data:
            return data
        main_class = data.get("mainClass", data.get("main_class"))
        if isinstance(main_class, str):
            return {**data, "internalId": derive_internal_id(main_class)}
        return data

    @field_serializer(
        "compatibility", "categories", "resources", "tags", "obfuscation",
        when_used="json",
    )
    def _serialize_sorted(self, values: FrozenSet[Any]) -> list:
        return [v.value if isinstance(v, Enum) else v for v in sorted(values)]

    @field_serializer("features", when_used="json")
    def _serialize_features(self, features: FrozenSet[Feature]) -> list:
        ordered = sorted(features, key=lambda f: (f.type.value, f.mode.value))
        return [{"type": f.type.value, "mode": f.mode.value} for f in ordered]

    @property
    def is_premium(self) -> bool:
        return self.price > 0
