"""
Layout and selection settings for the country boxplot.

The selected feature is part of the config and is passed into every render
call, so a render pass never reads it from anywhere else.
"""

import dataclasses
from dataclasses import dataclass, field

COMPONENT_WIDTH = 700
COMPONENT_HEIGHT = 500
DEFAULT_FEATURE = "acousticness"

DEFAULT_COUNTRIES = ("United States", "France", "Mexico", "Japan", "South Korea")

AUDIO_FEATURES = (
    "acousticness", "danceability", "energy", "instrumentalness",
    "liveness", "speechiness", "valence",
)

BOX_WIDTH = 100
JITTER_WIDTH = 50
POINT_RADIUS = 4
BOX_FILL = "#69b3a2"


@dataclass(frozen=True)
class Margin:
    top: float = 50
    right: float = 10
    bottom: float = 60
    left: float = 50


@dataclass(frozen=True)
class BoxplotConfig:
    feature: str = DEFAULT_FEATURE
    countries: tuple[str, ...] = DEFAULT_COUNTRIES
    audio_features: tuple[str, ...] = AUDIO_FEATURES
    margin: Margin = field(default_factory=Margin)
    width: float | None = None
    height: float | None = None

    def __post_init__(self):
        object.__setattr__(self, "countries", tuple(self.countries))
        object.__setattr__(self, "audio_features", tuple(self.audio_features))
        # Drawable area defaults to the component size minus margins
        if self.width is None:
            object.__setattr__(
                self, "width", COMPONENT_WIDTH - self.margin.left - self.margin.right
            )
        if self.height is None:
            object.__setattr__(
                self, "height", COMPONENT_HEIGHT - self.margin.top - self.margin.bottom
            )
        if self.feature not in self.audio_features:
            raise ValueError(
                f"unknown feature {self.feature!r}; expected one of {', '.join(self.audio_features)}"
            )

    @property
    def outer_width(self) -> float:
        return self.width + self.margin.left + self.margin.right

    @property
    def outer_height(self) -> float:
        return self.height + self.margin.top + self.margin.bottom

    def with_changes(self, **changes) -> "BoxplotConfig":
        """Copy with some fields replaced (width/height recomputed if margin changes)."""
        if "margin" in changes:
            changes.setdefault("width", None)
            changes.setdefault("height", None)
        return dataclasses.replace(self, **changes)
