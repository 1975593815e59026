"""Tunable thresholds for matching and assembly."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings, overridable through ``PUZZLE_*`` environment variables."""

    # Border classification and similarity
    SIMILARITY_WINDOW: int = 5
    PICTURE_BORDER_RATIO: float = 0.1

    # Pairwise alignment
    ESTIMATION_MARGIN: int = 5
    REFINE_SKIP_SCORE: float = 100.0
    EXISTING_EDGE_MAX_SCORE: float = 30.0

    # Coordinate-descent optimizer
    OPTIMIZER_COORD_STEP: float = 10.0
    OPTIMIZER_DIR_STEP: float = 0.1
    OPTIMIZER_DECAY: float = 0.3
    OPTIMIZER_MIN_STEP: float = 1e-2
    OPTIMIZER_FORCED_DECAY_PASSES: int = 50

    # Assembly
    GREEDY_MAX_SCORE: float = 2.0
    FOUR_MAX_SCORE: float = 3.0
    REFINE_MAX_ITERATIONS: int = 1000
    PACKING_GAP: float = 20.0

    # Graph construction
    GRAPH_WORKERS: int = 1
    MIN_FIGURE_POINTS: int = 40
    MIN_SIDE_POINTS: int = 14

    class Config:
        """Pydantic configuration class."""

        case_sensitive = True
        env_file = ".env"
        env_prefix = "PUZZLE_"
        extra = "ignore"

    @field_validator(
        "SIMILARITY_WINDOW",
        "OPTIMIZER_FORCED_DECAY_PASSES",
        "REFINE_MAX_ITERATIONS",
        "GRAPH_WORKERS",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        """Counts and window sizes must be at least one."""
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("OPTIMIZER_COORD_STEP", "OPTIMIZER_DIR_STEP", "OPTIMIZER_MIN_STEP")
    @classmethod
    def validate_step(cls, v: float) -> float:
        """Step sizes must be strictly positive."""
        if v <= 0:
            raise ValueError("step sizes must be positive")
        return v

    @field_validator("OPTIMIZER_DECAY")
    @classmethod
    def validate_decay(cls, v: float) -> float:
        """The decay factor must shrink the step, otherwise the search never ends."""
        if not 0 < v < 1:
            raise ValueError("OPTIMIZER_DECAY must be in (0, 1)")
        return v

    @field_validator("ESTIMATION_MARGIN", "MIN_FIGURE_POINTS", "MIN_SIDE_POINTS")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Point counts cannot be negative."""
        if v < 0:
            raise ValueError("must not be negative")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
