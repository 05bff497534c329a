"""Immutable configuration objects for the clustering engines."""
from enum import Enum
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from expression_clustering.logging_utils import get_logger

logger = get_logger("config")


class _CaseInsensitiveEnum(str, Enum):

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None


class MatrixType(_CaseInsensitiveEnum):
    """Direction of a pairwise matrix: larger-is-closer or smaller-is-closer."""

    SIMILARITY = "similarity"
    DISTANCE = "distance"


class LinkageMethod(_CaseInsensitiveEnum):
    """Rule used to derive the distance to a freshly merged cluster."""

    COMPLETE = "complete"
    SINGLE = "single"
    AVERAGE = "average"


class HierarchicalConfig(BaseModel):
    """Configuration of the agglomerative engine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    linkage: LinkageMethod = LinkageMethod.COMPLETE
    matrix_type: MatrixType = MatrixType.DISTANCE


class KMeansConfig(BaseModel):
    """Configuration of the k-means engine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    n_clusters: int = 2
    max_iter: int = 1000
    seed: Optional[int] = None
    # What to do when a cluster loses all of its members during an update
    empty_cluster_policy: Literal["retain", "error"] = "retain"

    @field_validator("n_clusters")
    @classmethod
    def validate_n_clusters(cls, v: int) -> int:
        if v < 1:
            raise ValueError("n_clusters must be >= 1")
        return v

    @field_validator("max_iter")
    @classmethod
    def validate_max_iter(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_iter must be >= 1")
        return v


class ClusteringConfig(BaseModel):
    """Top-level configuration, usually loaded from YAML."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    hierarchical: HierarchicalConfig = Field(default_factory=HierarchicalConfig)
    kmeans: KMeansConfig = Field(default_factory=KMeansConfig)
    verbose: bool = False


def load_config(path: Union[str, Path]) -> ClusteringConfig:
    """
    Load a ClusteringConfig from a YAML file.

    A missing or empty file yields the defaults.

    @param path: path to the YAML file
    @return: validated ClusteringConfig
    @raises ValueError: if the file holds unknown keys or invalid values
    """
    path = Path(path)
    logger.debug(f"Loading YAML config from: {path}")

    if not path.exists():
        logger.warning(f"Config file not found: {path}, using defaults")
        return ClusteringConfig()

    with open(path, "r", encoding="utf-8") as f:
        content = yaml.safe_load(f)

    if content is None:
        logger.warning(f"Empty config file: {path}, using defaults")
        return ClusteringConfig()

    return ClusteringConfig.model_validate(content)
