import pytest
from pydantic import ValidationError

from expression_clustering.config import (
    ClusteringConfig,
    HierarchicalConfig,
    KMeansConfig,
    LinkageMethod,
    MatrixType,
    load_config,
)


def test_defaults():
    config = ClusteringConfig()
    assert config.hierarchical.linkage == LinkageMethod.COMPLETE
    assert config.hierarchical.matrix_type == MatrixType.DISTANCE
    assert config.kmeans.n_clusters == 2
    assert config.kmeans.max_iter == 1000
    assert config.kmeans.empty_cluster_policy == "retain"


def test_enums_accept_any_case():
    assert LinkageMethod("AVERAGE") == LinkageMethod.AVERAGE
    assert MatrixType("Similarity") == MatrixType.SIMILARITY
    with pytest.raises(ValueError):
        LinkageMethod("centroid")


def test_configs_are_immutable():
    config = HierarchicalConfig(linkage="single")
    with pytest.raises(ValidationError):
        config.linkage = LinkageMethod.AVERAGE


def test_unknown_values_are_rejected():
    with pytest.raises(ValidationError):
        HierarchicalConfig(linkage="ward")
    with pytest.raises(ValidationError):
        HierarchicalConfig(matrix_type="closeness")
    with pytest.raises(ValidationError):
        KMeansConfig(empty_cluster_policy="reinitialize")
    with pytest.raises(ValidationError):
        KMeansConfig(k=3)


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "clustering.yaml"
    path.write_text(
        "hierarchical:\n"
        "  linkage: average\n"
        "  matrix_type: similarity\n"
        "kmeans:\n"
        "  n_clusters: 3\n"
        "  max_iter: 50\n"
        "  seed: 7\n"
        "verbose: true\n"
    )
    config = load_config(path)
    assert config.hierarchical.linkage == LinkageMethod.AVERAGE
    assert config.hierarchical.matrix_type == MatrixType.SIMILARITY
    assert config.kmeans == KMeansConfig(n_clusters=3, max_iter=50, seed=7)
    assert config.verbose


def test_load_config_missing_or_empty_file(tmp_path):
    assert load_config(tmp_path / "missing.yaml") == ClusteringConfig()
    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert load_config(empty) == ClusteringConfig()


def test_load_config_invalid_values(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("kmeans:\n  max_iter: 0\n")
    with pytest.raises(ValueError):
        load_config(path)
