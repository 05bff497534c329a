import numpy as np

from expression_clustering.agglomerative_clustering import HierarchicalClustering, relabel_contiguous
from expression_clustering.config import HierarchicalConfig, KMeansConfig
from expression_clustering.distances import compute_distance_matrix, matrix_type_for
from expression_clustering.kmeans import KMeans
from expression_clustering.logging_utils import setup_logging

if __name__ == "__main__":
    setup_logging(verbose=False)

    # Example dataset: 6 samples x 4 genes
    X = np.array([
        [1.0, 2.0, 3.0, 4.0],
        [1.1, 2.1, 2.9, 4.2],
        [0.9, 1.8, 3.2, 3.9],
        [4.0, 3.0, 2.0, 1.0],
        [4.2, 2.9, 2.1, 0.8],
        [3.9, 3.1, 1.9, 1.1],
    ])

    # Hierarchical clustering on the Pearson correlation matrix
    D = compute_distance_matrix(X, "pearson")
    config = HierarchicalConfig(linkage="average", matrix_type=matrix_type_for("pearson"))
    labels = relabel_contiguous(HierarchicalClustering(D, config).compute(2))
    for sample, cluster in enumerate(labels):
        print(f"Sample {sample}: cluster {cluster}")

    # K-means on one sample's expression values
    values = [0.0, 0.0, 1.0, 1.0, 8.0, 8.0, 8.0]
    clusters = [0] * len(values)
    means = KMeans(values, clusters, KMeansConfig(n_clusters=2, max_iter=10, seed=0)).compute()
    print(f"Means: {means}, clusters: {clusters}")
