import numpy as np


def cell_diameters(mesh, dim=None):
    # largest vertex to vertex distance of every entity of dimension dim
    if dim is None:
        dim = mesh.dimension
    points = mesh.coordinates[mesh.entity_vertices(dim)]
    dxs = points[:, :, np.newaxis, :] - points[:, np.newaxis, :, :]
    return np.max(np.linalg.norm(dxs, axis=3), axis=(1, 2))


def mesh_size(mesh, dim=None):
    cell_sizes = cell_diameters(mesh, dim)
    min_mesh_size_v = np.min(cell_sizes)
    mean_mesh_size_v = np.mean(cell_sizes)
    max_mesh_size_v = np.max(cell_sizes)
    return min_mesh_size_v, mean_mesh_size_v, max_mesh_size_v
