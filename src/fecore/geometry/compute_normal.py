import numpy as np

from fecore.geometry.mapping import affine_jacobian


def outward_normals(facet_points, cell_points):
    # facet_points (n, dim, 3), cell_points (n, dim + 1, 3)
    xc_c1 = np.mean(facet_points, axis=1)
    xc_c0 = np.mean(cell_points, axis=1)
    outward = xc_c1 - xc_c0
    if facet_points.shape[1] > 1:
        # remove the tangential part of the centroid offset
        tangents = affine_jacobian(facet_points)
        q_axes, _ = np.linalg.qr(tangents)
        outward = outward - np.einsum(
            "nkd,nd->nk", q_axes, np.einsum("nkd,nk->nd", q_axes, outward)
        )
    normal = outward / np.linalg.norm(outward, axis=1)[:, np.newaxis]
    return normal
