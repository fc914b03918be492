import basix
import numpy as np

from fecore.basis.element_type import type_by_dimension
from fecore.geometry.mapping import evaluate_linear_shapes


def transform_lower_to_higher(points, cell_dimension, local_facet_ids):
    """Map facet reference points into the reference cell.

    Facet ``f`` of the reference cell is spanned by the cell vertices
    ``basix.topology(cell)[dim - 1][f]``; since mesh entities keep their
    vertices sorted, this is also the vertex order of the facet entity.
    Returns an array of shape (len(local_facet_ids), n_points, dim).
    """
    cell_type = type_by_dimension(cell_dimension)
    cell_vertices = basix.geometry(cell_type)
    facet_connectivities = np.array(
        basix.topology(cell_type)[cell_dimension - 1], dtype=np.int64
    )
    facet_vertices = cell_vertices[facet_connectivities]

    # perform linear map
    phi = evaluate_linear_shapes(points, cell_dimension - 1)
    mapped_points = np.einsum("qv,fvk->fqk", phi, facet_vertices)
    return mapped_points[np.asarray(local_facet_ids, dtype=np.int64)]
