import logging

import basix
import meshio
import numpy as np

from fecore.basis.element_type import type_by_dimension
from fecore.spaces.fe_function import FEFunction

logger = logging.getLogger(__name__)

meshio_cell_types = {1: "line", 2: "triangle", 3: "tetra"}


def cell_centered_quantity(uh):
    # value of uh at the centroid of every cell
    mesh = uh.space.mesh
    par_points = basix.geometry(type_by_dimension(mesh.dimension))
    point = np.array([np.mean(par_points, axis=0)])
    phi = uh.space.ref_element.values(point)[0]
    alpha_star = uh.dof_values[uh.space.cell_dof_table]
    return alpha_star @ phi


def _point_values(mesh, name, values):
    if isinstance(values, FEFunction):
        return values.vertex_values()
    values = np.asarray(values, dtype=float)
    if values.shape[0] != mesh.num_vertices():
        raise ValueError(
            "write_vtk_file:: point data %r has %d values for %d vertices"
            % (name, values.shape[0], mesh.num_vertices())
        )
    return values


def write_vtk_file(file_name, mesh, point_data=None, cell_centered=None):
    """Writes the cells of ``mesh`` with vertex and cell fields through meshio.

    ``point_data`` maps names to FE functions (sampled at the vertices) or to
    vertex arrays; ``cell_centered`` maps names to FE functions evaluated at
    the cell centroids. Cell tags are written as 0/1 cell fields.
    """
    p_data_dict = {}
    c_data_dict = {}

    for name, values in (point_data or {}).items():
        p_data_dict[name] = _point_values(mesh, name, values)

    for name, uh in (cell_centered or {}).items():
        c_data_dict[name] = [cell_centered_quantity(uh)]

    dim = mesh.dimension
    for tag in mesh.tag_names:
        tagged = mesh.entities_with_tag(tag, dim)
        if len(tagged) == 0:
            continue
        marker = np.zeros(mesh.num_cells())
        marker[tagged] = 1.0
        c_data_dict["tag_" + tag] = [marker]

    vtk_mesh = meshio.Mesh(
        points=mesh.coordinates,
        cells={meshio_cell_types[dim]: mesh.cell_vertices},
        point_data=p_data_dict,
        cell_data=c_data_dict,
    )
    vtk_mesh.write(file_name)
    logger.info("write_vtk_file:: Wrote %s", file_name)
