import logging
from abc import ABC, abstractmethod

import numpy as np

from fecore.basis.element_type import shape_by_dimension
from fecore.basis.parametric_transformation import transform_lower_to_higher
from fecore.errors import EmptyBoundaryError, IntegrationDomainError
from fecore.geometry.compute_normal import outward_normals
from fecore.geometry.mapping import evaluate_mapping

logger = logging.getLogger(__name__)


def _tag_list(tags):
    if isinstance(tags, str):
        return [tags]
    return list(tags)


class Triangulation(ABC):
    """Integration cells over a mesh.

    Every integration cell is a mesh entity (``entity_ids`` of dimension
    ``dimension``) lying in the closure of a mesh cell (``cell_ids``) whose
    shape functions are integrated over it.
    """

    def __init__(self, mesh, dimension, entity_ids, cell_ids):
        self.mesh = mesh
        self.dimension = dimension
        self.entity_ids = np.asarray(entity_ids, dtype=np.int64)
        self.cell_ids = np.asarray(cell_ids, dtype=np.int64)

    @staticmethod
    def for_domain(mesh, tags=None):
        return DomainTriangulation(mesh, tags)

    @staticmethod
    def for_boundary(mesh, tags=None):
        return BoundaryTriangulation(mesh, tags)

    @property
    def cell_shape(self):
        return shape_by_dimension(self.dimension)

    @property
    def cell_dimension(self):
        return self.mesh.dimension

    def num_cells(self):
        return self.entity_ids.shape[0]

    def entity_points(self):
        vertices = self.mesh.entity_vertices(self.dimension)[self.entity_ids]
        return self.mesh.coordinates[vertices]

    def support_cell_points(self):
        return self.mesh.coordinates[self.mesh.cell_vertices[self.cell_ids]]

    def geometric_map(self, points):
        return evaluate_mapping(self.dimension, points, self.entity_points())

    def measure(self, points):
        _, _, det_jac, _ = self.geometric_map(points)
        return det_jac

    def normal(self, points):
        return None

    @abstractmethod
    def cell_reference_points(self, points):
        pass


class DomainTriangulation(Triangulation):
    def __init__(self, mesh, tags=None):
        dim = mesh.dimension
        if tags is None:
            cell_ids = np.arange(mesh.num_cells())
        else:
            tags = _tag_list(tags)
            chunks = [mesh.entities_with_tag(tag, dim) for tag in tags]
            cell_ids = np.unique(np.concatenate([np.empty(0, dtype=np.int64)] + chunks))
            if len(cell_ids) == 0:
                raise IntegrationDomainError(
                    "no cells carry any of the tags %r" % (tags,)
                )
        super().__init__(mesh, dim, cell_ids, cell_ids)
        logger.debug(
            "DomainTriangulation:: Number of integration cells: %d", self.num_cells()
        )

    def cell_reference_points(self, points):
        # shared by all cells
        return np.asarray(points, dtype=float).reshape(-1, self.dimension)


class BoundaryTriangulation(Triangulation):
    """Facets one dimension below the cells.

    With ``tags=None`` all facets bounded by a single cell are selected,
    otherwise the facets carrying any of ``tags``. An empty selection raises
    :class:`EmptyBoundaryError`.
    """

    def __init__(self, mesh, tags=None):
        facet_dim = mesh.dimension - 1
        if tags is None:
            self.tags = None
            facet_ids = mesh.boundary_facets()
        else:
            self.tags = _tag_list(tags)
            chunks = [mesh.entities_with_tag(tag, facet_dim) for tag in self.tags]
            facet_ids = np.unique(
                np.concatenate([np.empty(0, dtype=np.int64)] + chunks)
            )
        if len(facet_ids) == 0:
            raise EmptyBoundaryError(self.tags if self.tags is not None else [])

        facet_cells, local_facets = mesh.facet_cells()
        super().__init__(mesh, facet_dim, facet_ids, facet_cells[facet_ids])
        self.local_facet_ids = local_facets[facet_ids]
        self._normals = outward_normals(self.entity_points(), self.support_cell_points())
        logger.debug(
            "BoundaryTriangulation:: Number of integration facets: %d",
            self.num_cells(),
        )

    def cell_reference_points(self, points):
        return transform_lower_to_higher(
            points, self.cell_dimension, self.local_facet_ids
        )

    def normal(self, points):
        n_points = np.asarray(points).shape[0]
        return np.repeat(self._normals[:, np.newaxis, :], n_points, axis=1)
