import logging
import time

import numpy as np

from fecore.basis.reference_element import shape_functions
from fecore.geometry.mapping import evaluate_mapping
from fecore.spaces.coefficient import evaluate_coefficient
from fecore.spaces.dof_map import DoFMap

logger = logging.getLogger(__name__)


def _tag_tuple(tags):
    if tags is None:
        return ()
    if isinstance(tags, str):
        return (tags,)
    return tuple(tags)


class FESpace:
    """Conforming Lagrange space of order ``k_order`` over a mesh.

    A DoF is Dirichlet when its entity carries one of ``dirichlet_tags`` or
    lies in the closure of a tagged entity.
    """

    def __init__(self, mesh, k_order=1, dirichlet_tags=None):
        self.mesh = mesh
        self.k_order = k_order
        self.dirichlet_tags = _tag_tuple(dirichlet_tags)
        self.ref_element = shape_functions(mesh.cell_shape, k_order)
        self._build_dof_map()
        self._build_dof_coordinates()
        self._mark_dirichlet_dofs()

    @classmethod
    def build(cls, mesh, order=1, dirichlet_tags=None):
        return cls(mesh, order, dirichlet_tags)

    def _build_dof_map(self):
        st = time.time()
        self.dof_map = DoFMap(self.mesh, self.ref_element)
        self.dof_map.build_entity_maps()
        self.n_dof = self.dof_map.dof_number()
        et = time.time()
        logger.info(
            "FESpace:: Number of dofs: %d (order %d)", self.n_dof, self.k_order
        )
        logger.debug("FESpace:: DoFMap construction time: %s seconds", et - st)

    def _build_dof_coordinates(self):
        cell_points = self.mesh.coordinates[self.mesh.cell_vertices]
        x, _, _, _ = evaluate_mapping(
            self.mesh.dimension, self.ref_element.points, cell_points
        )
        coordinates = np.zeros((self.n_dof, 3))
        coordinates[self.dof_map.cell_dofs.ravel()] = x.reshape(-1, 3)
        coordinates.setflags(write=False)
        self._dof_coordinates = coordinates

    def _mark_dirichlet_dofs(self):
        mask = np.zeros(self.n_dof, dtype=bool)
        for tag in self.dirichlet_tags:
            if not self.mesh.has_tag(tag):
                logger.warning("FESpace:: Dirichlet tag %r is not present in the mesh", tag)
                continue
            for d in range(self.mesh.dimension + 1):
                entity_ids = self.mesh.entities_in_tag_closure(tag, d)
                mask[self.dof_map.entity_dofs(d, entity_ids)] = True
        mask.setflags(write=False)
        self._dirichlet_mask = mask

        self._free_dofs = np.flatnonzero(~mask)
        self._dirichlet_dofs = np.flatnonzero(mask)
        for array in (self._free_dofs, self._dirichlet_dofs):
            array.setflags(write=False)
        logger.info(
            "FESpace:: Free dofs: %d, Dirichlet dofs: %d",
            len(self._free_dofs),
            len(self._dirichlet_dofs),
        )

    def num_dofs(self):
        return self.n_dof

    def num_free_dofs(self):
        return len(self._free_dofs)

    def num_dirichlet_dofs(self):
        return len(self._dirichlet_dofs)

    def is_dirichlet(self, dof):
        if dof < 0 or dof >= self.n_dof:
            raise IndexError("FESpace:: dof %r does not exist" % dof)
        return bool(self._dirichlet_mask[dof])

    def cell_dofs(self, cell_id):
        return self.dof_map.destination_indices(cell_id)

    @property
    def cell_dof_table(self):
        return self.dof_map.cell_dofs

    @property
    def free_dofs(self):
        return self._free_dofs

    @property
    def dirichlet_dofs(self):
        return self._dirichlet_dofs

    @property
    def dirichlet_mask(self):
        return self._dirichlet_mask

    @property
    def dof_coordinates(self):
        return self._dof_coordinates

    @property
    def dof_entities(self):
        return self.dof_map.dof_entities


CLagrangianFESpace = FESpace


class ConstrainedFESpace:
    # View over an FESpace with prescribed values on its Dirichlet dofs

    role = None

    def __init__(self, space, dirichlet_values):
        self.space = space
        dirichlet_values = np.asarray(dirichlet_values, dtype=float)
        dirichlet_values.setflags(write=False)
        self.dirichlet_values = dirichlet_values

    @property
    def mesh(self):
        return self.space.mesh

    @property
    def k_order(self):
        return self.space.k_order

    @property
    def ref_element(self):
        return self.space.ref_element

    @property
    def cell_dof_table(self):
        return self.space.cell_dof_table

    @property
    def free_dofs(self):
        return self.space.free_dofs

    @property
    def dirichlet_dofs(self):
        return self.space.dirichlet_dofs

    @property
    def dof_coordinates(self):
        return self.space.dof_coordinates

    def num_dofs(self):
        return self.space.num_dofs()

    def num_free_dofs(self):
        return self.space.num_free_dofs()

    def num_dirichlet_dofs(self):
        return self.space.num_dirichlet_dofs()

    def is_dirichlet(self, dof):
        return self.space.is_dirichlet(dof)

    def cell_dofs(self, cell_id):
        return self.space.cell_dofs(cell_id)


def _unconstrained(space):
    return space.space if isinstance(space, ConstrainedFESpace) else space


class TestFESpace(ConstrainedFESpace):
    """Test functions: zero on the Dirichlet dofs."""

    role = "test"

    def __init__(self, space):
        space = _unconstrained(space)
        super().__init__(space, np.zeros(space.num_dirichlet_dofs()))


class TrialFESpace(ConstrainedFESpace):
    """Trial functions taking ``g`` at the Dirichlet dof coordinates."""

    role = "trial"

    def __init__(self, space, g=0.0):
        space = _unconstrained(space)
        points = space.dof_coordinates[space.dirichlet_dofs]
        super().__init__(space, evaluate_coefficient(g, points))
        self.g = g
