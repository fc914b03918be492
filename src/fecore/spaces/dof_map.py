import numpy as np


class DoFMap:
    """Global numbering of the Lagrange DoFs of a mesh.

    DoFs are numbered by dimension blocks: all vertex DoFs first, then edge,
    face and cell DoFs. Only entities in the closure of the cells carry DoFs;
    inside a block the ``i``-th such entity owns the contiguous range
    ``shift[d] + i * n_entity_dofs[d] + [0, n_entity_dofs[d])``.
    """

    def __init__(self, mesh_topology, ref_element):
        self.mesh_topology = mesh_topology
        self.ref_element = ref_element
        self.dimension = mesh_topology.dimension
        self.n_dof = 0
        self.n_entity_dofs = []
        self.entity_support = []
        self.entity_numbering = []
        self.global_indices = []
        self.cell_dofs = None
        self.dof_entities = None

    def build_entity_maps(self, n_dof_shift=0):
        dim = self.dimension
        mesh = self.mesh_topology

        self.n_entity_dofs = []
        for d in range(dim + 1):
            n_entity_dofs = self.ref_element.num_entity_dofs[d]
            if len(set(n_entity_dofs)) > 1:
                raise ValueError(
                    "DoFMap:: entities of dimension %d carry a varying number of dofs"
                    % d
                )
            self.n_entity_dofs.append(int(n_entity_dofs[0]))

        # mesh vertices that no cell references carry no dof
        self.entity_numbering = []
        for d in range(dim + 1):
            n_entities = mesh.num_entities(d)
            if d == 0:
                numbering = np.full(n_entities, -1, dtype=np.int64)
                used = np.unique(mesh.cell_vertices)
                numbering[used] = np.arange(len(used))
            else:
                numbering = np.arange(n_entities, dtype=np.int64)
            self.entity_numbering.append(numbering)

        self.entity_support = [
            int(np.count_nonzero(self.entity_numbering[d] >= 0)) * self.n_entity_dofs[d]
            for d in range(dim + 1)
        ]

        # Enumerates DoF
        dof_indices = np.array([0] + self.entity_support, dtype=np.int64)
        self.global_indices = np.add.accumulate(dof_indices) + n_dof_shift
        self.n_dof = int(sum(self.entity_support))

        self._build_cell_dofs()
        self._build_dof_entities()

    def _build_cell_dofs(self):
        dim = self.dimension
        mesh = self.mesh_topology
        n_cells = mesh.num_cells()
        cell_dofs = np.empty((n_cells, self.ref_element.dim), dtype=np.int64)
        for d in range(dim + 1):
            n_entity_dofs = self.n_entity_dofs[d]
            if n_entity_dofs == 0:
                continue
            if d == dim:
                cell_entities = np.arange(n_cells)[:, np.newaxis]
            else:
                cell_entities = mesh.connectivity(dim, d)
            positions = self.entity_numbering[d][cell_entities]
            for local_entity, local_dofs in enumerate(self.ref_element.entity_dofs[d]):
                first = self.global_indices[d] + positions[:, local_entity] * n_entity_dofs
                for j, local_dof in enumerate(local_dofs):
                    cell_dofs[:, local_dof] = first + j
        cell_dofs.setflags(write=False)
        self.cell_dofs = cell_dofs

    def _build_dof_entities(self):
        # (dimension, entity index) owning every dof
        chunks = []
        for d, n_entity_dofs in enumerate(self.n_entity_dofs):
            numbering = self.entity_numbering[d]
            entities = np.flatnonzero(numbering >= 0)
            entities = entities[np.argsort(numbering[entities])]
            entity_ids = np.repeat(entities, n_entity_dofs)
            dims = np.full(entity_ids.shape, d, dtype=np.int64)
            chunks.append(np.stack((dims, entity_ids), axis=1))
        dof_entities = np.concatenate(chunks, axis=0)
        dof_entities.setflags(write=False)
        self.dof_entities = dof_entities

    def dof_number(self):
        return self.n_dof

    def entity_dofs(self, dimension, entity_ids):
        entity_ids = np.asarray(entity_ids, dtype=np.int64).ravel()
        n_entity_dofs = self.n_entity_dofs[dimension]
        positions = self.entity_numbering[dimension][entity_ids]
        positions = positions[positions >= 0]
        if n_entity_dofs == 0 or len(positions) == 0:
            return np.empty(0, dtype=np.int64)
        first = self.global_indices[dimension] + positions * n_entity_dofs
        return (first[:, np.newaxis] + np.arange(n_entity_dofs)).ravel()

    def destination_indices(self, cell_id):
        return self.cell_dofs[cell_id]
