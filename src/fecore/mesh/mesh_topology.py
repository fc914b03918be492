import logging
import time

import basix
import networkx as nx
import numpy as np

from fecore.basis.element_type import (
    shape_by_dimension,
    shape_from_vertex_count,
    type_by_dimension,
)
from fecore.errors import FormatError
from fecore.geometry.mapping import cell_measures
from fecore.globals import geometry_collapse_tol

logger = logging.getLogger(__name__)


def _read_only(array):
    array.setflags(write=False)
    return array


def _dimension_key(key, context):
    try:
        dim = int(key)
    except (TypeError, ValueError):
        raise FormatError("%s: invalid dimension key %r" % (context, key)) from None
    if dim < 0 or dim > 3:
        raise FormatError("%s: dimension %r out of range" % (context, dim))
    return dim


def _as_index_array(data, context):
    try:
        array = np.asarray(data)
    except (TypeError, ValueError):
        raise FormatError("%s: ragged or non numeric data" % context) from None
    if array.size == 0:
        return np.empty(0, dtype=np.int64)
    if array.dtype == object or not np.issubdtype(array.dtype, np.integer):
        raise FormatError("%s: entity indices must be integers" % context)
    return array.astype(np.int64)


def _read_coordinates(mesh_data):
    try:
        vertices = mesh_data["vertices"]
    except (KeyError, TypeError):
        raise FormatError("mesh data has no 'vertices' entry") from None
    try:
        points = np.asarray(vertices, dtype=float)
    except (TypeError, ValueError):
        raise FormatError("vertex coordinates are ragged or non numeric") from None
    if points.ndim != 2 or points.shape[0] == 0:
        raise FormatError("vertex coordinates must be a non empty list of points")
    if points.shape[1] < 1 or points.shape[1] > 3:
        raise FormatError(
            "vertex coordinates must have 1 to 3 components, got %r" % points.shape[1]
        )
    if not np.all(np.isfinite(points)):
        raise FormatError("vertex coordinates must be finite")
    coordinates = np.zeros((points.shape[0], 3))
    coordinates[:, : points.shape[1]] = points
    return coordinates


def _read_entities(mesh_data, n_vertices):
    try:
        entities = mesh_data["entities"]
        items = list(entities.items())
    except (KeyError, TypeError, AttributeError):
        raise FormatError("mesh data has no 'entities' mapping") from None

    given = {}
    for key, data in items:
        dim = _dimension_key(key, "entities")
        if dim == 0:
            raise FormatError(
                "entities: dimension 0 entities are the mesh vertices and can not be listed"
            )
        if dim in given:
            raise FormatError("entities: dimension %r listed twice" % dim)
        context = "entities of dimension %d" % dim
        array = _as_index_array(data, context)
        if array.size == 0:
            continue
        if array.ndim != 2:
            raise FormatError("%s: expected a list of vertex lists" % context)
        given[dim] = array

    if len(given) == 0:
        raise FormatError("mesh data does not contain any cell")

    top_dim = max(given.keys())
    shape_from_vertex_count(top_dim, given[top_dim].shape[1])
    for dim, array in given.items():
        context = "entities of dimension %d" % dim
        if array.shape[1] != dim + 1:
            shape_from_vertex_count(dim, array.shape[1])
        if array.min() < 0 or array.max() >= n_vertices:
            raise FormatError("%s: dangling vertex reference" % context)
        sorted_array = np.sort(array, axis=1)
        if np.any(sorted_array[:, 1:] == sorted_array[:, :-1]):
            raise FormatError("%s: repeated vertex inside an entity" % context)
        if np.unique(sorted_array, axis=0).shape[0] != sorted_array.shape[0]:
            raise FormatError("%s: duplicate entities" % context)
        given[dim] = sorted_array
    return top_dim, given


def _sub_entity_rows(entity_vertices, dim, sub_dim):
    # rows follow the reference cell numbering of sub-entities
    local = np.array(basix.topology(type_by_dimension(dim))[sub_dim], dtype=np.int64)
    rows = entity_vertices[:, local]
    return rows.reshape(-1, sub_dim + 1), local.shape[0]


def _number_sub_entities(given_rows, candidate_rows):
    # listed entities keep their positions, the remaining ones are numbered by
    # first appearance
    n_given = given_rows.shape[0]
    all_rows = np.concatenate((given_rows, candidate_rows), axis=0)
    unique_rows, first_index, inverse = np.unique(
        all_rows, axis=0, return_index=True, return_inverse=True
    )
    inverse = inverse.reshape(-1)
    ranking = np.argsort(first_index, kind="stable")
    new_ids = np.empty(len(ranking), dtype=np.int64)
    new_ids[ranking] = np.arange(len(ranking))
    entity_vertices = unique_rows[ranking]
    candidate_ids = new_ids[inverse[n_given:]]
    return entity_vertices, candidate_ids


def _check_cell_measures(cell_points, dimension):
    measures = cell_measures(dimension, cell_points)
    scales = np.max(
        np.linalg.norm(cell_points - cell_points[:, 0:1, :], axis=2), axis=1
    )
    degenerated = np.flatnonzero(measures <= geometry_collapse_tol * scales**dimension)
    if len(degenerated) != 0:
        raise FormatError(
            "cell %d has a degenerated geometry (zero measure)" % degenerated[0]
        )


def _read_tags(mesh_data, top_dim, n_entities):
    tags_data = mesh_data.get("tags", {}) if hasattr(mesh_data, "get") else {}
    if tags_data is None:
        tags_data = {}
    try:
        items = list(tags_data.items())
    except AttributeError:
        raise FormatError("'tags' must map tag names to entity sets") from None

    tags = {}
    for name, by_dimension in items:
        if not isinstance(name, str):
            raise FormatError("tag names must be strings, got %r" % (name,))
        try:
            dim_items = list(by_dimension.items())
        except AttributeError:
            raise FormatError(
                "tag %r must map dimensions to entity indices" % name
            ) from None
        tag_sets = {}
        for key, indices in dim_items:
            dim = _dimension_key(key, "tag %r" % name)
            if dim > top_dim:
                raise FormatError(
                    "tag %r references dimension %d above the cell dimension %d"
                    % (name, dim, top_dim)
                )
            context = "tag %r, dimension %d" % (name, dim)
            array = _as_index_array(indices, context).ravel()
            if array.size != 0 and (array.min() < 0 or array.max() >= n_entities[dim]):
                raise FormatError("%s: entity index out of range" % context)
            tag_sets[dim] = _read_only(np.unique(array))
        tags[name] = tag_sets
    return tags


class MeshTopology:
    # Entities by dimension, vertex lists sorted ascending
    # https://defelement.com/ciarlet.html
    def __init__(self, coordinates, entity_vertices, connectivity, tags):
        self._coordinates = _read_only(coordinates)
        self._entity_vertices = [_read_only(ev) for ev in entity_vertices]
        self._connectivity = {
            key: _read_only(conn) for key, conn in connectivity.items()
        }
        self._tags = tags
        self.dimension = len(entity_vertices) - 1
        self.cell_shape = shape_by_dimension(self.dimension)
        self._entity_maps = None
        self._facet_cells = None

    @classmethod
    def load(cls, mesh_data):
        st = time.time()
        coordinates = _read_coordinates(mesh_data)
        n_vertices = coordinates.shape[0]
        top_dim, given = _read_entities(mesh_data, n_vertices)

        entity_vertices = [np.arange(n_vertices, dtype=np.int64).reshape(-1, 1)]
        cells = given[top_dim]
        _check_cell_measures(coordinates[cells], top_dim)
        connectivity = {(top_dim, 0): cells}
        for sub_dim in range(1, top_dim):
            given_rows = given.get(sub_dim, np.empty((0, sub_dim + 1), dtype=np.int64))
            candidate_rows, n_local = _sub_entity_rows(cells, top_dim, sub_dim)
            sub_vertices, candidate_ids = _number_sub_entities(
                given_rows, candidate_rows
            )
            if sub_vertices.shape[0] != len(np.unique(candidate_ids)):
                raise FormatError(
                    "entities of dimension %d: listed entity does not bound any cell"
                    % sub_dim
                )
            entity_vertices.append(sub_vertices)
            connectivity[(top_dim, sub_dim)] = candidate_ids.reshape(-1, n_local)
        entity_vertices.append(cells)

        # incidence between lower dimensional entities
        for dim in range(1, top_dim):
            connectivity[(dim, 0)] = entity_vertices[dim]
            for sub_dim in range(1, dim):
                lookup = {
                    tuple(row): i for i, row in enumerate(entity_vertices[sub_dim])
                }
                rows, n_local = _sub_entity_rows(entity_vertices[dim], dim, sub_dim)
                ids = np.array([lookup[tuple(row)] for row in rows], dtype=np.int64)
                connectivity[(dim, sub_dim)] = ids.reshape(-1, n_local)

        n_entities = [ev.shape[0] for ev in entity_vertices]
        tags = _read_tags(mesh_data, top_dim, n_entities)

        mesh = cls(coordinates, entity_vertices, connectivity, tags)
        et = time.time()
        logger.info(
            "MeshTopology:: Loaded %s mesh with %d cells and %d vertices",
            mesh.cell_shape,
            n_entities[top_dim],
            n_vertices,
        )
        logger.debug("MeshTopology:: Construction time: %s seconds", et - st)
        return mesh

    @classmethod
    def from_meshio(cls, mesh):
        from fecore.io.meshio_mesh import mesh_data_from_meshio

        return cls.load(mesh_data_from_meshio(mesh))

    @property
    def coordinates(self):
        return self._coordinates

    @property
    def cell_vertices(self):
        return self._entity_vertices[self.dimension]

    @property
    def tag_names(self):
        return sorted(self._tags.keys())

    def has_tag(self, name):
        return name in self._tags

    def num_vertices(self):
        return self._coordinates.shape[0]

    def num_cells(self):
        return self.num_entities(self.dimension)

    def num_entities(self, dimension):
        self._check_dimension(dimension)
        return self._entity_vertices[dimension].shape[0]

    def entity_vertices(self, dimension):
        self._check_dimension(dimension)
        return self._entity_vertices[dimension]

    def connectivity(self, dimension, lower_dimension):
        self._check_dimension(dimension)
        if lower_dimension >= dimension or lower_dimension < 0:
            raise ValueError(
                "MeshTopology:: no incidence from dimension %r to %r"
                % (dimension, lower_dimension)
            )
        return self._connectivity[(dimension, lower_dimension)]

    def entities_with_tag(self, name, dimension):
        tag_sets = self._tags.get(name, None)
        if tag_sets is None:
            return np.empty(0, dtype=np.int64)
        return tag_sets.get(dimension, np.empty(0, dtype=np.int64))

    def entities_in_tag_closure(self, name, dimension):
        chunks = [self.entities_with_tag(name, dimension)]
        for dim in range(dimension + 1, self.dimension + 1):
            tagged = self.entities_with_tag(name, dim)
            if len(tagged) == 0:
                continue
            chunks.append(self.connectivity(dim, dimension)[tagged].ravel())
        return np.unique(np.concatenate(chunks))

    def incident_lower_entities(self, dimension, index, lower_dimension=None):
        self._check_index(dimension, index)
        if lower_dimension is not None:
            if lower_dimension == dimension:
                return np.array([index], dtype=np.int64)
            return self.connectivity(dimension, lower_dimension)[index]
        return [
            (d, int(i))
            for d in range(dimension - 1, -1, -1)
            for i in self.connectivity(dimension, d)[index]
        ]

    def incident_higher_entities(self, dimension, index, higher_dimension):
        self._check_index(dimension, index)
        self._check_dimension(higher_dimension)
        graph = self.entity_maps
        node = (dimension, int(index))
        if not graph.has_node(node):
            return np.empty(0, dtype=np.int64)
        neighs = [i for d, i in graph.predecessors(node) if d == higher_dimension]
        return np.array(sorted(neighs), dtype=np.int64)

    @property
    def entity_maps(self):
        # entity -> sub-entity incidence graph, built on first use
        if self._entity_maps is None:
            st = time.time()
            graph = nx.DiGraph()
            for dim in range(self.dimension + 1):
                graph.add_nodes_from((dim, i) for i in range(self.num_entities(dim)))
            for (dim, sub_dim), conn in self._connectivity.items():
                graph.add_edges_from(
                    ((dim, i), (sub_dim, int(j)))
                    for i, row in enumerate(conn)
                    for j in row
                )
            self._entity_maps = graph
            et = time.time()
            logger.debug("MeshTopology:: Incidence graph time: %s seconds", et - st)
        return self._entity_maps

    def facet_cells(self):
        # lowest index cell bounded by each facet and the local facet index
        if self._facet_cells is None:
            conn = self.connectivity(self.dimension, self.dimension - 1)
            n_facets = self.num_entities(self.dimension - 1)
            flat = conn.ravel()
            order = np.argsort(flat, kind="stable")
            facets, first = np.unique(flat[order], return_index=True)
            cell_ids = np.full(n_facets, -1, dtype=np.int64)
            local_ids = np.full(n_facets, -1, dtype=np.int64)
            cell_ids[facets] = order[first] // conn.shape[1]
            local_ids[facets] = order[first] % conn.shape[1]
            counts = np.bincount(flat, minlength=n_facets)
            self._facet_cells = tuple(
                _read_only(a) for a in (cell_ids, local_ids, counts)
            )
        return self._facet_cells[0], self._facet_cells[1]

    def boundary_facets(self):
        self.facet_cells()
        counts = self._facet_cells[2]
        return np.flatnonzero(counts == 1)

    def _check_dimension(self, dimension):
        if dimension < 0 or dimension > self.dimension:
            raise ValueError(
                "MeshTopology:: max dimension available is %r" % self.dimension
            )

    def _check_index(self, dimension, index):
        self._check_dimension(dimension)
        if index < 0 or index >= self._entity_vertices[dimension].shape[0]:
            raise IndexError(
                "MeshTopology:: entity %r of dimension %r does not exist"
                % (index, dimension)
            )
