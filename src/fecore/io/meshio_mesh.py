import numpy as np

from fecore.errors import FormatError, UnsupportedShapeError

meshio_cell_dimensions = {"vertex": 0, "line": 1, "triangle": 2, "tetra": 3}
meshio_unsupported_types = {
    "quad": "quadrilateral",
    "hexahedron": "hexahedron",
    "wedge": "prism",
    "pyramid": "pyramid",
}


def _physical_names(field_data):
    # (physical id, dimension) -> name
    names = {}
    for name, data in field_data.items():
        data = np.asarray(data).ravel()
        if data.shape[0] < 2:
            continue
        names[(int(data[0]), int(data[1]))] = name
    return names


def mesh_data_from_meshio(mesh, physical_key="gmsh:physical"):
    """Mesh data for ``MeshTopology.load`` from a meshio mesh.

    Cell blocks give the entities of every dimension and the ``physical_key``
    cell data gives the tags, named after ``field_data`` when available.
    """
    blocks = []
    for i, cell_block in enumerate(mesh.cells):
        cell_type = cell_block.type
        if cell_type in meshio_unsupported_types:
            raise UnsupportedShapeError(meshio_unsupported_types[cell_type])
        if cell_type not in meshio_cell_dimensions:
            raise UnsupportedShapeError(
                cell_type, "meshio cell type %r is not supported" % cell_type
            )
        physical = None
        if physical_key in mesh.cell_data:
            physical = np.asarray(mesh.cell_data[physical_key][i]).ravel()
        blocks.append((meshio_cell_dimensions[cell_type], np.asarray(cell_block.data), physical))

    if len(blocks) == 0 or max(dim for dim, _, _ in blocks) == 0:
        raise FormatError("meshio mesh does not contain any cell")

    top_dim = max(dim for dim, _, _ in blocks)
    names = _physical_names(getattr(mesh, "field_data", {}) or {})

    entities = {}
    tags = {}
    for dim in range(top_dim + 1):
        dim_blocks = [(data, physical) for d, data, physical in blocks if d == dim]
        if len(dim_blocks) == 0:
            continue
        connectivity = np.concatenate([data for data, _ in dim_blocks], axis=0)
        if dim == 0:
            # vertex entities are the points themselves
            entity_ids = connectivity[:, 0]
        else:
            # shared lower entities may be repeated across physical groups
            rows = np.sort(connectivity, axis=1)
            if dim == top_dim:
                unique_rows = rows
                entity_ids = np.arange(rows.shape[0])
            else:
                unique_rows, entity_ids = np.unique(rows, axis=0, return_inverse=True)
                entity_ids = entity_ids.reshape(-1)
            entities[dim] = unique_rows.tolist()

        physical_ids = [
            physical if physical is not None else np.full(data.shape[0], -1)
            for data, physical in dim_blocks
        ]
        physical_ids = np.concatenate(physical_ids)
        for physical_id in np.unique(physical_ids):
            if physical_id < 0:
                continue
            name = names.get((int(physical_id), dim), str(int(physical_id)))
            tagged = np.unique(entity_ids[physical_ids == physical_id])
            tags.setdefault(name, {})
            previous = tags[name].get(dim, [])
            tags[name][dim] = sorted(set(previous) | set(tagged.tolist()))

    return {"vertices": np.asarray(mesh.points), "entities": entities, "tags": tags}
