from basix import CellType

from fecore.errors import FormatError, UnsupportedShapeError

simplex_names = ("point", "interval", "triangle", "tetrahedron")

# shapes known by name but not implemented by the simplex topology
non_simplex_shapes = {
    (2, 4): "quadrilateral",
    (3, 8): "hexahedron",
    (3, 6): "prism",
    (3, 5): "pyramid",
}


def type_by_dimension(dimension):
    element_types = {
        0: CellType.point,
        1: CellType.interval,
        2: CellType.triangle,
        3: CellType.tetrahedron,
    }
    if dimension not in element_types:
        raise UnsupportedShapeError(
            "%d-cell" % dimension, "no simplex cell of dimension %r" % dimension
        )
    return element_types[dimension]


def type_by_name(shape):
    if shape not in simplex_names:
        raise UnsupportedShapeError(shape)
    return type_by_dimension(simplex_names.index(shape))


def dimension_by_name(shape):
    if shape not in simplex_names:
        raise UnsupportedShapeError(shape)
    return simplex_names.index(shape)


def shape_by_dimension(dimension):
    return simplex_names[dimension]


def shape_from_vertex_count(dimension, n_vertices):
    if n_vertices == dimension + 1 and 0 <= dimension <= 3:
        return simplex_names[dimension]
    shape = non_simplex_shapes.get((dimension, n_vertices), None)
    if shape is not None:
        raise UnsupportedShapeError(shape)
    raise FormatError(
        "entities of dimension %r can not have %r vertices" % (dimension, n_vertices)
    )
