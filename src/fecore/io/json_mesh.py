import json
import logging

from fecore.errors import FormatError
from fecore.mesh.mesh_topology import MeshTopology

logger = logging.getLogger(__name__)


def read_json_mesh(file_name):
    """Loads a mesh stored as JSON with the ``MeshTopology.load`` layout:

    ``{"vertices": [...], "entities": {"3": [...]}, "tags": {"name": {"2": [...]}}}``
    """
    with open(file_name, "r") as json_file:
        try:
            mesh_data = json.load(json_file)
        except json.JSONDecodeError as err:
            raise FormatError("%s is not a valid JSON file: %s" % (file_name, err)) from err
    if not isinstance(mesh_data, dict):
        raise FormatError("%s does not contain a mesh description" % file_name)
    logger.info("read_json_mesh:: Reading %s", file_name)
    return MeshTopology.load(mesh_data)


def DiscreteModelFromFile(file_name):
    return read_json_mesh(file_name)
