import logging
import sys
import time

import meshio
import numpy as np

from fecore.integration.cell_quadrature import CellQuadrature
from fecore.integration.triangulation import Triangulation
from fecore.io.json_mesh import read_json_mesh
from fecore.mesh.mesh_generators import unit_cube_mesh
from fecore.mesh.mesh_metrics import mesh_size
from fecore.mesh.mesh_topology import MeshTopology
from fecore.postprocess.solution_post_processor import write_vtk_file
from fecore.solvers.linear_fe_operator import LinearFEOperator
from fecore.solvers.linear_fe_solver import LinearFESolver
from fecore.solvers.linear_solvers import LUSolver
from fecore.spaces.fe_space import FESpace, TestFESpace, TrialFESpace
from fecore.weak_forms.basis_values import grad, inner
from fecore.weak_forms.fe_terms import AffineFETerm, FESource


def load_mesh(file_name=None):
    if file_name is None:
        return MeshTopology.load(unit_cube_mesh(8))
    if file_name.endswith(".json"):
        return read_json_mesh(file_name)
    return MeshTopology.from_meshio(meshio.read(file_name))


def h1_poisson(mesh, k_order, dirichlet_tags, neumann_tags, write_vtk_q=False):
    # -lap(u) = f, u = g on dirichlet_tags, grad(u).n = h on neumann_tags
    f = 1.0
    g = 2.0
    h = 3.0

    V = FESpace(mesh, k_order, dirichlet_tags)
    U = TrialFESpace(V, g)
    V0 = TestFESpace(V)
    print("n_dof: ", V.num_dofs())
    print("h_max: ", mesh_size(mesh)[2])

    trian = Triangulation.for_domain(mesh)
    quad = CellQuadrature(trian, k_order=k_order)

    def a(v, u):
        return inner(grad(v), grad(u))

    def b_Omega(v):
        return inner(v, f)

    terms = [AffineFETerm(a, b_Omega, trian, quad)]
    if len(neumann_tags) > 0:
        neumann_trian = Triangulation.for_boundary(mesh, neumann_tags)
        neumann_quad = CellQuadrature(neumann_trian, k_order=k_order)

        def b_Gamma(v):
            return inner(v, h)

        terms.append(FESource(b_Gamma, neumann_trian, neumann_quad))

    op = LinearFEOperator(V0, U, *terms)
    solver = LinearFESolver(LUSolver())

    st = time.time()
    uh = solver.solve(op)
    et = time.time()
    print("Solve time:", et - st, "seconds")

    if write_vtk_q:
        write_vtk_file("poisson_3d.vtu", mesh, point_data={"uh": uh})
    return uh


def main():
    logging.basicConfig(level=logging.INFO)
    file_name = sys.argv[1] if len(sys.argv) > 1 else None
    mesh = load_mesh(file_name)

    # tags of a mesh with internal holes, as in a gmsh model with physical names
    neumann_tags = [tag for tag in ["circle", "triangle", "square"] if mesh.has_tag(tag)]
    uh = h1_poisson(mesh, 1, "sides", neumann_tags, write_vtk_q=True)

    values = uh.vertex_values()
    print("u range: ", np.nanmin(values), np.nanmax(values))


if __name__ == "__main__":
    main()
