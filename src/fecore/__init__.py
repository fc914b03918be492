"""Finite element core for scalar elliptic problems on simplicial meshes."""

__version__ = "0.1.0"

from fecore.assembly.assembled_system import AssembledSystem
from fecore.assembly.sparse_matrix_assembler import SparseMatrixAssembler
from fecore.basis.quadrature import Quadrature, integration_degree, quadrature_rule
from fecore.basis.reference_element import ReferenceElement, shape_functions
from fecore.errors import (
    ArgumentOrderError,
    ConvergenceError,
    DimensionMismatchError,
    EmptyBoundaryError,
    FEMError,
    FormatError,
    IntegrandError,
    IntegrationDomainError,
    SingularSystemError,
    UnsupportedShapeError,
)
from fecore.integration.cell_quadrature import CellQuadrature
from fecore.integration.triangulation import (
    BoundaryTriangulation,
    DomainTriangulation,
    Triangulation,
)
from fecore.io.json_mesh import DiscreteModelFromFile, read_json_mesh
from fecore.mesh.mesh_topology import MeshTopology
from fecore.postprocess.l2_error_post_processor import h1_seminorm_error, l2_error
from fecore.postprocess.solution_post_processor import write_vtk_file
from fecore.solvers.linear_fe_operator import LinearFEOperator
from fecore.solvers.linear_fe_solver import LinearFESolver, solve
from fecore.solvers.linear_solvers import (
    ConjugateGradientSolver,
    LinearSolver,
    LUSolver,
    PETScLUSolver,
)
from fecore.spaces.fe_function import FEFunction, interpolate
from fecore.spaces.fe_space import (
    CLagrangianFESpace,
    FESpace,
    TestFESpace,
    TrialFESpace,
)
from fecore.weak_forms.basis_values import FormValue, TestBasis, TrialBasis, grad, inner
from fecore.weak_forms.fe_terms import AffineFETerm, FESource, LinearFETerm
