# geometrical operations
geometry_collapse_tol = 1.0e-10

# basis
lagrange_variant_name = "gll_centroid"

# assembly
assembly_block_size = 2048

# algebraic solvers
singular_pivot_tol = 1.0e-10
iterative_solver_options = {"rtol": 1.0e-12, "atol": 1.0e-14, "maxiter": 10000}
