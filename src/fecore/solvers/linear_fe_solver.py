import logging
import time

from fecore.solvers.linear_solvers import LUSolver
from fecore.spaces.fe_function import FEFunction

logger = logging.getLogger(__name__)


class LinearFESolver:
    def __init__(self, linear_solver=None):
        self.linear_solver = LUSolver() if linear_solver is None else linear_solver

    def solve(self, operator):
        st = time.time()
        system = operator.assemble()
        free_values = self.linear_solver.factorize_and_solve(system.matrix, system.rhs)
        uh = FEFunction(operator.trial_space.space, system.expand(free_values))
        et = time.time()
        logger.info(
            "LinearFESolver:: Solved %d free dofs in %s seconds",
            system.num_free_dofs(),
            et - st,
        )
        return uh


def solve(solver, operator):
    """Solve ``operator`` with an FE solver or a bare algebraic solver."""
    if not isinstance(solver, LinearFESolver):
        solver = LinearFESolver(solver)
    return solver.solve(operator)
