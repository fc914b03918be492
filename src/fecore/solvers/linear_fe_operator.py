from fecore.assembly.sparse_matrix_assembler import SparseMatrixAssembler


class LinearFEOperator:
    """Deferred description of a linear FE problem.

    Nothing is assembled at construction; every call to ``assemble`` builds a
    fresh :class:`AssembledSystem`.
    """

    def __init__(self, test_space, trial_space, *terms, assembler=None):
        if assembler is None:
            assembler = SparseMatrixAssembler(test_space, trial_space)
        self.assembler = assembler
        self.test_space = assembler.test_space
        self.trial_space = assembler.trial_space
        self.terms = tuple(terms)
        if len(self.terms) == 0:
            raise ValueError("LinearFEOperator:: at least one FE term is needed")

    def assemble(self):
        return self.assembler.assemble(*self.terms)
