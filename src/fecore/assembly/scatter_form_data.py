import numpy as np


def scatter_lhs_data(j_els, row_dofs, col_dofs):
    # COO triplets of a block of local matrices (n_cells, n_rows, n_cols)
    n_rows = row_dofs.shape[1]
    n_cols = col_dofs.shape[1]
    row = np.repeat(row_dofs, n_cols, axis=1).ravel()
    col = np.tile(col_dofs, (1, n_rows)).ravel()
    return row, col, j_els.ravel()


def scatter_rhs_data(r_els, row_dofs):
    # (row, value) pairs of a block of local vectors (n_cells, n_rows)
    return row_dofs.ravel(), r_els.ravel()


def reduce_rhs_data(rhs_data, n_dof):
    # The statement res_g[row_dofs] += r_els does not account for repeated
    # indices in row_dofs
    rows = np.concatenate([np.empty(0, dtype=np.int64)] + [row for row, _ in rhs_data])
    values = np.concatenate([np.empty(0)] + [value for _, value in rhs_data])
    return np.bincount(rows, weights=values, minlength=n_dof)


def scatter_form_data(block, weak_form, test_space, trial_space):
    cell_ids = weak_form.triangulation.cell_ids[block]
    row_dofs = test_space.cell_dof_table[cell_ids]
    col_dofs = trial_space.cell_dof_table[cell_ids]
    j_els, r_els = weak_form.evaluate_form(block, test_space, trial_space)

    lhs_data = None
    rhs_data = None
    if j_els is not None:
        lhs_data = scatter_lhs_data(j_els, row_dofs, col_dofs)
    if r_els is not None:
        rhs_data = scatter_rhs_data(r_els, row_dofs)
    return lhs_data, rhs_data
