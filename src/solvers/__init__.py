"""Numerical kernels for excess pore-pressure solvers.

Subpackages:
------------
multigrid    full multigrid (FMG) for 1D/2D/3D grids
tridiagonal  theta-method column solver
metrics      norms used for residual diagnostics
"""
