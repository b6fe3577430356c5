"""Polynomial surrogate models of traced lenses.

Extended Summary
----------------
Fits multivariate polynomials that map entering rays to exiting rays, as a
fast stand-in for the sequential trace.

Submodules
----------
poly_fit
    Monomial bases, ray-pair sampling and least-squares fitting

Routine Listings
----------------
:func:`monomial_powers`
    Monomial exponents up to a total degree.
:func:`design_matrix`
    Monomials evaluated at input rows.
:func:`ray_pair_samples`
    Input and output coordinates of traced rays.
:func:`fit_ray_polynomial`
    Least-squares polynomial fit.
:func:`evaluate_ray_polynomial`
    Evaluate a fitted polynomial.
"""

from .poly_fit import (
    design_matrix,
    evaluate_ray_polynomial,
    fit_ray_polynomial,
    monomial_powers,
    ray_pair_samples,
)

__all__: list[str] = [
    "design_matrix",
    "evaluate_ray_polynomial",
    "fit_ray_polynomial",
    "monomial_powers",
    "ray_pair_samples",
]
