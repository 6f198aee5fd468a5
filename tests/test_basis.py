import unittest
import numpy as np
from sklearn.linear_model import LinearRegression
from sklearn.pipeline import make_pipeline

from movie_regression.basis import (
    NaturalSplineBasis,
    PolynomialBasis,
    StepBasis,
    natural_spline_basis,
    natural_spline_knots,
    polynomial_basis,
    step_basis,
    step_edges,
)
from movie_regression.exceptions import FitError


class TestPolynomialBasis(unittest.TestCase):

    def test_shape_and_powers(self):
        x = np.array([1.0, 2.0, 3.0])
        basis = polynomial_basis(x, degree=3)
        self.assertEqual(basis.shape, (3, 3))
        np.testing.assert_allclose(basis[:, 2], x ** 3)

    def test_transformer_standardizes(self):
        x = np.linspace(1e6, 2e8, 50).reshape(-1, 1)
        basis = PolynomialBasis(degree=2).fit_transform(x)
        self.assertAlmostEqual(basis[:, 0].mean(), 0.0, places=10)
        self.assertAlmostEqual(basis[:, 0].std(), 1.0, places=10)

    def test_invalid_degree(self):
        with self.assertRaises(ValueError):
            polynomial_basis(np.arange(3.0), degree=0)


class TestStepBasis(unittest.TestCase):

    def test_edges_evenly_spaced(self):
        edges = step_edges(np.array([0.0, 3.0, 10.0]), n_bins=4)
        np.testing.assert_allclose(edges, [0.0, 2.5, 5.0, 7.5, 10.0])

    def test_right_closed_intervals_and_clipping(self):
        edges = np.array([0.0, 2.5, 5.0, 7.5, 10.0])
        x = np.array([0.0, 2.5, 3.0, 10.0, 12.0, -1.0])
        basis = step_basis(x, edges)

        self.assertEqual(basis.shape, (6, 3))
        expected = np.array([
            [0, 0, 0],
            [0, 0, 0],
            [1, 0, 0],
            [0, 0, 1],
            [0, 0, 1],
            [0, 0, 0],
        ], dtype=float)
        np.testing.assert_array_equal(basis, expected)

    def test_transformer_learns_edges_from_fit(self):
        transformer = StepBasis(n_bins=5).fit(np.array([[10.0], [20.0]]))
        self.assertEqual(len(transformer.edges_), 6)
        self.assertEqual(transformer.edges_[0], 10.0)
        self.assertEqual(transformer.edges_[-1], 20.0)


class TestNaturalSplineBasis(unittest.TestCase):

    def setUp(self):
        self.x = np.linspace(0.0, 10.0, 40)

    def test_one_column_per_degree_of_freedom(self):
        for df in range(3, 11):
            knots, lo, hi = natural_spline_knots(self.x, df)
            basis = natural_spline_basis(self.x, knots, lo, hi)
            self.assertEqual(basis.shape, (40, df))

    def test_linear_beyond_boundary_knots(self):
        knots, lo, hi = natural_spline_knots(self.x, 5)
        for outside in (np.array([11.0, 12.0, 13.0]), np.array([-3.0, -2.0, -1.0])):
            basis = natural_spline_basis(outside, knots, lo, hi)
            second_diff = basis[2] - 2 * basis[1] + basis[0]
            np.testing.assert_allclose(second_diff, 0.0, atol=1e-9)

    def test_duplicate_knots_are_merged(self):
        x = np.array([1.0] * 20 + [2.0, 3.0])
        knots, lo, hi = natural_spline_knots(x, 6)
        self.assertEqual(len(knots), len(np.unique(knots)))
        basis = natural_spline_basis(x, knots, lo, hi)
        self.assertEqual(basis.shape[1], len(knots) - 1)

    def test_constant_budget_raises(self):
        with self.assertRaises(FitError):
            natural_spline_knots(np.full(10, 5.0), 3)

    def test_reproduces_linear_function(self):
        X = self.x.reshape(-1, 1)
        y = 3 * self.x + 1
        model = make_pipeline(NaturalSplineBasis(df=4), LinearRegression()).fit(X, y)
        np.testing.assert_allclose(model.predict(X), y, rtol=1e-8, atol=1e-8)


if __name__ == '__main__':
    unittest.main()
