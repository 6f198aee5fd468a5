"""
Module Basis

Các hàm dựng ma trận đặc trưng (basis) từ budget cho từng family hồi quy,
thay cho việc ghép chuỗi công thức kiểu ``gross ~ poly(budget, d)``:

    (budget, hyperparameter) -> ma trận basis (n, p), không có cột intercept

Mỗi hàm dựng basis đi kèm một transformer tương thích scikit-learn để có
thể dùng trong ``Pipeline`` + ``cross_val_score``. Các tham số phụ thuộc dữ
liệu (tâm/thang đo, mốc chia, vị trí knot) được học trong ``fit()`` trên
fold huấn luyện, giống ``poly()``, ``cut()`` và ``ns()`` của R.
"""

from typing import Tuple

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin

from movie_regression.exceptions import FitError


def _as_1d(X) -> np.ndarray:
    x = np.asarray(X, dtype=float)
    if x.ndim == 2:
        x = x[:, 0]
    return x.ravel()


def polynomial_basis(x, degree: int, center: float = 0.0, scale: float = 1.0) -> np.ndarray:
    """
    Basis đa thức z, z^2, ..., z^degree với z = (x - center) / scale.

    Chuẩn hóa x trước khi lũy thừa vì budget có bậc 1e8, lũy thừa bậc 4
    sẽ làm hệ phương trình bình phương tối thiểu mất ổn định.
    """
    if degree < 1:
        raise ValueError(f"degree phải >= 1, nhận được {degree}")
    z = (_as_1d(x) - center) / scale
    return np.column_stack([z ** power for power in range(1, degree + 1)])


def step_edges(x, n_bins: int) -> np.ndarray:
    """n_bins khoảng chia đều trên [min(x), max(x)] -> n_bins + 1 mốc."""
    if n_bins < 1:
        raise ValueError(f"n_bins phải >= 1, nhận được {n_bins}")
    x = _as_1d(x)
    return np.linspace(x.min(), x.max(), n_bins + 1)


def step_basis(x, edges: np.ndarray) -> np.ndarray:
    """
    Basis hàm bậc thang: one-hot theo khoảng (a, b], bỏ khoảng đầu tiên
    (hấp thụ vào intercept).

    Giá trị nằm ngoài [edges[0], edges[-1]] được gán vào khoảng đầu/cuối.
    """
    x = _as_1d(x)
    n_bins = len(edges) - 1
    # side='left' -> x bằng đúng mốc thuộc khoảng bên trái, như cut(right=TRUE)
    bin_idx = np.searchsorted(edges[1:-1], x, side='left')
    basis = np.zeros((len(x), max(n_bins - 1, 0)))
    for j in range(1, n_bins):
        basis[:, j - 1] = (bin_idx == j).astype(float)
    return basis


def natural_spline_knots(x, df: int) -> Tuple[np.ndarray, float, float]:
    """
    Knot cho natural cubic spline với df bậc tự do (không tính intercept).

    df - 1 knot bên trong đặt tại các phân vị đều của x, cộng hai knot biên
    tại min/max. x được đưa về [0, 1] trước khi đặt knot. Knot trùng nhau
    (budget có nhiều giá trị lặp) được gộp lại.

    Returns:
        (knots trên thang [0, 1], lo, hi)
    """
    if df < 1:
        raise ValueError(f"df phải >= 1, nhận được {df}")
    x = _as_1d(x)
    lo, hi = float(x.min()), float(x.max())
    if hi <= lo:
        raise FitError("Không thể dựng natural spline: budget chỉ có một giá trị duy nhất")

    z = (x - lo) / (hi - lo)
    probs = np.linspace(0.0, 1.0, df + 1)
    knots = np.unique(np.quantile(z, probs))
    return knots, lo, hi


def natural_spline_basis(x, knots: np.ndarray, lo: float, hi: float) -> np.ndarray:
    """
    Basis natural cubic spline dạng truncated power (ESL, công thức 5.4-5.5):

        N_1(z) = z
        N_{k+1}(z) = d_k(z) - d_{K-1}(z),  k = 1..K-2
        d_k(z) = [(z - xi_k)_+^3 - (z - xi_K)_+^3] / (xi_K - xi_k)

    Tuyến tính bên ngoài hai knot biên nên luôn xác định với mọi budget.
    """
    z = (_as_1d(x) - lo) / (hi - lo)
    n_knots = len(knots)
    if n_knots < 2:
        raise FitError("Natural spline cần ít nhất 2 knot phân biệt")

    last = knots[-1]

    def d(k: int) -> np.ndarray:
        return (
            np.maximum(z - knots[k], 0.0) ** 3 - np.maximum(z - last, 0.0) ** 3
        ) / (last - knots[k])

    columns = [z]
    if n_knots > 2:
        d_last = d(n_knots - 2)
        for k in range(n_knots - 2):
            columns.append(d(k) - d_last)
    return np.column_stack(columns)


class PolynomialBasis(TransformerMixin, BaseEstimator):
    """Transformer sklearn cho polynomial_basis."""

    def __init__(self, degree: int = 1):
        self.degree = degree

    def fit(self, X, y=None):
        x = _as_1d(X)
        self.center_ = float(x.mean())
        std = float(x.std())
        self.scale_ = std if std > 0 else 1.0
        return self

    def transform(self, X):
        return polynomial_basis(X, self.degree, self.center_, self.scale_)


class StepBasis(TransformerMixin, BaseEstimator):
    """Transformer sklearn cho step_basis, mốc chia học từ fold huấn luyện."""

    def __init__(self, n_bins: int = 4):
        self.n_bins = n_bins

    def fit(self, X, y=None):
        self.edges_ = step_edges(X, self.n_bins)
        return self

    def transform(self, X):
        return step_basis(X, self.edges_)


class NaturalSplineBasis(TransformerMixin, BaseEstimator):
    """Transformer sklearn cho natural_spline_basis, knot học từ fold huấn luyện."""

    def __init__(self, df: int = 3):
        self.df = df

    def fit(self, X, y=None):
        self.knots_, self.lo_, self.hi_ = natural_spline_knots(X, self.df)
        return self

    def transform(self, X):
        return natural_spline_basis(X, self.knots_, self.lo_, self.hi_)
