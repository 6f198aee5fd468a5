"""
Module Families

Định nghĩa các family hồi quy gross ~ budget và cách dựng estimator
(tương thích scikit-learn) cho từng giá trị hyperparameter.

| family            | hyperparameter | cách chọn                |
|-------------------|----------------|--------------------------|
| linear            | -              | k-fold CV (chỉ báo cáo)  |
| polynomial        | degree         | k-fold CV                |
| step              | số khoảng chia | k-fold CV                |
| natural_spline    | df             | k-fold CV                |
| smoothing_spline  | -              | không tìm kiếm (GCV)     |
| local             | span           | RMSE in-sample           |
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np
from scipy.interpolate import make_smoothing_spline
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.linear_model import LinearRegression
from sklearn.pipeline import make_pipeline
from statsmodels.nonparametric.smoothers_lowess import lowess

from movie_regression.basis import NaturalSplineBasis, PolynomialBasis, StepBasis, _as_1d
from movie_regression.exceptions import FitError

SEARCH_KFOLD = 'kfold'
SEARCH_IN_SAMPLE = 'in_sample'
SEARCH_NONE = 'none'


class SmoothingSplineRegressor(RegressorMixin, BaseEstimator):
    """
    Cubic smoothing spline, tham số phạt chọn bằng GCV (như smooth.spline của R).

    Các budget trùng nhau được gộp: y lấy trung bình, trọng số = số lần lặp.
    Cần ít nhất 5 giá trị budget phân biệt.

    Args:
        lam (float, optional): Tham số phạt cố định. None -> GCV.
    """

    MIN_UNIQUE = 5

    def __init__(self, lam: Optional[float] = None):
        self.lam = lam

    def fit(self, X, y):
        x = _as_1d(X)
        y = np.asarray(y, dtype=float).ravel()

        x_unique, inverse, counts = np.unique(x, return_inverse=True, return_counts=True)
        if len(x_unique) < self.MIN_UNIQUE:
            raise FitError(
                f"Smoothing spline cần ít nhất {self.MIN_UNIQUE} budget phân biệt, "
                f"chỉ có {len(x_unique)}"
            )
        y_mean = np.bincount(inverse, weights=y) / counts

        # Đưa x về [0, 1] và chuẩn hóa y để bài toán GCV ổn định số học
        self.x_lo_ = float(x_unique[0])
        self.x_range_ = float(x_unique[-1] - x_unique[0])
        self.y_center_ = float(y_mean.mean())
        y_std = float(y_mean.std())
        self.y_scale_ = y_std if y_std > 0 else 1.0

        z = (x_unique - self.x_lo_) / self.x_range_
        target = (y_mean - self.y_center_) / self.y_scale_
        try:
            self.spline_ = make_smoothing_spline(z, target, w=counts.astype(float), lam=self.lam)
        except (ValueError, np.linalg.LinAlgError) as e:
            raise FitError(f"Fit smoothing spline thất bại: {e}") from e
        return self

    def predict(self, X):
        z = (_as_1d(X) - self.x_lo_) / self.x_range_
        return self.spline_(z) * self.y_scale_ + self.y_center_


class LocalRegressor(RegressorMixin, BaseEstimator):
    """
    Hồi quy cục bộ (LOWESS bậc 1, trọng số tricube) với tỉ lệ láng giềng span.

    Không dùng vòng lặp robust (it=0) để khớp với hồi quy cục bộ gaussian.
    Dự đoán tại điểm mới được tính lại từ dữ liệu huấn luyện đã lưu.

    Args:
        span (float): Tỉ lệ số điểm dùng cho mỗi ước lượng cục bộ, trong (0, 1]
    """

    MIN_NEIGHBOURS = 2

    def __init__(self, span: float = 0.75):
        self.span = span

    def fit(self, X, y):
        if not 0 < self.span <= 1:
            raise ValueError(f"span phải nằm trong (0, 1], nhận được {self.span}")
        x = _as_1d(X)
        y = np.asarray(y, dtype=float).ravel()

        n_neighbours = int(self.span * len(x) + 1e-10)
        if n_neighbours < self.MIN_NEIGHBOURS:
            raise FitError(
                f"span={self.span} quá nhỏ cho {len(x)} dòng "
                f"({n_neighbours} láng giềng < {self.MIN_NEIGHBOURS})"
            )

        order = np.argsort(x, kind='mergesort')
        self.x_train_ = x[order]
        self.y_train_ = y[order]
        return self

    def predict(self, X):
        x_new = _as_1d(X)
        # is_sorted=True áp dụng cho cả xvals: sắp xếp rồi trả lại thứ tự gốc
        order = np.argsort(x_new, kind='mergesort')
        fitted = lowess(
            self.y_train_,
            self.x_train_,
            frac=self.span,
            it=0,
            delta=0.0,
            xvals=x_new[order],
            is_sorted=True,
        )
        predictions = np.empty(len(x_new), dtype=float)
        predictions[order] = np.asarray(fitted, dtype=float)
        return predictions


@dataclass(frozen=True)
class FamilySpec:
    """Mô tả một family: tên hyperparameter, cách tìm kiếm và hàm dựng estimator."""
    name: str
    label: str
    param_name: Optional[str]
    search: str
    factory: Callable[[Any], BaseEstimator]


def _linear(_: Any = None) -> BaseEstimator:
    return LinearRegression()


def _polynomial(degree: int) -> BaseEstimator:
    return make_pipeline(PolynomialBasis(degree=int(degree)), LinearRegression())


def _step(n_bins: int) -> BaseEstimator:
    return make_pipeline(StepBasis(n_bins=int(n_bins)), LinearRegression())


def _natural_spline(df: int) -> BaseEstimator:
    return make_pipeline(NaturalSplineBasis(df=int(df)), LinearRegression())


def _smoothing_spline(_: Any = None) -> BaseEstimator:
    return SmoothingSplineRegressor()


def _local(span: float) -> BaseEstimator:
    return LocalRegressor(span=float(span))


FAMILIES: Dict[str, FamilySpec] = {
    'linear': FamilySpec('linear', 'Linear', None, SEARCH_KFOLD, _linear),
    'polynomial': FamilySpec('polynomial', 'Polynomial', 'degree', SEARCH_KFOLD, _polynomial),
    'step': FamilySpec('step', 'Step function', 'breaks', SEARCH_KFOLD, _step),
    'natural_spline': FamilySpec('natural_spline', 'Natural spline', 'df', SEARCH_KFOLD, _natural_spline),
    'smoothing_spline': FamilySpec('smoothing_spline', 'Smoothing spline', None, SEARCH_NONE, _smoothing_spline),
    'local': FamilySpec('local', 'Local regression', 'span', SEARCH_IN_SAMPLE, _local),
}

# Thứ tự liệt kê, cũng là thứ tự phá hòa khi so sánh
FAMILY_ORDER: Tuple[str, ...] = tuple(FAMILIES)


def get_family(name: str) -> FamilySpec:
    if name not in FAMILIES:
        raise ValueError(f"Family phải là một trong: {list(FAMILIES)}")
    return FAMILIES[name]


def build_estimator(name: str, param: Any = None) -> BaseEstimator:
    """Dựng estimator chưa fit cho family `name` với hyperparameter `param`."""
    spec = get_family(name)
    if spec.param_name is not None and param is None:
        raise ValueError(f"Family {name} cần hyperparameter '{spec.param_name}'")
    return spec.factory(param)


def family_rank(name: str) -> int:
    """Vị trí của family trong FAMILY_ORDER (family lạ xếp cuối)."""
    try:
        return FAMILY_ORDER.index(name)
    except ValueError:
        return len(FAMILY_ORDER)
