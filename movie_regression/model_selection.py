"""
Module Model Selection

Module này chứa class ModelSelectionPipeline để chọn hyperparameter cho từng
family hồi quy gross ~ budget (linear, polynomial, step, natural spline,
smoothing spline, local regression) bằng k-fold cross-validation, sau đó fit
lại mỗi family một lần trên toàn bộ dataset với hyperparameter đã chọn.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.model_selection import KFold, cross_val_score
from sklearn.metrics import mean_squared_error
from tqdm import tqdm

from movie_regression.config import load_config
from movie_regression.exceptions import DataError, FitError, InsufficientDataError
from movie_regression.families import (
    FAMILY_ORDER,
    SEARCH_KFOLD,
    SEARCH_NONE,
    build_estimator,
    get_family,
)

logger = logging.getLogger(__name__)

# Lỗi số học có thể xuất hiện khi fit một giá trị hyperparameter
NUMERICAL_ERRORS = (FitError, ValueError, FloatingPointError, np.linalg.LinAlgError)


@dataclass
class CandidateModel:
    """
    Model đã fit của một family với hyperparameter đã chọn.

    Attributes:
        family (str): Tên family
        hyperparameter (Any): Giá trị đã chọn, None với family không có hyperparameter
        estimator (BaseEstimator): Estimator đã fit trên toàn bộ dataset
        score (float, optional): RMSE (CV hoặc in-sample) của giá trị đã chọn
    """
    family: str
    hyperparameter: Any
    estimator: BaseEstimator
    score: Optional[float] = None

    def predict(self, budget) -> np.ndarray:
        """Dự đoán gross cho một hoặc nhiều giá trị budget."""
        X = np.asarray(budget, dtype=float).reshape(-1, 1)
        return np.asarray(self.estimator.predict(X), dtype=float)


@dataclass
class CVResult:
    """
    Kết quả tìm kiếm hyperparameter của một family.

    Attributes:
        family (str): Tên family
        method (str): 'kfold' | 'in_sample' | 'none'
        scores (Dict[Any, float]): hyperparameter -> RMSE trung bình (NaN nếu fit lỗi)
        selected (Any): Hyperparameter được chọn
    """
    family: str
    method: str
    scores: Dict[Any, float] = field(default_factory=dict)
    selected: Any = None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {'hyperparameter': list(self.scores), 'RMSE': list(self.scores.values())}
        )


@dataclass
class FamilyFailure:
    """Family bị loại khỏi so sánh và lý do."""
    family: str
    error_type: str
    message: str


@dataclass
class SelectionResult:
    """Kết quả chạy pipeline trên một dataset."""
    candidates: Dict[str, CandidateModel]
    cv_results: Dict[str, CVResult]
    failures: List[FamilyFailure]
    n_rows: int


class ModelSelectionPipeline:
    """
    Class để chọn hyperparameter và fit model cuối cùng cho từng family.

    Quy trình cho mỗi family:
    1. Liệt kê tập hyperparameter cố định (từ config)
    2. Tính RMSE cho từng giá trị: k-fold CV (k = cv_folds), riêng local
       regression dùng RMSE in-sample; smoothing spline không tìm kiếm
    3. Chọn giá trị có RMSE nhỏ nhất (hòa -> giá trị xuất hiện trước)
    4. Fit lại một lần trên toàn bộ dataset với giá trị đã chọn

    Family lỗi (InsufficientDataError, FitError) bị loại nhưng pipeline vẫn
    tiếp tục; nếu mọi family đều lỗi thì raise DataError.

    Attributes:
        config (dict): Configuration
        cv_folds (int): Số fold
        random_state (int): Seed cho việc chia fold
        n_jobs (int): Số job song song cho cross_val_score
        families (List[str]): Các family cần chạy, theo thứ tự
        param_grids (Dict[str, List]): Tập hyperparameter của từng family
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config = load_config(config_path)
        self.selection_config = self.config['model_selection']

        self.feature_col: str = self.selection_config['feature_col']
        self.target_col: str = self.selection_config['target_col']
        self.cv_folds: int = int(self.selection_config['cv_folds'])
        self.random_state: int = int(self.selection_config['random_state'])
        self.n_jobs: int = int(self.selection_config.get('n_jobs', 1))
        self.families: List[str] = list(self.selection_config['families'])
        self.param_grids: Dict[str, List[Any]] = dict(self.selection_config['param_grids'])

        for name in self.families:
            get_family(name)

        if self.cv_folds < 2:
            raise ValueError(f"cv_folds phải >= 2, nhận được {self.cv_folds}")

        logger.info(
            f"ModelSelectionPipeline đã được khởi tạo "
            f"({len(self.families)} families, {self.cv_folds}-fold CV)"
        )

    def _extract_xy(self, dataset: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray]:
        """Lấy ma trận budget (n, 1) và vector gross từ dataset (bản sao)."""
        for col in (self.feature_col, self.target_col):
            if col not in dataset.columns:
                raise DataError(f"Dataset thiếu cột '{col}'")

        try:
            X = dataset[[self.feature_col]].to_numpy(dtype=float, copy=True)
            y = dataset[self.target_col].to_numpy(dtype=float, copy=True)
        except (TypeError, ValueError) as e:
            raise DataError(f"Cột '{self.feature_col}'/'{self.target_col}' không phải kiểu số: {e}") from e

        if len(y) == 0:
            raise DataError("Dataset rỗng, không có dòng hợp lệ nào sau khi làm sạch")
        if not (np.all(np.isfinite(X)) and np.all(np.isfinite(y))):
            raise DataError("Dataset chứa giá trị missing hoặc không hữu hạn")
        return X, y

    def _get_grid(self, family: str) -> List[Any]:
        spec = get_family(family)
        if spec.param_name is None:
            return [None]
        grid = list(self.param_grids.get(family, []))
        if not grid:
            raise ValueError(f"Chưa cấu hình param_grids cho family '{family}'")
        return grid

    def _make_folds(self, n_rows: int, family: str) -> KFold:
        if n_rows < self.cv_folds:
            raise InsufficientDataError(n_rows, self.cv_folds, family)
        return KFold(n_splits=self.cv_folds, shuffle=True, random_state=self.random_state)

    def _score_kfold(
        self,
        family: str,
        param: Any,
        X: np.ndarray,
        y: np.ndarray,
        folds: KFold
    ) -> float:
        """RMSE trung bình qua các fold."""
        scores = cross_val_score(
            build_estimator(family, param),
            X,
            y,
            cv=folds,
            scoring='neg_root_mean_squared_error',
            n_jobs=self.n_jobs,
            error_score='raise'
        )
        return float(-scores.mean())

    @staticmethod
    def _score_in_sample(family: str, param: Any, X: np.ndarray, y: np.ndarray) -> float:
        model = build_estimator(family, param).fit(X, y)
        y_pred = model.predict(X)
        if not np.all(np.isfinite(y_pred)):
            raise FitError(f"[{family}] Dự đoán in-sample chứa giá trị không hữu hạn")
        return float(np.sqrt(mean_squared_error(y, y_pred)))

    def _fit_final(self, family: str, param: Any, X: np.ndarray, y: np.ndarray) -> BaseEstimator:
        try:
            model = build_estimator(family, param).fit(X, y)
            y_pred = model.predict(X)
        except NUMERICAL_ERRORS as e:
            if isinstance(e, FitError):
                raise
            raise FitError(f"[{family}] Fit thất bại với {param!r}: {e}") from e

        if not np.all(np.isfinite(y_pred)):
            raise FitError(f"[{family}] Dự đoán chứa giá trị không hữu hạn với {param!r}")
        return model

    def search_family(
        self,
        dataset: pd.DataFrame,
        family: str,
        grid: Optional[Iterable[Any]] = None
    ) -> Tuple[CandidateModel, CVResult]:
        """
        Tìm hyperparameter tốt nhất cho một family và fit model cuối cùng.

        Hàm thuần: không thay đổi dataset, không ghi trạng thái lên pipeline.

        Args:
            dataset (pd.DataFrame): Dataset đã làm sạch (có thể đã lọc subgroup)
            family (str): Tên family
            grid (Iterable, optional): Tập hyperparameter. Mặc định từ config.

        Returns:
            Tuple[CandidateModel, CVResult]

        Raises:
            DataError: Dataset rỗng hoặc thiếu cột
            InsufficientDataError: Số dòng < số fold (family dùng k-fold CV)
            FitError: Mọi hyperparameter đều fit thất bại
        """
        spec = get_family(family)
        X, y = self._extract_xy(dataset)
        grid = list(grid) if grid is not None else self._get_grid(family)

        result = CVResult(family=family, method=spec.search)

        if spec.search == SEARCH_NONE:
            model = self._fit_final(family, None, X, y)
            logger.info(f"{family.upper()} - fit trực tiếp, không tìm kiếm hyperparameter")
            return CandidateModel(family, None, model), result

        folds = self._make_folds(len(y), family) if spec.search == SEARCH_KFOLD else None

        for param in grid:
            try:
                if spec.search == SEARCH_KFOLD:
                    score = self._score_kfold(family, param, X, y, folds)
                else:
                    score = self._score_in_sample(family, param, X, y)
            except NUMERICAL_ERRORS as e:
                logger.warning(f"{family.upper()} - bỏ qua {spec.param_name}={param}: {e}")
                score = float('nan')
            result.scores[param] = score
            logger.debug(f"{family.upper()} - {spec.param_name}={param}: RMSE={score:,.2f}")

        valid = [(param, score) for param, score in result.scores.items() if np.isfinite(score)]
        if not valid:
            raise FitError(f"[{family}] Mọi giá trị {spec.param_name} đều fit thất bại")

        # min() giữ phần tử đầu tiên khi hòa -> giá trị nhỏ nhất trong thứ tự liệt kê
        best_param, best_score = min(valid, key=lambda item: item[1])
        result.selected = best_param

        model = self._fit_final(family, best_param, X, y)

        label = spec.param_name or 'params'
        method = f"{self.cv_folds}-fold CV" if spec.search == SEARCH_KFOLD else "in-sample"
        logger.info(f"{family.upper()} - Best {label}: {best_param} ({method} RMSE: {best_score:,.2f})")

        return CandidateModel(family, best_param, model, best_score), result

    def run(
        self,
        dataset: pd.DataFrame,
        families: Optional[Iterable[str]] = None,
        show_progress: bool = False
    ) -> SelectionResult:
        """
        Chạy tìm kiếm cho mọi family và trả về các model cuối cùng.

        Args:
            dataset (pd.DataFrame): Dataset đã làm sạch
            families (Iterable[str], optional): Tập con family. Mặc định từ config.
            show_progress (bool): Hiện thanh tiến trình tqdm

        Returns:
            SelectionResult

        Raises:
            DataError: Dataset rỗng/thiếu cột, hoặc mọi family đều thất bại
        """
        families = list(families) if families is not None else self.families
        families = sorted(families, key=lambda name: FAMILY_ORDER.index(get_family(name).name))

        X, _ = self._extract_xy(dataset)

        logger.info("=" * 60)
        logger.info(f"BẮT ĐẦU MODEL SELECTION ({len(X)} dòng, {len(families)} families)")
        logger.info("=" * 60)

        start_time = datetime.now()
        candidates: Dict[str, CandidateModel] = {}
        cv_results: Dict[str, CVResult] = {}
        failures: List[FamilyFailure] = []

        for family in tqdm(families, desc="Families", disable=not show_progress):
            try:
                candidate, cv_result = self.search_family(dataset, family)
            except (DataError, FitError) as e:
                logger.error(f"Lỗi khi chọn model {family}: {e}")
                failures.append(FamilyFailure(family, type(e).__name__, str(e)))
                continue
            candidates[family] = candidate
            cv_results[family] = cv_result

        if not candidates:
            reasons = "; ".join(f"{f.family}: {f.error_type}" for f in failures)
            raise DataError(f"Mọi family đều thất bại ({reasons})")

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Đã hoàn thành model selection: {len(candidates)} thành công, "
            f"{len(failures)} bị loại ({elapsed:.2f} giây)"
        )

        return SelectionResult(
            candidates=candidates,
            cv_results=cv_results,
            failures=failures,
            n_rows=len(X)
        )

    def __repr__(self) -> str:
        return (
            f"ModelSelectionPipeline("
            f"families={self.families}, "
            f"cv_folds={self.cv_folds}, "
            f"random_state={self.random_state}"
            f")"
        )
