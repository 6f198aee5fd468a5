"""
Module Comparator

So sánh các model cuối cùng của từng family trên chính dataset đã dùng để
fit (in-sample, không phải tập held-out): RMSE và R², xếp theo RMSE tăng dần.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import numpy as np
import pandas as pd
from sklearn.metrics import mean_squared_error, r2_score

from movie_regression.config import load_config
from movie_regression.exceptions import DataError
from movie_regression.families import family_rank
from movie_regression.model_selection import CandidateModel, FamilyFailure, SelectionResult

logger = logging.getLogger(__name__)


@dataclass
class ComparisonRow:
    family: str
    hyperparameter: Any
    rmse: float
    r2: float
    n: int


@dataclass
class ComparisonTable:
    """
    Bảng so sánh: các dòng đã xếp hạng và các family bị loại kèm lý do.
    """
    rows: List[ComparisonRow]
    excluded: List[FamilyFailure] = field(default_factory=list)

    @property
    def best(self) -> Optional[ComparisonRow]:
        return self.rows[0] if self.rows else None

    def ranking(self) -> List[str]:
        return [row.family for row in self.rows]

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            [
                {
                    'family': row.family,
                    'hyperparameter': row.hyperparameter,
                    'RMSE': row.rmse,
                    'R2': row.r2,
                    'n': row.n,
                }
                for row in self.rows
            ],
            columns=['family', 'hyperparameter', 'RMSE', 'R2', 'n']
        )
        return df.set_index('family')

    def excluded_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [{'family': f.family, 'error': f.error_type, 'reason': f.message} for f in self.excluded],
            columns=['family', 'error', 'reason']
        )


class ModelComparator:
    """
    Class để đánh giá và xếp hạng các model cuối cùng.

    RMSE = sqrt(mean((y - y_hat)^2)), R² = 1 - SSR / SST. Đánh giá trên cùng
    dataset đã dùng để fit nên các family linh hoạt (local regression,
    spline) được lợi. Hòa RMSE -> giữ thứ tự liệt kê của family.
    Khi gross hằng số (SST = 0) R² là NaN.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config = load_config(config_path)
        self.feature_col = self.config['model_selection']['feature_col']
        self.target_col = self.config['model_selection']['target_col']
        self.results_dir = self.config['data']['results_dir']

    def _evaluate(self, candidate: CandidateModel, budget: np.ndarray, y: np.ndarray) -> ComparisonRow:
        y_pred = candidate.predict(budget)
        if not np.all(np.isfinite(y_pred)):
            raise ValueError("dự đoán chứa giá trị không hữu hạn")

        rmse = float(np.sqrt(mean_squared_error(y, y_pred)))
        # gross hằng số -> SST = 0, R² không xác định
        if np.ptp(y) == 0:
            r2 = float('nan')
        else:
            r2 = float(r2_score(y, y_pred))
        return ComparisonRow(candidate.family, candidate.hyperparameter, rmse, r2, len(y))

    def compare(
        self,
        candidates: Union[SelectionResult, Iterable[CandidateModel]],
        dataset: pd.DataFrame,
        failures: Optional[Iterable[FamilyFailure]] = None
    ) -> ComparisonTable:
        """
        So sánh các model trên toàn bộ dataset.

        Args:
            candidates: SelectionResult hoặc danh sách CandidateModel
            dataset (pd.DataFrame): Dataset đã dùng để fit
            failures: Các family đã bị loại ở bước selection (nếu truyền list candidates)

        Returns:
            ComparisonTable: xếp theo RMSE tăng dần

        Raises:
            DataError: Dataset rỗng hoặc không còn model nào để so sánh
        """
        if isinstance(candidates, SelectionResult):
            excluded = list(candidates.failures)
            candidates = list(candidates.candidates.values())
        else:
            excluded = list(failures or [])
            candidates = list(candidates)

        if dataset.empty:
            raise DataError("Dataset rỗng, không thể so sánh")

        budget = dataset[self.feature_col].to_numpy(dtype=float)
        y = dataset[self.target_col].to_numpy(dtype=float)

        rows: List[ComparisonRow] = []
        for candidate in candidates:
            try:
                rows.append(self._evaluate(candidate, budget, y))
            except (ValueError, np.linalg.LinAlgError) as e:
                logger.error(f"Lỗi khi đánh giá {candidate.family}: {e}")
                excluded.append(FamilyFailure(candidate.family, 'FitError', str(e)))

        if not rows:
            raise DataError("Không có model nào để so sánh")

        rows.sort(key=lambda row: (row.rmse, family_rank(row.family)))
        table = ComparisonTable(rows=rows, excluded=excluded)

        logger.info("\n" + "=" * 60)
        logger.info("SO SÁNH MODELS (in-sample)")
        logger.info("=" * 60)
        logger.info("\n" + table.to_frame().to_string())
        for failure in excluded:
            logger.info(f"  Bị loại: {failure.family} ({failure.error_type}: {failure.message})")

        best = table.best
        logger.info(f"BEST MODEL: {best.family.upper()} - RMSE: {best.rmse:,.2f}, R2: {best.r2:.4f}")

        return table

    def save_results(self, table: ComparisonTable, filepath: Optional[str] = None) -> str:
        """
        Lưu bảng so sánh ra CSV (nối thêm vào file nếu đã tồn tại).
        """
        filepath = filepath or f"{self.results_dir}/model_comparison.csv"
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)

        df = table.to_frame()
        df['timestamp'] = datetime.now().strftime('%Y-%m-%d %H:%M:%S')

        if os.path.exists(filepath):
            existing_df = pd.read_csv(filepath, index_col=0)
            df = pd.concat([existing_df, df])

        df.to_csv(filepath)
        logger.info(f"Đã lưu kết quả so sánh vào: {filepath}")
        return filepath
