"""
Module Data Preprocessing

Module chứa class MovieDatasetPreparer để làm sạch dữ liệu phim:
ép kiểu theo schema cố định, đổi các giá trị sentinel ("unknown", "n/a",
budget = 0, ...) thành missing (NaN) và loại bỏ mọi dòng có missing.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from movie_regression.base_preprocessing import BasePreprocessor
from movie_regression.config import load_config
from movie_regression.exceptions import DataError

logger = logging.getLogger(__name__)


class MovieDatasetPreparer(BasePreprocessor):
    """
    Class để làm sạch dữ liệu phim cho phân tích hồi quy budget -> gross.

    Quy tắc:
    - Cột số: không parse được, không hữu hạn hoặc bằng 0 -> missing
    - Cột text: "", "unknown", "none", "n/a" (không phân biệt hoa thường,
      đã strip khoảng trắng) -> missing
    - Cột rating: như cột text, thêm "unrated", "not rated", "not specified"
    - Dòng có bất kỳ cột nào missing bị loại bỏ

    Không bao giờ raise lỗi vì giá trị sai định dạng: giá trị hỏng chỉ trở
    thành missing và bị lọc. Kết quả có thể là DataFrame rỗng. Chỉ raise
    DataError khi dữ liệu thô thiếu cột của schema.

    Attributes:
        config (dict): Configuration
        numeric_columns (List[str]): Các cột số
        text_columns (List[str]): Các cột text
        rating_column (str): Cột rating
        missing_report (Dict[str, int]): Số giá trị missing theo cột ở lần prepare() gần nhất
        row_report (Dict[str, int]): Số dòng raw / kept / dropped ở lần prepare() gần nhất
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config = load_config(config_path)
        self.preprocess_config = self.config['preprocessing']

        target_col = self.config['model_selection'].get('target_col', 'gross')
        super().__init__(name="movie_preparer", target_col=target_col)

        self.numeric_columns: List[str] = list(self.preprocess_config['numeric_columns'])
        self.text_columns: List[str] = list(self.preprocess_config['text_columns'])
        self.rating_column: str = self.preprocess_config['rating_column']

        self.text_sentinels = {
            s.strip().lower() for s in self.preprocess_config['text_sentinels']
        }
        self.rating_sentinels = self.text_sentinels | {
            s.strip().lower() for s in self.preprocess_config['rating_sentinels']
        }

        self.missing_report: Dict[str, int] = {}
        self.row_report: Dict[str, int] = {}

        logger.info(
            f"MovieDatasetPreparer đã được khởi tạo "
            f"({len(self.get_required_columns())} cột trong schema)"
        )

    def get_required_columns(self) -> List[str]:
        return self.numeric_columns + [self.rating_column] + self.text_columns

    def _check_schema(self, df: pd.DataFrame) -> None:
        missing_cols = [col for col in self.get_required_columns() if col not in df.columns]
        if missing_cols:
            raise DataError(f"Dữ liệu thiếu các cột bắt buộc: {missing_cols}")

    @staticmethod
    def _coerce_numeric(series: pd.Series) -> pd.Series:
        if not pd.api.types.is_numeric_dtype(series):
            series = series.astype(str).str.strip()
        values = pd.to_numeric(series, errors='coerce').astype(float)
        # 0 và +-inf được coi là không có dữ liệu
        invalid = ~np.isfinite(values) | (values == 0)
        return values.mask(invalid)

    @staticmethod
    def _coerce_text(series: pd.Series, sentinels: set) -> pd.Series:
        # astype(str) biến None/NaN thành "None"/"nan", cả hai đều là sentinel
        values = series.astype(str).str.strip()
        invalid = values.str.lower().isin(sentinels)
        return values.mask(invalid)

    def prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Làm sạch dữ liệu thô.

        Args:
            df (pd.DataFrame): Dữ liệu thô (thường đọc từ movies.csv)

        Returns:
            pd.DataFrame: Dataset sạch, chỉ gồm các cột schema, index reset

        Raises:
            DataError: Nếu thiếu cột của schema
        """
        self._check_schema(df)

        clean = df[self.get_required_columns()].copy()

        for col in self.numeric_columns:
            clean[col] = self._coerce_numeric(clean[col])
        for col in self.text_columns:
            clean[col] = self._coerce_text(clean[col], self.text_sentinels)
        clean[self.rating_column] = self._coerce_text(
            clean[self.rating_column], self.rating_sentinels
        )

        self.missing_report = {
            col: int(count) for col, count in clean.isna().sum().items() if count > 0
        }

        n_before = len(clean)
        clean = clean.dropna(how='any').reset_index(drop=True)
        n_dropped = n_before - len(clean)
        self.row_report = {'raw': n_before, 'kept': len(clean), 'dropped': n_dropped}

        if n_before > 0:
            logger.info(
                f"Đã loại bỏ {n_dropped}/{n_before} dòng có missing "
                f"({n_dropped / n_before * 100:.2f}%), còn lại {len(clean)} dòng"
            )
        else:
            logger.info("Không có dữ liệu để làm sạch")

        if self.missing_report:
            logger.debug(f"Missing theo cột: {self.missing_report}")
        if clean.empty:
            logger.warning("Dataset rỗng sau khi làm sạch")

        return clean

    def select_subgroup(self, df: pd.DataFrame, column: str, value: str) -> pd.DataFrame:
        """
        Lọc Dataset theo một giá trị categorical (vd: rating == "PG-13").

        So khớp không phân biệt hoa thường và khoảng trắng.

        Args:
            df (pd.DataFrame): Dataset đã làm sạch
            column (str): Tên cột categorical
            value (str): Giá trị cần giữ lại

        Returns:
            pd.DataFrame: Dataset con, index reset
        """
        if column not in df.columns:
            raise ValueError(f"Không tìm thấy cột '{column}' trong dataset")

        normalized = df[column].astype(str).str.strip().str.lower()
        subgroup = df[normalized == str(value).strip().lower()].reset_index(drop=True)

        logger.info(f"Subgroup {column} = '{value}': {len(subgroup)}/{len(df)} dòng")
        return subgroup

    def summarize(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Báo cáo số dòng giữ lại / bị loại ở lần prepare() gần nhất.

        Mỗi cột có missing được liệt kê thành một lý do riêng ("missing:<cột>");
        một dòng có thể thiếu nhiều cột nên tổng các lý do có thể lớn hơn
        số dòng bị loại.

        Args:
            df (pd.DataFrame): Dataset đang phân tích (kết quả prepare(),
                có thể đã qua select_subgroup())

        Returns:
            pd.DataFrame: index là lý do, một cột 'rows'
        """
        if not self.row_report:
            raise RuntimeError("Chưa có báo cáo. Gọi prepare() trước.")

        counts = dict(self.row_report)
        for col, count in self.missing_report.items():
            counts[f"missing:{col}"] = count
        counts['dataset'] = len(df)

        summary = pd.DataFrame({'rows': pd.Series(counts, dtype=int)})
        summary.index.name = 'reason'
        return summary
