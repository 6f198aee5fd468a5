"""
Module Base Preprocessor

Định nghĩa lớp trừu tượng BasePreprocessor để chuẩn hóa giao diện
cho các bước làm sạch dữ liệu trước khi đưa vào model selection.

Mục tiêu:
- Đảm bảo các preprocessor có cùng "hợp đồng" phương thức (prepare / get_required_columns)
- Giúp pipeline dễ dàng thay thế sang dataset khác có schema khác
"""

from abc import ABC, abstractmethod
from typing import List
import pandas as pd


class BasePreprocessor(ABC):
    """
    Lớp trừu tượng cho mọi preprocessor trong pipeline.

    Các phương thức quan trọng:
    - prepare(df): ép kiểu theo schema, đánh dấu giá trị không hợp lệ là missing,
      loại bỏ các dòng có missing
    - get_required_columns(): danh sách cột bắt buộc của schema

    Thuộc tính chung:
        name (str): Tên preprocessor (hữu ích khi log hoặc debug)
        target_col (str): Tên cột target (vd: 'gross')
    """

    def __init__(self, name: str = "base_preprocessor", target_col: str = "gross") -> None:
        self.name = name
        self.target_col = target_col

    @abstractmethod
    def prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Làm sạch dữ liệu thô và trả về Dataset sạch (không còn missing).

        Không được thay đổi DataFrame đầu vào.

        Args:
            df (pd.DataFrame): Dữ liệu thô

        Returns:
            pd.DataFrame: Dataset đã làm sạch
        """
        raise NotImplementedError

    @abstractmethod
    def get_required_columns(self) -> List[str]:
        """
        Trả về danh sách cột bắt buộc phải có trong dữ liệu thô.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"name={self.name}, "
            f"target_col={self.target_col}"
            f")"
        )
