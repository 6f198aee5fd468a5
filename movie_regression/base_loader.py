from abc import ABC, abstractmethod
from typing import Optional

import pandas as pd


class BaseDataLoader(ABC):
    """
    Lớp trừu tượng cho các loader đọc bảng phim thô (mỗi dòng một phim).

    Loader chỉ đọc và giữ nguyên dữ liệu thô dạng chuỗi; việc ép kiểu và
    nhận diện giá trị missing thuộc về preprocessor. Lớp con cần cài đặt:
    - fetch_data(): đọc bảng thô vào self.raw_df
    - save_data(): ghi bảng thô ra file
    - load_data(): đọc một file thành DataFrame
    """

    def __init__(self, name: str = "base_loader") -> None:
        self.name = name
        self.raw_df: Optional[pd.DataFrame] = None

    @abstractmethod
    def fetch_data(self, filepath: Optional[str] = None) -> None:
        """Đọc bảng thô từ nguồn vào self.raw_df."""
        raise NotImplementedError

    @abstractmethod
    def save_data(self, filepath: str) -> None:
        raise NotImplementedError

    @staticmethod
    @abstractmethod
    def load_data(filepath: str) -> pd.DataFrame:
        raise NotImplementedError

    @property
    def n_rows(self) -> int:
        return 0 if self.raw_df is None else len(self.raw_df)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Bản sao của bảng thô đã đọc.

        Raises:
            RuntimeError: Nếu chưa gọi fetch_data()
        """
        if self.raw_df is None:
            raise RuntimeError("Chưa có dữ liệu. Gọi fetch_data() trước.")
        return self.raw_df.copy()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name}, rows={self.n_rows})"
