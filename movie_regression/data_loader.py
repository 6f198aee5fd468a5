from movie_regression.base_loader import BaseDataLoader
import os
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from movie_regression.config import load_config

logger = logging.getLogger(__name__)


class MovieCSVLoader(BaseDataLoader):
    """
    DataLoader kế thừa BaseDataLoader để đọc file movies.csv (budget, gross, rating, ...).

    Mọi cột được đọc dưới dạng chuỗi thô, không để pandas tự đoán NaN,
    việc ép kiểu và nhận diện giá trị không hợp lệ là trách nhiệm của
    MovieDatasetPreparer.
    """

    def __init__(self, config_path: Optional[str] = None):
        super().__init__(name="movie_csv_loader")

        self.config = load_config(config_path)
        self.data_config = self.config["data"]
        logger.info("MovieCSVLoader đã được khởi tạo thành công")

    def fetch_data(self, filepath: Optional[str] = None) -> None:
        """
        Override của BaseDataLoader.fetch_data()
        Đọc file CSV thô (mặc định data.raw_path trong config).
        """
        filepath = filepath or self.data_config["raw_path"]
        self.raw_df = self.load_data(filepath)
        logger.info(f"Đã đọc {len(self.raw_df)} dòng thô từ: {filepath}")

    def save_data(self, filepath: str) -> None:
        """
        Override: lưu CSV.
        """
        df = self.to_dataframe()
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(filepath, index=False, encoding="utf-8")
        logger.info(f"Đã lưu {len(df)} dòng vào {filepath}")

    @staticmethod
    def load_data(filepath: str) -> pd.DataFrame:
        """
        Override: load CSV, giữ nguyên giá trị thô dạng chuỗi.
        """
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Không tìm thấy file: {filepath}")

        return pd.read_csv(filepath, dtype=str, keep_default_na=False)
