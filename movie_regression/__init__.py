"""
Movie Budget Regression Package

Modules:
    - base_loader: Định nghĩa giao diện chung cho mọi DataLoader trong pipeline
    - data_loader: Đọc dữ liệu thô từ movies.csv
    - base_preprocessing: Định nghĩa giao diện chung cho mọi Preprocessor
    - preprocessing: Làm sạch dữ liệu (sentinel -> missing, loại dòng missing)
    - basis: Dựng ma trận basis (polynomial, step, natural spline) từ budget
    - families: Các family hồi quy và cách dựng estimator
    - model_selection: Chọn hyperparameter bằng cross-validation, fit model cuối cùng
    - comparator: So sánh RMSE / R² giữa các family
    - visualizer: Trực quan hóa dữ liệu và kết quả
"""

__version__ = "1.0.0"
__author__ = "Data Science Student"

from .exceptions import DataError, FitError, InsufficientDataError
from .data_loader import MovieCSVLoader
from .preprocessing import MovieDatasetPreparer
from .model_selection import ModelSelectionPipeline
from .comparator import ModelComparator
from .visualizer import Visualizer

__all__ = [
    "DataError",
    "FitError",
    "InsufficientDataError",
    "MovieCSVLoader",
    "MovieDatasetPreparer",
    "ModelSelectionPipeline",
    "ModelComparator",
    "Visualizer",
]
