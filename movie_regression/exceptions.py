"""
Các lỗi riêng của pipeline hồi quy budget -> gross.
"""


class MovieRegressionError(Exception):
    """Lớp gốc cho mọi lỗi của package."""
    pass


class DataError(MovieRegressionError):
    """Raised khi dữ liệu sai schema, rỗng sau khi làm sạch, hoặc mọi family đều fit thất bại."""
    pass


class InsufficientDataError(DataError):
    """Raised khi số dòng nhỏ hơn số fold của cross-validation."""

    def __init__(self, n_rows: int, n_folds: int, family: str = ""):
        self.n_rows = n_rows
        self.n_folds = n_folds
        self.family = family
        prefix = f"[{family}] " if family else ""
        super().__init__(
            f"{prefix}Không đủ dữ liệu cho {n_folds}-fold CV: chỉ có {n_rows} dòng"
        )


class FitError(MovieRegressionError):
    """Raised khi fit một family thất bại về mặt số học (ma trận suy biến, dự đoán không hữu hạn, ...)."""
    pass
