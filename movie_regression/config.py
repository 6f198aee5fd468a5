"""
Module Config

Đọc file configs/config.yaml. Nếu không truyền đường dẫn thì dùng cấu hình
mặc định bên dưới (giống hệt file config.yaml đi kèm project), để các
component vẫn chạy được khi không có file config.
"""

import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    'data': {
        'raw_path': 'data/raw/movies.csv',
        'results_dir': 'results',
    },
    'preprocessing': {
        'numeric_columns': ['budget', 'gross', 'runtime', 'score', 'votes', 'year'],
        'text_columns': [
            'company', 'country', 'director', 'genre', 'name',
            'released', 'star', 'writer',
        ],
        'rating_column': 'rating',
        'text_sentinels': ['', 'unknown', 'none', 'n/a', 'nan'],
        'rating_sentinels': ['unrated', 'not rated', 'not specified'],
    },
    'model_selection': {
        'feature_col': 'budget',
        'target_col': 'gross',
        'cv_folds': 10,
        'random_state': 42,
        'n_jobs': 1,
        'families': [
            'linear', 'polynomial', 'step',
            'natural_spline', 'smoothing_spline', 'local',
        ],
        'param_grids': {
            'polynomial': [1, 2, 3, 4],
            'step': [4, 5, 6, 7],
            'natural_spline': [3, 4, 5, 6, 7, 8, 9, 10],
            'local': [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
        },
    },
    'visualization': {
        'figure_size': [12, 8],
        'dpi': 150,
        'save_format': 'png',
        'curve_points': 200,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration từ file YAML, bổ sung các key còn thiếu từ DEFAULT_CONFIG.

    Args:
        config_path (str, optional): Đường dẫn đến file config.yaml.
            None -> dùng cấu hình mặc định.

    Returns:
        Dict[str, Any]: Configuration đầy đủ

    Raises:
        FileNotFoundError: Nếu config_path được truyền nhưng không tồn tại
    """
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Không tìm thấy file config: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        user_config = yaml.safe_load(f) or {}

    logger.debug(f"Đã load config từ: {config_path}")
    return _merge(DEFAULT_CONFIG, user_config)
