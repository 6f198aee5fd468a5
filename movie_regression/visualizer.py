"""
Module Visualizer

Module chứa class Visualizer để trực quan hóa dữ liệu và kết quả model selection.
Bao gồm scatter budget vs gross kèm đường fit của từng family, đường CV theo
hyperparameter, so sánh RMSE/R² và phân tích residual.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Dict, Optional
from pathlib import Path
import logging

from movie_regression.config import load_config
from movie_regression.families import get_family
from movie_regression.model_selection import CandidateModel, CVResult

# Setup matplotlib style
plt.style.use('seaborn-v0_8-darkgrid')
sns.set_palette("husl")

logger = logging.getLogger(__name__)


class Visualizer:
    """
    Class để trực quan hóa dữ liệu và kết quả model selection.

    Class cung cấp các phương thức để:
    - Vẽ scatter budget vs gross kèm đường dự đoán của các family
    - Vẽ RMSE theo hyperparameter của từng family
    - So sánh RMSE / R² giữa các family
    - Phân tích residual
    - Lưu plots vào files

    Attributes:
        config (dict): Configuration
        viz_config (dict): Visualization configuration
        save_dir (str): Thư mục để lưu plots
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        save_dir: str = "visualizations"
    ):
        self.config = load_config(config_path)

        self.viz_config = self.config['visualization']
        self.feature_col = self.config['model_selection']['feature_col']
        self.target_col = self.config['model_selection']['target_col']
        self.save_dir = save_dir

        Path(save_dir).mkdir(parents=True, exist_ok=True)

        self.figsize = tuple(self.viz_config['figure_size'])
        self.dpi = self.viz_config['dpi']
        self.curve_points = int(self.viz_config.get('curve_points', 200))

        logger.info("Visualizer đã được khởi tạo thành công")

    def plot_fitted_curves(
        self,
        dataset: pd.DataFrame,
        candidates: Dict[str, CandidateModel],
        title: str = "Budget vs Gross"
    ) -> None:
        """
        Vẽ scatter budget vs gross và đường dự đoán của từng family.

        Args:
            dataset (pd.DataFrame): Dataset đã dùng để fit
            candidates (Dict[str, CandidateModel]): Model cuối cùng theo family
            title (str): Tiêu đề biểu đồ
        """
        budget = dataset[self.feature_col].to_numpy(dtype=float)
        gross = dataset[self.target_col].to_numpy(dtype=float)
        grid = np.linspace(budget.min(), budget.max(), self.curve_points)

        plt.figure(figsize=self.figsize)
        plt.scatter(budget, gross, alpha=0.4, s=20, color='grey', edgecolors='black',
                    linewidths=0.3, label='Observed')

        for family, candidate in candidates.items():
            label = get_family(family).label
            if candidate.hyperparameter is not None:
                label = f"{label} ({candidate.hyperparameter})"
            plt.plot(grid, candidate.predict(grid), linewidth=2, label=label)

        plt.xlabel('Budget (USD)', fontsize=12)
        plt.ylabel('Gross (USD)', fontsize=12)
        plt.title(title, fontsize=14, fontweight='bold')
        plt.legend(loc='best', fontsize=10)
        plt.grid(True, alpha=0.3)
        plt.tight_layout()

        logger.info(f"Đã vẽ đường fit cho {len(candidates)} families")

    def plot_cv_curve(self, cv_result: CVResult) -> None:
        """
        Vẽ RMSE theo từng giá trị hyperparameter của một family.

        Args:
            cv_result (CVResult): Kết quả tìm kiếm của family
        """
        if not cv_result.scores or cv_result.selected is None:
            logger.warning(f"{cv_result.family} không có kết quả tìm kiếm để vẽ")
            return

        spec = get_family(cv_result.family)
        params = list(cv_result.scores)
        scores = list(cv_result.scores.values())

        plt.figure(figsize=self.figsize)
        plt.plot(params, scores, 'b-o', linewidth=2, markersize=6)
        plt.axvline(x=cv_result.selected, color='r', linestyle='--', linewidth=2,
                    label=f'Selected: {cv_result.selected}')

        ylabel = 'In-sample RMSE' if cv_result.method == 'in_sample' else 'CV RMSE'
        plt.xlabel(spec.param_name, fontsize=12)
        plt.ylabel(ylabel, fontsize=12)
        plt.title(f'{ylabel} - {spec.label.upper()}', fontsize=14, fontweight='bold')
        plt.legend(loc='best', fontsize=11)
        plt.grid(True, alpha=0.3)
        plt.tight_layout()

        logger.info(f"Đã vẽ CV curve cho {cv_result.family}")

    def plot_model_comparison(
        self,
        results_df: pd.DataFrame,
        metric: str = 'RMSE'
    ) -> None:
        """
        Vẽ biểu đồ so sánh giữa các family.

        Args:
            results_df (pd.DataFrame): ComparisonTable.to_frame()
            metric (str): 'RMSE' hoặc 'R2'
        """
        if metric not in results_df.columns:
            raise ValueError(f"Metric {metric} không tồn tại trong results_df")

        ascending = metric != 'R2'
        results_sorted = results_df.sort_values(metric, ascending=ascending, kind='mergesort')

        plt.figure(figsize=self.figsize)

        colors = ['#2ecc71' if i == 0 else '#3498db' for i in range(len(results_sorted))]

        bars = plt.barh(
            results_sorted.index,
            results_sorted[metric],
            color=colors,
            edgecolor='black',
            linewidth=1.5
        )

        label_format = '{:,.2f}' if metric != 'R2' else '{:.4f}'
        for bar in bars:
            width = bar.get_width()
            plt.text(
                width,
                bar.get_y() + bar.get_height() / 2,
                ' ' + label_format.format(width),
                ha='left',
                va='center',
                fontsize=10,
                fontweight='bold'
            )

        plt.xlabel(metric, fontsize=12)
        plt.ylabel('Family', fontsize=12)
        plt.title(f'Model Comparison - {metric}', fontsize=14, fontweight='bold')
        plt.gca().invert_yaxis()
        plt.grid(True, alpha=0.3, axis='x')
        plt.tight_layout()

        logger.info(f"Đã vẽ model comparison cho metric: {metric}")

    def plot_residuals(
        self,
        y_true: np.ndarray,
        y_pred: np.ndarray,
        model_name: str
    ) -> None:
        """
        Vẽ biểu đồ residual analysis.
        """
        residuals = y_true - y_pred

        fig, axes = plt.subplots(1, 2, figsize=self.figsize)

        axes[0].scatter(y_pred, residuals, alpha=0.5, s=30, edgecolors='black', linewidths=0.5)
        axes[0].axhline(y=0, color='r', linestyle='--', linewidth=2)
        axes[0].set_xlabel('Predicted Gross (USD)', fontsize=11)
        axes[0].set_ylabel('Residuals (USD)', fontsize=11)
        axes[0].set_title('Residual Plot', fontsize=12, fontweight='bold')
        axes[0].grid(True, alpha=0.3)

        axes[1].hist(residuals, bins=30, edgecolor='black', alpha=0.7)
        axes[1].axvline(x=0, color='r', linestyle='--', linewidth=2)
        axes[1].set_xlabel('Residuals (USD)', fontsize=11)
        axes[1].set_ylabel('Frequency', fontsize=11)
        axes[1].set_title('Distribution of Residuals', fontsize=12, fontweight='bold')
        axes[1].grid(True, alpha=0.3)

        plt.suptitle(
            f'Residual Analysis - {model_name.upper()}',
            fontsize=14,
            fontweight='bold',
            y=1.02
        )
        plt.tight_layout()

        logger.info(f"Đã vẽ residual analysis cho {model_name}")

    def save_plot(
        self,
        filepath: str,
        dpi: Optional[int] = None
    ) -> None:
        """
        Lưu plot hiện tại vào file.

        Args:
            filepath (str): Đường dẫn file để lưu
            dpi (int, optional): DPI của ảnh. Mặc định từ config.
        """
        if dpi is None:
            dpi = self.dpi

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)

        plt.savefig(
            filepath,
            dpi=dpi,
            bbox_inches='tight',
            format=self.viz_config['save_format']
        )

        logger.info(f"Đã lưu plot vào: {filepath}")

    def close_all(self) -> None:
        """
        Đóng tất cả các figures để giải phóng memory.
        """
        plt.close('all')

    def __repr__(self) -> str:
        return (
            f"Visualizer("
            f"save_dir={self.save_dir}, "
            f"figsize={self.figsize}, "
            f"dpi={self.dpi}"
            f")"
        )
