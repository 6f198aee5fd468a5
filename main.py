"""
Main Entry Point cho Movie Budget Regression Project

Script này orchestrate toàn bộ pipeline: đọc movies.csv, làm sạch dữ liệu,
chọn hyperparameter cho từng family hồi quy gross ~ budget, so sánh các model
và vẽ biểu đồ. Sử dụng argparse để nhận commands từ CLI.

Usage:
    python main.py prepare --input data/raw/movies.csv
    python main.py select --rating PG-13
    python main.py full-pipeline
"""

import argparse
import sys
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from movie_regression.data_loader import MovieCSVLoader
from movie_regression.preprocessing import MovieDatasetPreparer
from movie_regression.model_selection import ModelSelectionPipeline
from movie_regression.comparator import ModelComparator
from movie_regression.visualizer import Visualizer
from movie_regression.exceptions import MovieRegressionError
from movie_regression.families import FAMILY_ORDER

logger = logging.getLogger(__name__)


def setup_logging(log_dir: str = "results/logs") -> None:
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(f'{log_dir}/main.log', encoding='utf-8'),
            logging.StreamHandler()
        ]
    )


def load_clean_dataset(
    input_path: Optional[str],
    config_path: Optional[str],
    rating: Optional[str] = None
) -> pd.DataFrame:
    """
    Đọc CSV thô, làm sạch và (tùy chọn) lọc theo rating.
    """
    loader = MovieCSVLoader(config_path)
    loader.fetch_data(input_path)

    preparer = MovieDatasetPreparer(config_path)
    dataset = preparer.prepare(loader.to_dataframe())

    if rating:
        dataset = preparer.select_subgroup(dataset, preparer.rating_column, rating)

    logger.info(f"Dataset sạch: {len(dataset)} dòng")
    logger.info("\n" + preparer.summarize(dataset).to_string())
    return dataset


def prepare_data(args):
    """
    Làm sạch dữ liệu thô và lưu dataset sạch ra CSV.
    """
    logger.info("=" * 60)
    logger.info("BẮT ĐẦU LÀM SẠCH DỮ LIỆU")
    logger.info("=" * 60)

    try:
        dataset = load_clean_dataset(args.input, args.config, args.rating)

        output_path = args.output or "data/processed/movies_clean.csv"
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        dataset.to_csv(output_path, index=False)

        logger.info(f"Đã lưu dataset sạch vào: {output_path}")

    except (MovieRegressionError, FileNotFoundError, ValueError) as e:
        logger.error(f"Lỗi khi làm sạch dữ liệu: {e}")
        sys.exit(1)


def select_models(args):
    """
    Chọn model cho từng family, so sánh và (tùy chọn) vẽ biểu đồ.
    """
    logger.info("=" * 60)
    logger.info("BẮT ĐẦU MODEL SELECTION")
    logger.info("=" * 60)

    try:
        dataset = load_clean_dataset(args.input, args.config, args.rating)

        pipeline = ModelSelectionPipeline(args.config)
        selection = pipeline.run(dataset, families=args.families, show_progress=True)

        comparator = ModelComparator(args.config)
        table = comparator.compare(selection, dataset)

        results_dir = args.output or comparator.results_dir
        comparator.save_results(table, f"{results_dir}/model_comparison.csv")

        excluded = table.excluded_frame()
        if not excluded.empty:
            excluded.to_csv(f"{results_dir}/excluded_families.csv", index=False)

        if not args.no_plots:
            visualize_results(dataset, selection, table, args.config)

        logger.info("Đã hoàn thành model selection thành công")

    except (MovieRegressionError, FileNotFoundError, ValueError) as e:
        logger.error(f"Lỗi khi chọn model: {e}")
        sys.exit(1)


def visualize_results(dataset, selection, table, config_path=None, save_dir="visualizations"):
    """
    Vẽ đường fit, CV curves và biểu đồ so sánh.
    """
    viz = Visualizer(config_path, save_dir=save_dir)
    fmt = viz.viz_config['save_format']

    viz.plot_fitted_curves(dataset, selection.candidates)
    viz.save_plot(f"{save_dir}/fitted_curves.{fmt}")
    viz.close_all()

    for family, cv_result in selection.cv_results.items():
        if cv_result.selected is None:
            continue
        viz.plot_cv_curve(cv_result)
        viz.save_plot(f"{save_dir}/cv_{family}.{fmt}")
        viz.close_all()

    results_df = table.to_frame()
    for metric in ('RMSE', 'R2'):
        viz.plot_model_comparison(results_df, metric=metric)
        viz.save_plot(f"{save_dir}/comparison_{metric.lower()}.{fmt}")
        viz.close_all()

    best = selection.candidates[table.best.family]
    y_true = dataset[viz.target_col].to_numpy(dtype=float)
    y_pred = best.predict(dataset[viz.feature_col].to_numpy(dtype=float))
    viz.plot_residuals(y_true, y_pred, best.family)
    viz.save_plot(f"{save_dir}/residuals_{best.family}.{fmt}")
    viz.close_all()


def run_full_pipeline(args):
    """
    Chạy toàn bộ pipeline: làm sạch -> chọn model -> so sánh -> vẽ biểu đồ.
    """
    logger.info("\n" + "=" * 60)
    logger.info("BẮT ĐẦU FULL PIPELINE")
    logger.info("=" * 60 + "\n")

    prepare_data(args)
    select_models(args)

    logger.info("\n" + "=" * 60)
    logger.info("ĐÃ HOÀN THÀNH FULL PIPELINE")
    logger.info("=" * 60 + "\n")


def main():
    """
    Main function để parse arguments và chạy commands.
    """
    parser = argparse.ArgumentParser(
        description='Movie Budget Regression - Model selection gross ~ budget',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to config.yaml (default: cấu hình mặc định)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    def add_common_arguments(sub):
        sub.add_argument(
            '--input',
            type=str,
            help='Input raw data file (default: data.raw_path trong config)'
        )
        sub.add_argument(
            '--rating',
            type=str,
            help='Chỉ giữ lại phim có rating này (vd: PG-13)'
        )

    # Prepare Command
    prepare_parser = subparsers.add_parser(
        'prepare',
        help='Làm sạch dữ liệu thô'
    )
    add_common_arguments(prepare_parser)
    prepare_parser.add_argument(
        '--output',
        type=str,
        help='Output file cho dataset sạch (default: data/processed/movies_clean.csv)'
    )

    # Select Command
    select_parser = subparsers.add_parser(
        'select',
        help='Chọn và so sánh các family hồi quy'
    )
    add_common_arguments(select_parser)
    select_parser.add_argument(
        '--families',
        nargs='+',
        choices=list(FAMILY_ORDER),
        default=None,
        help='Các family cần chạy (default: tất cả trong config)'
    )
    select_parser.add_argument(
        '--output',
        type=str,
        help='Output directory cho kết quả (default: results)'
    )
    select_parser.add_argument(
        '--no-plots',
        action='store_true',
        help='Không vẽ biểu đồ'
    )

    # Full Pipeline Command
    full_parser = subparsers.add_parser(
        'full-pipeline',
        help='Chạy toàn bộ pipeline từ đầu đến cuối'
    )
    add_common_arguments(full_parser)
    full_parser.set_defaults(output=None, families=None, no_plots=False)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging()

    if args.command == 'prepare':
        prepare_data(args)
    elif args.command == 'select':
        select_models(args)
    elif args.command == 'full-pipeline':
        run_full_pipeline(args)


if __name__ == "__main__":
    main()
