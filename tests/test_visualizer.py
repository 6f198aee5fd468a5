import os
import shutil
import unittest

import matplotlib
matplotlib.use('Agg')

from movie_regression.comparator import ModelComparator
from movie_regression.model_selection import ModelSelectionPipeline
from movie_regression.visualizer import Visualizer
from tests.helpers import make_linear_dataset


class TestVisualizer(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.dataset = make_linear_dataset(n_rows=40, seed=9)
        cls.selection = ModelSelectionPipeline().run(
            cls.dataset, families=['linear', 'polynomial', 'local']
        )
        cls.table = ModelComparator().compare(cls.selection, cls.dataset)

    def setUp(self):
        self.save_dir = "tests/test_plots"
        self.viz = Visualizer(save_dir=self.save_dir)

    def tearDown(self):
        self.viz.close_all()
        if os.path.exists(self.save_dir):
            shutil.rmtree(self.save_dir)

    def test_fitted_curves_saved(self):
        self.viz.plot_fitted_curves(self.dataset, self.selection.candidates)
        filepath = f"{self.save_dir}/fitted_curves.png"
        self.viz.save_plot(filepath)
        self.assertTrue(os.path.exists(filepath))

    def test_cv_curve_saved(self):
        self.viz.plot_cv_curve(self.selection.cv_results['polynomial'])
        filepath = f"{self.save_dir}/cv/polynomial.png"
        self.viz.save_plot(filepath)
        self.assertTrue(os.path.exists(filepath))

    def test_model_comparison(self):
        results_df = self.table.to_frame()
        self.viz.plot_model_comparison(results_df, metric='R2')
        with self.assertRaises(ValueError):
            self.viz.plot_model_comparison(results_df, metric='MAPE')


if __name__ == '__main__':
    unittest.main()
