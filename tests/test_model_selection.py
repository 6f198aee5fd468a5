import os
import shutil
import unittest
from unittest.mock import patch

import numpy as np
import pandas as pd
import yaml
from statsmodels.nonparametric.smoothers_lowess import lowess

from movie_regression.exceptions import DataError, FitError, InsufficientDataError
from movie_regression.families import FAMILY_ORDER, LocalRegressor, build_estimator
from movie_regression.model_selection import ModelSelectionPipeline
from tests.helpers import NOISE_SD, make_linear_dataset


class TestModelSelectionPipeline(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.dataset = make_linear_dataset(n_rows=100, seed=0)
        cls.pipeline = ModelSelectionPipeline()
        cls.result = cls.pipeline.run(cls.dataset)

    def test_all_families_selected(self):
        self.assertEqual(list(self.result.candidates), list(FAMILY_ORDER))
        self.assertEqual(self.result.failures, [])
        self.assertEqual(self.result.n_rows, 100)

    def test_selected_values_come_from_grids(self):
        grids = self.pipeline.param_grids
        for family in ('polynomial', 'step', 'natural_spline', 'local'):
            candidate = self.result.candidates[family]
            self.assertIn(candidate.hyperparameter, grids[family])
            self.assertEqual(candidate.hyperparameter, self.result.cv_results[family].selected)

    def test_selected_value_minimizes_score(self):
        for family in ('polynomial', 'step', 'natural_spline', 'local'):
            cv_result = self.result.cv_results[family]
            best = min(cv_result.scores.values())
            self.assertEqual(cv_result.scores[cv_result.selected], best)
            self.assertEqual(self.result.candidates[family].score, best)

    def test_search_methods(self):
        cv_results = self.result.cv_results
        self.assertEqual(cv_results['linear'].method, 'kfold')
        self.assertEqual(list(cv_results['linear'].scores), [None])
        self.assertEqual(cv_results['local'].method, 'in_sample')
        self.assertEqual(cv_results['smoothing_spline'].method, 'none')
        self.assertEqual(cv_results['smoothing_spline'].scores, {})
        self.assertIsNone(self.result.candidates['smoothing_spline'].hyperparameter)

    def test_predict_defined_on_every_training_budget(self):
        budget = self.dataset['budget'].to_numpy()
        for family, candidate in self.result.candidates.items():
            predictions = candidate.predict(budget)
            self.assertEqual(predictions.shape, budget.shape, family)
            self.assertTrue(np.all(np.isfinite(predictions)), family)

    def test_predict_accepts_scalar(self):
        prediction = self.result.candidates['linear'].predict(5e7)
        self.assertEqual(prediction.shape, (1,))
        self.assertAlmostEqual(prediction[0] / 1e8, 1.0, delta=0.1)

    def test_selection_is_deterministic(self):
        again = ModelSelectionPipeline().run(self.dataset)
        for family in FAMILY_ORDER:
            self.assertEqual(
                again.candidates[family].hyperparameter,
                self.result.candidates[family].hyperparameter
            )
            self.assertEqual(again.cv_results[family].scores, self.result.cv_results[family].scores)

    def test_dataset_is_not_mutated(self):
        dataset = make_linear_dataset(n_rows=30, seed=3)
        snapshot = dataset.copy()
        self.pipeline.run(dataset, families=['polynomial', 'local'])
        pd.testing.assert_frame_equal(dataset, snapshot)

    def test_families_follow_enumeration_order(self):
        result = self.pipeline.run(self.dataset, families=['local', 'linear'])
        self.assertEqual(list(result.candidates), ['linear', 'local'])


class TestInsufficientData(unittest.TestCase):

    def setUp(self):
        self.pipeline = ModelSelectionPipeline()

    def test_fewer_rows_than_folds_raises(self):
        dataset = make_linear_dataset(n_rows=5, seed=1)
        for family in ('linear', 'polynomial', 'step', 'natural_spline'):
            with self.assertRaises(InsufficientDataError):
                self.pipeline.search_family(dataset, family)

    def test_small_subgroup_keeps_uncrossvalidated_families(self):
        dataset = make_linear_dataset(n_rows=8, seed=2)
        result = self.pipeline.run(dataset)

        self.assertEqual(list(result.candidates), ['smoothing_spline', 'local'])
        failed = {f.family: f.error_type for f in result.failures}
        self.assertEqual(failed, {
            'linear': 'InsufficientDataError',
            'polynomial': 'InsufficientDataError',
            'step': 'InsufficientDataError',
            'natural_spline': 'InsufficientDataError',
        })

    def test_small_span_is_skipped_not_fatal(self):
        dataset = make_linear_dataset(n_rows=8, seed=2)
        _, cv_result = self.pipeline.search_family(dataset, 'local')

        self.assertTrue(np.isnan(cv_result.scores[0.1]))
        self.assertTrue(np.isnan(cv_result.scores[0.2]))
        self.assertGreaterEqual(cv_result.selected, 0.3)

    def test_smoothing_spline_needs_distinct_budgets(self):
        dataset = pd.DataFrame({'budget': [1e6, 1e6, 2e6, 2e6, 3e6, 3e6], 'gross': np.arange(6.0)})
        with self.assertRaises(FitError):
            self.pipeline.search_family(dataset, 'smoothing_spline')

    def test_every_family_failing_raises_data_error(self):
        dataset = make_linear_dataset(n_rows=5, seed=1)
        with self.assertRaises(DataError) as ctx:
            self.pipeline.run(dataset, families=['polynomial', 'step'])
        self.assertIs(type(ctx.exception), DataError)

    def test_empty_dataset_raises(self):
        empty = pd.DataFrame({'budget': [], 'gross': []})
        with self.assertRaises(DataError):
            self.pipeline.run(empty)

    def test_missing_column_raises(self):
        with self.assertRaises(DataError):
            self.pipeline.run(pd.DataFrame({'budget': [1.0, 2.0]}))


class TestSearchBehaviour(unittest.TestCase):

    def setUp(self):
        self.pipeline = ModelSelectionPipeline()
        self.dataset = make_linear_dataset(n_rows=40, seed=4)

    def test_ties_select_first_value(self):
        with patch.object(ModelSelectionPipeline, '_score_kfold', return_value=1.0):
            candidate, cv_result = self.pipeline.search_family(self.dataset, 'natural_spline')
        self.assertEqual(cv_result.selected, 3)
        self.assertEqual(candidate.hyperparameter, 3)

    def test_failed_candidate_is_skipped(self):
        def fake_score(family, param, X, y, folds):
            if param == 1:
                raise FitError("singular")
            return float(param)

        with patch.object(self.pipeline, '_score_kfold', side_effect=fake_score):
            candidate, cv_result = self.pipeline.search_family(self.dataset, 'polynomial')

        self.assertTrue(np.isnan(cv_result.scores[1]))
        self.assertEqual(candidate.hyperparameter, 2)

    def test_all_candidates_failing_raises_fit_error(self):
        with patch.object(self.pipeline, '_score_kfold', side_effect=np.linalg.LinAlgError("singular")):
            with self.assertRaises(FitError):
                self.pipeline.search_family(self.dataset, 'step')

    def test_custom_grid(self):
        _, cv_result = self.pipeline.search_family(self.dataset, 'polynomial', grid=[2, 3])
        self.assertEqual(list(cv_result.scores), [2, 3])

    def test_unknown_family(self):
        with self.assertRaises(ValueError):
            self.pipeline.search_family(self.dataset, 'random_forest')
        with self.assertRaises(ValueError):
            build_estimator('polynomial')


class TestLocalRegressor(unittest.TestCase):

    def setUp(self):
        dataset = make_linear_dataset(n_rows=100, seed=0)
        # Thứ tự dòng như đọc từ CSV, không sắp theo budget
        shuffled = dataset.sample(frac=1.0, random_state=11).reset_index(drop=True)
        self.x = shuffled['budget'].to_numpy()
        self.y = shuffled['gross'].to_numpy()

    def test_predict_matches_lowess_on_unsorted_budgets(self):
        for span in (0.1, 0.3, 0.75):
            expected = lowess(self.y, self.x, frac=span, it=0, delta=0.0, return_sorted=False)
            predicted = LocalRegressor(span=span).fit(self.x, self.y).predict(self.x)
            np.testing.assert_allclose(predicted, expected, rtol=1e-9)

    def test_predict_keeps_input_order(self):
        model = LocalRegressor(span=0.5).fit(self.x, self.y)
        forward = model.predict(self.x[:10])
        backward = model.predict(self.x[:10][::-1])
        np.testing.assert_allclose(backward, forward[::-1], rtol=1e-12)

    def test_in_sample_score_falls_with_span(self):
        dataset = make_linear_dataset(n_rows=100, seed=0).sample(frac=1.0, random_state=3)
        _, cv_result = ModelSelectionPipeline().search_family(dataset, 'local')

        spans = sorted(cv_result.scores)
        scores = [cv_result.scores[span] for span in spans]
        for smaller, larger in zip(scores, scores[1:]):
            self.assertLessEqual(smaller, larger * (1 + 1e-9))
        self.assertEqual(cv_result.selected, 0.1)
        self.assertLess(scores[0], NOISE_SD)


class TestPipelineConfig(unittest.TestCase):

    def setUp(self):
        self.test_output_dir = "tests/test_data"
        os.makedirs(self.test_output_dir, exist_ok=True)

    def tearDown(self):
        if os.path.exists(self.test_output_dir):
            shutil.rmtree(self.test_output_dir)

    def _write_config(self, config):
        path = f"{self.test_output_dir}/config.yaml"
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config, f)
        return path

    def test_config_overrides_defaults(self):
        path = self._write_config({'model_selection': {'cv_folds': 5, 'families': ['linear']}})
        pipeline = ModelSelectionPipeline(path)

        self.assertEqual(pipeline.cv_folds, 5)
        self.assertEqual(pipeline.families, ['linear'])
        self.assertEqual(pipeline.param_grids['polynomial'], [1, 2, 3, 4])

        result = pipeline.run(make_linear_dataset(n_rows=6, seed=5))
        self.assertEqual(list(result.candidates), ['linear'])

    def test_unknown_family_in_config(self):
        path = self._write_config({'model_selection': {'families': ['linear', 'xgboost']}})
        with self.assertRaises(ValueError):
            ModelSelectionPipeline(path)

    def test_missing_config_file(self):
        with self.assertRaises(FileNotFoundError):
            ModelSelectionPipeline("configs/does_not_exist.yaml")

    def test_shipped_config_matches_defaults(self):
        shipped = ModelSelectionPipeline("configs/config.yaml")
        default = ModelSelectionPipeline()
        self.assertEqual(shipped.families, default.families)
        self.assertEqual(shipped.param_grids, default.param_grids)
        self.assertEqual(shipped.cv_folds, 10)


if __name__ == '__main__':
    unittest.main()
