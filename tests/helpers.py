"""
Dữ liệu giả lập dùng chung cho các test.
"""

import numpy as np
import pandas as pd

NOISE_SD = 2e7


def make_linear_dataset(n_rows: int = 100, seed: int = 0, noise_sd: float = NOISE_SD) -> pd.DataFrame:
    """budget ~ U[1e6, 2e8], gross = 2 * budget + N(0, noise_sd)."""
    rng = np.random.default_rng(seed)
    budget = rng.uniform(1e6, 2e8, n_rows)
    gross = 2 * budget + rng.normal(0, noise_sd, n_rows)
    return pd.DataFrame({'budget': budget, 'gross': gross})


def make_raw_movies() -> pd.DataFrame:
    """Dữ liệu thô dạng chuỗi như khi đọc movies.csv, gồm đủ loại giá trị sentinel."""
    base = {
        'budget': '8000000', 'company': 'Columbia Pictures', 'country': 'USA',
        'director': 'Rob Reiner', 'genre': 'Adventure', 'gross': '52287414',
        'name': 'Stand by Me', 'rating': 'R', 'released': '1986-08-22',
        'runtime': '89', 'score': '8.1', 'star': 'Wil Wheaton', 'votes': '299174',
        'writer': 'Stephen King', 'year': '1986',
    }
    rows = [
        dict(base),
        dict(base, name='Ferris Bueller', rating='PG-13', budget=' 6000000 ', gross='70136369'),
        dict(base, name='Top Gun', rating='pg', budget='15000000', gross='179800601'),
        dict(base, name='Zero Budget', budget='0'),
        dict(base, name='Bad Budget', budget='abc'),
        dict(base, name='No Gross', gross=''),
        dict(base, name='Unknown Company', company='  Unknown '),
        dict(base, name='NA Writer', writer='N/A'),
        dict(base, name='None Star', star='none'),
        dict(base, name='Not Rated Film', rating='Not Rated'),
        dict(base, name='Unrated Film', rating=' UNRATED'),
        dict(base, name='Not Specified Film', rating='not specified'),
        dict(base, name='Empty Rating', rating=''),
    ]
    return pd.DataFrame(rows)
