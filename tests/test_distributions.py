import numpy as np
import pytest

from stonksim.core.constants import CORRELATIONS, STOCK_SYMBOLS
from stonksim.core.distributions import CorrelationGraph, standard_normal


class TestStandardNormal:
    def test_scalar_draw_is_float(self, rng):
        assert isinstance(standard_normal(rng), float)

    def test_vector_draw_has_unit_moments(self, rng):
        draws = standard_normal(rng, 50_000)
        assert draws.shape == (50_000,)
        assert np.all(np.isfinite(draws))
        assert abs(draws.mean()) < 0.03
        assert abs(draws.std() - 1.0) < 0.03

    def test_same_seed_reproduces_draws(self):
        a = standard_normal(np.random.default_rng(1), 10)
        b = standard_normal(np.random.default_rng(1), 10)
        assert np.array_equal(a, b)


class TestCorrelationGraph:
    def test_rejects_out_of_range_rho(self):
        with pytest.raises(ValueError):
            CorrelationGraph([('A', 'B', 1.5)])

    def test_rejects_symbol_in_two_pairs(self):
        with pytest.raises(ValueError):
            CorrelationGraph([('A', 'B', 0.5), ('B', 'C', 0.2)])

    def test_default_pairs_are_valid(self):
        graph = CorrelationGraph(CORRELATIONS)
        assert len(graph.pairs) == len(CORRELATIONS)

    def test_every_symbol_gets_exactly_one_shock(self, rng):
        graph = CorrelationGraph(CORRELATIONS)
        shocks = graph.sample(rng, STOCK_SYMBOLS)
        assert sorted(shocks) == sorted(STOCK_SYMBOLS)

    def test_pairs_outside_the_market_are_ignored(self, rng):
        graph = CorrelationGraph([('X', 'Y', 0.5)])
        assert set(graph.sample(rng, ['A', 'B'])) == {'A', 'B'}

    @pytest.mark.parametrize("rho", [0.75, -0.65, 0.0])
    def test_empirical_correlation_matches_rho(self, rng, rho):
        graph = CorrelationGraph([('A', 'B', rho)])
        samples = [graph.sample(rng, ['A', 'B', 'C']) for _ in range(20_000)]
        a = np.array([s['A'] for s in samples])
        b = np.array([s['B'] for s in samples])
        c = np.array([s['C'] for s in samples])

        assert np.corrcoef(a, b)[0, 1] == pytest.approx(rho, abs=0.03)
        assert abs(np.corrcoef(a, c)[0, 1]) < 0.03
