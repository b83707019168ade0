"""
Unit Tests for the Level Builder (geocluster/spatial/clustering.py, levels.py)

Tests the greedy merge pass, weighted centroids, parent links, level
publishing and diagnostics.
"""

import logging

import numpy as np
import pytest

from geocluster.aggregation import FieldAggregator
from geocluster.schemas import ClusterOptions
from geocluster.spatial import clustering
from geocluster.spatial.clustering import build_levels, cluster_level, merge_radius
from geocluster.spatial.ids import NO_ID, encode_cluster_id
from geocluster.spatial.levels import Level
from geocluster.spatial.projection import lat_y, lng_x, project_lat, project_lng


def _raw_level(lngs, lats, zoom=1):
    n = len(lngs)
    return Level.build(
        zoom,
        project_lng(lngs),
        project_lat(lats),
        np.ones(n, dtype=np.int64),
        np.full(n, NO_ID, dtype=np.int64),
        np.arange(n),
        [None] * n,
    )


def _build(points_lnglat, **options):
    lngs = [p[0] for p in points_lnglat]
    lats = [p[1] for p in points_lnglat]
    return build_levels(
        project_lng(lngs),
        project_lat(lats),
        np.arange(len(lngs)),
        ClusterOptions(**options),
    )


# ==============================================================================
# Merge Pass Tests
# ==============================================================================

class TestClusterLevel:
    """Test a single greedy merge pass."""

    def test_merge_radius(self):
        """Radius halves with each zoom."""
        assert merge_radius(40, 512, 0) == pytest.approx(0.078125)
        assert merge_radius(40, 512, 3) == pytest.approx(0.078125 / 8)

    def test_close_points_merge(self):
        """Three points within the radius become one aggregate."""
        finer = _raw_level([0.0, 1.0, 2.0], [0.0, 0.0, 0.0])
        coarser, parent_ids = cluster_level(finer, 0, radius=40, extent=512)

        assert len(coarser) == 1
        assert coarser.counts.tolist() == [3]
        assert coarser.ids.tolist() == [encode_cluster_id(0, 0)]
        assert parent_ids.tolist() == [1, 1, 1]

    def test_weighted_centroid(self):
        """The aggregate sits at the count-weighted mean of its members."""
        finer = _raw_level([0.0, 1.0, 2.0], [0.0, 0.0, 0.0])
        coarser, _ = cluster_level(finer, 0, radius=40, extent=512)

        assert coarser.xs[0] == pytest.approx(np.mean(finer.xs))
        assert coarser.ys[0] == pytest.approx(lat_y(0.0))

    def test_distant_points_stay_leaves(self):
        """Points farther apart than the radius are carried over unchanged."""
        finer = _raw_level([-100.0, 100.0], [0.0, 0.0])
        coarser, parent_ids = cluster_level(finer, 0, radius=40, extent=512)

        assert len(coarser) == 2
        assert coarser.ids.tolist() == [NO_ID, NO_ID]
        assert coarser.sources.tolist() == [0, 1]
        assert coarser.xs.tolist() == [lng_x(-100.0), lng_x(100.0)]
        assert parent_ids.tolist() == [NO_ID, NO_ID]

    def test_input_order_picks_representative(self):
        """The first unconsumed point seeds the aggregate and names its id."""
        finer = _raw_level([-100.0, 0.0, 1.0], [0.0, 0.0, 0.0])
        coarser, parent_ids = cluster_level(finer, 0, radius=40, extent=512)

        assert coarser.ids.tolist() == [NO_ID, encode_cluster_id(1, 0)]
        assert parent_ids.tolist() == [NO_ID, encode_cluster_id(1, 0), encode_cluster_id(1, 0)]

    def test_finer_level_untouched(self):
        """The pass only reads the finer level."""
        finer = _raw_level([0.0, 1.0], [0.0, 0.0])
        before = finer.xs.copy()
        cluster_level(finer, 0, radius=40, extent=512)

        np.testing.assert_array_equal(finer.xs, before)
        assert finer.parent_ids.tolist() == [NO_ID, NO_ID]

    def test_aggregator_requires_properties(self):
        """An aggregator without source properties is rejected."""
        finer = _raw_level([0.0, 1.0], [0.0, 0.0])
        with pytest.raises(ValueError):
            cluster_level(finer, 0, radius=40, extent=512, aggregator=FieldAggregator({"w": "sum"}))

    def test_aggregated_properties(self):
        """Aggregated properties are folded into the new cluster."""
        finer = _raw_level([0.0, 1.0, 2.0], [0.0, 0.0, 0.0])
        coarser, _ = cluster_level(
            finer,
            0,
            radius=40,
            extent=512,
            aggregator=FieldAggregator({"w": "sum"}),
            source_properties=[{"w": 1}, {"w": 2}, {"w": 4}],
        )
        assert coarser.properties[0] == {"w": 7}

    def test_chunking_does_not_change_result(self, rng, monkeypatch):
        """Batch size of neighbor queries has no effect on the output."""
        lngs = rng.uniform(-20, 20, size=300)
        lats = rng.uniform(-20, 20, size=300)

        expected, expected_parents = cluster_level(_raw_level(lngs, lats), 2, radius=40, extent=512)
        monkeypatch.setattr(clustering, "NEIGHBOR_CHUNK", 7)
        actual, actual_parents = cluster_level(_raw_level(lngs, lats), 2, radius=40, extent=512)

        np.testing.assert_array_equal(actual.ids, expected.ids)
        np.testing.assert_array_equal(actual.counts, expected.counts)
        np.testing.assert_allclose(actual.xs, expected.xs)
        np.testing.assert_array_equal(actual_parents, expected_parents)


# ==============================================================================
# Level Tests
# ==============================================================================

class TestLevel:
    """Test level storage."""

    def test_publish_freezes_arrays(self):
        """Published levels are read-only."""
        level = _raw_level([0.0, 1.0], [0.0, 0.0]).publish()

        assert level.frozen
        with pytest.raises(ValueError):
            level.xs[0] = 0.0
        with pytest.raises(ValueError):
            level.parent_ids[0] = 5

    def test_publish_twice_fails(self):
        """A level is published exactly once."""
        level = _raw_level([0.0], [0.0]).publish()
        with pytest.raises(ValueError):
            level.publish()

    def test_publish_checks_length(self):
        """Parent ids must cover every row."""
        level = _raw_level([0.0, 1.0], [0.0, 0.0])
        with pytest.raises(ValueError):
            level.publish(np.array([NO_ID]))

    def test_point_view(self):
        """Rows can be read back as ClusterPoint records."""
        level = _raw_level([0.0], [0.0])
        point = level.point(0)

        assert point.x == 0.5
        assert point.count == 1
        assert point.source == 0
        assert not point.is_cluster


# ==============================================================================
# Hierarchy Tests
# ==============================================================================

class TestBuildLevels:
    """Test the full top-down build."""

    def test_level_range(self):
        """Levels exist for every zoom from min_zoom to max_zoom + 1."""
        levels, _ = _build([(0, 0), (1, 1)], min_zoom=2, max_zoom=5)
        assert sorted(levels) == [2, 3, 4, 5, 6]
        assert all(level.frozen for level in levels.values())

    def test_conservation(self, rng):
        """Every level represents every indexed point exactly once."""
        points = list(zip(rng.uniform(-180, 180, 400), rng.uniform(-80, 80, 400)))
        levels, _ = _build(points, max_zoom=8)

        for level in levels.values():
            assert level.total_count == 400

    def test_parent_links(self, rng):
        """Each aggregate's count equals the sum over rows pointing to it."""
        points = list(zip(rng.uniform(-30, 30, 300), rng.uniform(-30, 30, 300)))
        levels, _ = _build(points, max_zoom=6)

        for zoom in range(0, 7):
            coarser, finer = levels[zoom], levels[zoom + 1]
            for pos in np.flatnonzero(coarser.ids != NO_ID):
                members = finer.parent_ids == coarser.ids[pos]
                assert finer.counts[members].sum() == coarser.counts[pos]

    def test_empty_input(self):
        """No points still produces empty levels."""
        levels, diagnostics = _build([], max_zoom=3)

        assert sorted(levels) == [0, 1, 2, 3, 4]
        assert all(len(level) == 0 for level in levels.values())
        assert diagnostics.num_indexed == 0

    def test_diagnostics(self):
        """Diagnostics record every level, finest first."""
        _, diagnostics = _build([(0, 0), (0.1, 0.1), (90, 0)], max_zoom=4)

        assert [s.zoom for s in diagnostics.levels] == [5, 4, 3, 2, 1, 0]
        assert diagnostics.num_indexed == 3
        assert diagnostics.num_skipped == 0
        assert diagnostics.total_ms >= 0.0

    def test_log_option_emits_info(self, caplog):
        """log=True reports build progress at INFO level."""
        with caplog.at_level(logging.INFO, logger="geocluster.spatial.clustering"):
            _build([(0, 0), (1, 1)], max_zoom=2, log=True)

        messages = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
        assert messages[0] == "prepare 2 points"
        assert any(m.startswith("z0:") for m in messages)
        assert messages[-1].startswith("total time")

    def test_quiet_by_default(self, caplog):
        """Without log=True nothing is logged at INFO."""
        with caplog.at_level(logging.INFO, logger="geocluster.spatial.clustering"):
            _build([(0, 0), (1, 1)], max_zoom=2)

        assert not [r for r in caplog.records if r.levelno >= logging.INFO]
