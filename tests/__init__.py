"""Test package for geocluster.

This package contains:
- Unit tests (test_projection.py, test_ids.py, test_spatial_index.py,
  test_clustering.py, test_aggregation.py)
- Query tests (test_queries.py, test_tiles.py)
- Configuration and adapter tests (test_config.py, test_frames.py)
- Integration tests (test_integration.py)
- Test configuration (conftest.py)
"""
