"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


# Reference fixture:
#   altered:   t=1 event, t=2 censored, t=3 event
#   unaltered: t=1 event, t=2 event
REFERENCE_RECORDS = {
    "a1": {"os_months": 1, "os_status": "1", "dfs_months": 1, "dfs_status": "1"},
    "a2": {"os_months": 2, "os_status": "0", "dfs_months": "NA", "dfs_status": ""},
    "a3": {"os_months": 3, "os_status": "1", "dfs_months": 3, "dfs_status": "0"},
    "b1": {"os_months": 1, "os_status": "1", "dfs_months": 2, "dfs_status": "1"},
    "b2": {"os_months": 2, "os_status": "1", "dfs_months": 4, "dfs_status": "1"},
}

REFERENCE_GROUPS = {
    "a1": "altered",
    "a2": "altered",
    "a3": "altered",
    "b1": "unaltered",
    "b2": "unaltered",
}


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def reference_records():
    return {case_id: dict(record) for case_id, record in REFERENCE_RECORDS.items()}


@pytest.fixture
def reference_groups():
    return dict(REFERENCE_GROUPS)


@pytest.fixture
def random_study(rng):
    """Random two-group study with ties, censoring and missing times."""
    n = 60
    records = {}
    groups = {}
    for k in range(n):
        case_id = f"case-{k:03d}"
        time = float(rng.integers(0, 25))
        records[case_id] = {
            "os_months": "NA" if rng.random() < 0.1 else time,
            "os_status": str(int(rng.random() < 0.6)),
        }
        groups[case_id] = "altered" if rng.random() < 0.4 else "unaltered"
    return records, groups
