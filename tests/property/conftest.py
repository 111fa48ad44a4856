"""Hypothesis profiles for the batching and line-splitting properties.

Set HYPOTHESIS_PROFILE=ci for the full example count, or =quick while editing
the batcher. Some properties run a fresh event loop per example, so no profile
enforces a deadline.
"""

import os

import pytest
from hypothesis import Phase, settings

settings.register_profile("ci", max_examples=200, deadline=None)
settings.register_profile("quick", max_examples=10, deadline=None, phases=[Phase.generate])

_profile = os.environ.get("HYPOTHESIS_PROFILE")
if _profile in ("ci", "quick"):
    settings.load_profile(_profile)


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "property" in str(item.fspath):
            item.add_marker(pytest.mark.property)
