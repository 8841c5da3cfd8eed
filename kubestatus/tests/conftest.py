"""Shared fixtures for Kubestatus tests."""

from __future__ import annotations

from datetime import datetime

import pytest

from kubestatus.kube import KubeContext
from kubestatus.tests.fakes import NOW, make_kube


@pytest.fixture
def kube() -> KubeContext:
    """KubeContext wired to in-memory fake API clients."""
    return make_kube()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time used by the object builders."""
    return NOW
