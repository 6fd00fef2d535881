# ampsim/tests/conftest.py
import importlib

import pytest


def _gpu_available():
    try:
        cp = importlib.import_module("cupy")
        return cp.cuda.runtime.getDeviceCount() > 0
    except Exception:
        return False


def available_backends():
    names = ["serial"]
    try:
        importlib.import_module("numba")
        names.append("numba")
    except ImportError:
        pass
    if _gpu_available():
        names.append("cupy")
    return names


@pytest.fixture(params=available_backends())
def backend_name(request):
    return request.param


@pytest.fixture
def backend(backend_name):
    """Kernel module of every backend that can run on this machine."""
    from ampsim.engine import load_backend
    return load_backend(backend_name)
