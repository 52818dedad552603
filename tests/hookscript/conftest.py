"""Shared fixtures for hookscript tests."""

import pytest
from prometheus_client import CollectorRegistry

from hookscript.events.metrics import HookMetrics
from hookscript.events.sink import MemoryLogSink
from hookscript.script.engine import ScriptEngine
from hookscript.script.functions import ControlFunctionSet


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return HookMetrics(registry=registry)


@pytest.fixture
def sink():
    return MemoryLogSink()


@pytest.fixture
def functions(sink, metrics):
    return ControlFunctionSet(sink=sink, metrics=metrics)


@pytest.fixture
def engine(functions):
    return ScriptEngine(functions)
