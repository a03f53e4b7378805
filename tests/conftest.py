"""Shared fixtures and helper components for the ccbmtk tests."""

import pytest

from ccbmtk import Core, ModelComponent, Q_, TimeSeries


class DummyModelComponent(ModelComponent):
    """A linear model, c(t) = slope * (t - start) + y(t).

    c is integrated in 0.1 yr steps. y is an optional input series.
    The component records every date it was asked to run to, and
    every spinup step.
    """

    def __init__(
        self,
        name="dummy-component",
        capabilities=("dummyc",),
        dependencies=(),
        inputs=("slope", "y"),
        spinup_steps_needed=1,
    ):
        super().__init__()
        self.name = name
        self.capabilities = capabilities
        self.dependencies = dependencies
        self.inputs = inputs
        self.spinup_steps_needed = spinup_steps_needed

        self.slope = 0.0
        self.y = TimeSeries("y", allow_interp=True)
        self.c = TimeSeries("c")
        self.value = 0.0
        self.t = 0.0
        self.runs = []
        self.spinup_steps = []
        self.prepared = 0
        self.was_shut_down = False

        self.getters = {cap: self._get_c for cap in capabilities}
        self.getters["slope"] = lambda date: Q_(self.slope, "PgC/yr")
        self.setters = {"slope": self._set_slope, "y": self._set_y}

    def _get_c(self, date):
        value = self.value if date is None else self.c.get(date)
        return Q_(value, "PgC")

    def _set_slope(self, data):
        self.slope = self._to_float(data, "PgC/yr")

    def _set_y(self, data):
        self.y.set(self._data_date(data), self._to_float(data, "PgC"))

    def init(self, core):
        super().init(core)
        for cap in self.capabilities:
            core.register_capability(cap, self.name)
        for dep in self.dependencies:
            core.register_dependency(dep, self.name)
        for inp in self.inputs:
            core.register_input(inp, self.name)

    def prepare_to_run(self):
        self.prepared += 1
        self.t = self.core.get_start_date()
        self.value = 0.0
        self.c.clear()
        self.c.set(self.t, self.value)

    def run(self, run_to_date):
        while self.t < run_to_date - 1e-9:
            self.t = round(self.t + 0.1, 10)
            self.value += self.slope * 0.1
        total = self.value + (self.y.get(run_to_date) if self.y.size() else 0.0)
        self.c.set(run_to_date, total)
        self.runs.append(run_to_date)

    def run_spinup(self, step):
        self.spinup_steps.append(step)
        return step >= self.spinup_steps_needed

    def reset(self, time):
        if time < self.core.get_start_date():
            self.c.clear()
            return
        self.c.truncate(time)
        self.value = self.c.get(time)
        self.t = time

    def shut_down(self):
        self.was_shut_down = True
        super().shut_down()


class CountingVisitor:
    """Record (in_spinup, date) for every visit, plus visited components."""

    def __init__(self, include_spinup=True):
        self.include_spinup = include_spinup
        self.visits = []
        self.components = []

    def should_visit(self, in_spinup, date):
        return self.include_spinup or not in_spinup

    def visit_core(self, core):
        self.visits.append((core.in_spinup(), core.get_current_date()))

    def visit_component(self, component):
        self.components.append(component.name)


def make_core(components=(), **kwargs):
    """Return an initialized core holding `components`."""
    kwargs.setdefault("do_spinup", False)
    kwargs.setdefault("log_level", "ERROR")
    core = Core(**kwargs)
    for c in components:
        core.add_component(c)
    core.init()
    return core


def make_ocean_core(**kwargs):
    """Return an initialized core with the default components."""
    kwargs.setdefault("do_spinup", False)
    kwargs.setdefault("log_level", "ERROR")
    core = Core(**kwargs)
    core.add_default_components()
    core.init()
    return core


@pytest.fixture
def dummy():
    return DummyModelComponent()


@pytest.fixture
def ocean_core():
    core = make_ocean_core(start_date=1745, end_date=2100)
    yield core
    core.shut_down()
