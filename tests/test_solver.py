"""Solver tests with small synthetic carbon cycle models."""

import math

import numpy as np
import pytest
from conftest import make_core

from ccbmtk import CarbonCycleModel, CarbonCycleSolver, MessageData, Outcome, SolverError
from ccbmtk.names import D_ATMOSPHERIC_C


class DecayModel(CarbonCycleModel):
    """One pool, dC/dt = -k * (C - target).

    Requests a retry whenever the solver tries to integrate more than
    `max_step` years past the last stash.
    """

    def __init__(self, c0=100.0, k=0.1, target=0.0, max_step=None, always_retry=False):
        super().__init__()
        self.name = "decay"
        self.c0 = c0
        self.k = k
        self.target = target
        self.max_step = max_step
        self.always_retry = always_retry
        self.pool = c0
        self.ode_start = 0.0
        self.stashed = []
        self.slow_updates = []

    def init(self, core):
        super().init(core)
        core.register_capability(D_ATMOSPHERIC_C, self.name)

    def pool_names(self):
        return ["atmos_c"]

    def prepare_to_run(self):
        self.pool = self.c0
        self.stashed = []

    def run(self, run_to_date):
        pass

    def reset(self, time):
        pass

    def export_pools(self, t):
        self.ode_start = t
        return np.array([self.pool])

    def update_slow_parameters(self, t, pools):
        self.slow_updates.append(t)

    def derivatives(self, t, pools):
        dcdt = np.array([-self.k * (pools[0] - self.target)])
        yf = t - self.ode_start
        if self.always_retry and yf > 0:
            return dcdt, Outcome.RETRY
        if self.max_step is not None and yf > self.max_step:
            return dcdt, Outcome.RETRY
        return dcdt, Outcome.SUCCESS

    def stash(self, t, pools):
        self.stashed.append((t, t - self.ode_start))
        self.pool = float(pools[0])


def make_solver_core(model, **kwargs):
    solver = CarbonCycleSolver()
    kwargs.setdefault("start_date", 0)
    kwargs.setdefault("end_date", 3000)
    core = make_core([model, solver], **kwargs)
    return core, solver


def test_solver_runs_after_its_model():
    model = DecayModel()
    core, solver = make_solver_core(model)
    core.prepare_to_run()
    assert core.order == ["decay", "carbon-cycle-solver"]
    assert solver.model is model


def test_exponential_decay():
    model = DecayModel(k=0.1)
    core, solver = make_solver_core(model)
    core.prepare_to_run()
    core.run(10)

    expected = 100.0 * math.exp(-1.0)
    assert abs(model.pool - expected) / expected < 1e-4
    assert solver.t == 10
    # one stash per year, slow parameters once per year
    assert [t for t, _ in model.stashed] == list(range(1, 11))
    assert model.slow_updates == list(range(0, 10))


def test_retry_bisects_the_interval():
    model = DecayModel(k=0.1, max_step=0.25)
    core, solver = make_solver_core(model)
    core.prepare_to_run()
    core.run(3)

    assert solver.total_retries > 0
    assert all(yf <= 0.25 + 1e-12 for _, yf in model.stashed)
    assert model.stashed[-1][0] == 3.0
    # each year ends exactly on the whole year
    times = [t for t, _ in model.stashed]
    assert 1.0 in times and 2.0 in times

    expected = 100.0 * math.exp(-0.3)
    assert abs(model.pool - expected) / expected < 1e-4


def test_retry_exhaustion_is_fatal():
    model = DecayModel(always_retry=True)
    core, solver = make_solver_core(model)
    core.prepare_to_run()
    with pytest.raises(SolverError, match="too many retries"):
        core.run(1)
    assert solver.retries == solver.max_retries + 1


def test_run_must_advance_whole_years():
    model = DecayModel()
    core, solver = make_solver_core(model)
    core.prepare_to_run()
    with pytest.raises(SolverError):
        solver.run(0)
    with pytest.raises(SolverError):
        solver.run(0.5)


def test_spinup_converges():
    model = DecayModel(c0=100.0, k=0.5, target=50.0)
    core, solver = make_solver_core(model, do_spinup=True, start_date=1745)
    core.prepare_to_run()

    res = solver.spinup_residuals
    assert res[-1] < solver.eps_spinup
    assert all(a >= b for a, b in zip(res, res[1:]))
    assert len(res) < 100
    assert abs(model.pool - 50.0) < 0.01
    # the spinup ran on synthetic dates, the run starts at the start date
    assert model.stashed[0][0] == 1
    assert solver.t == 1745

    core.run(1746)
    assert model.stashed[-1][0] == 1746


def test_spinup_cap_falls_back_to_start_date():
    model = DecayModel(c0=100.0, k=0.001, target=0.0)
    core, solver = make_solver_core(model, do_spinup=True, start_date=1745, max_spinup=3)
    with pytest.warns(UserWarning, match="did not converge"):
        core.prepare_to_run()
    assert len(solver.spinup_residuals) == 3
    core.run(1746)
    assert solver.t == 1746


def test_tolerances_can_be_set():
    model = DecayModel()
    core, solver = make_solver_core(model)
    core.set_data(solver.name, "eps_spinup", MessageData(value="0.01 Pg"))
    core.set_data(solver.name, "dt", MessageData(value=0.1))
    assert solver.eps_spinup == pytest.approx(0.01)
    assert solver.dt == 0.1
    assert solver.get_data("eps_spinup").magnitude == pytest.approx(0.01)


def test_reset_sets_time():
    model = DecayModel()
    core, solver = make_solver_core(model)
    core.prepare_to_run()
    core.run(5)
    solver.reset(2)
    assert solver.t == 2
