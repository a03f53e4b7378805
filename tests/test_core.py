"""Tests for the core: registries, ordering, routing and run control."""

import pytest
from conftest import CountingVisitor, DummyModelComponent, make_core

from ccbmtk import Core, CoreError, MessageData
from ccbmtk.names import M_DUMP_TO_DEEP_OCEAN, M_GETDATA, M_SETDATA


def test_registry_locked_after_init(dummy):
    core = make_core([dummy])
    with pytest.raises(CoreError):
        core.register_capability("x", dummy.name)
    with pytest.raises(CoreError):
        core.register_dependency("x", dummy.name)
    with pytest.raises(CoreError):
        core.register_input("x", dummy.name)
    with pytest.raises(CoreError):
        core.add_component(DummyModelComponent(name="late"))


def test_lookup_before_init_fails(dummy):
    core = Core(log_level="ERROR")
    core.add_component(dummy)
    with pytest.raises(CoreError):
        core.get_component_by_capability("dummyc")
    with pytest.raises(CoreError):
        core.send_message(M_GETDATA, "dummyc")


def test_duplicate_component_name():
    core = Core(log_level="ERROR")
    core.add_component(DummyModelComponent(name="a"))
    with pytest.raises(CoreError):
        core.add_component(DummyModelComponent(name="a"))


def test_duplicate_capability_warns():
    core = Core(log_level="ERROR")
    core.add_component(DummyModelComponent(name="a", capabilities=("x",)))
    core.add_component(DummyModelComponent(name="b", capabilities=("x",)))
    with pytest.warns(UserWarning, match="already provided"):
        core.init()
    assert core.check_capability("x") == "a"


def test_ordering_follows_dependencies():
    # register the dependent component first
    b = DummyModelComponent(name="b", capabilities=("bc",), dependencies=("zc",))
    z = DummyModelComponent(name="z", capabilities=("zc",))
    a = DummyModelComponent(name="a", capabilities=("ac",))
    core = make_core([b, z, a])
    core.prepare_to_run()
    assert core.order.index("z") < core.order.index("b")
    # ties are broken by name
    assert core.order == ["a", "z", "b"]


def test_cycle_fails():
    a = DummyModelComponent(name="a", capabilities=("ac",), dependencies=("bc",))
    b = DummyModelComponent(name="b", capabilities=("bc",), dependencies=("ac",))
    core = make_core([a, b])
    with pytest.raises(CoreError, match="cycle"):
        core.prepare_to_run()


def test_unresolved_dependency_is_not_fatal():
    a = DummyModelComponent(name="a", dependencies=("nobody-has-this",))
    core = make_core([a])
    with pytest.warns(UserWarning, match="nobody-has-this"):
        core.prepare_to_run()
    assert core.order == ["a"]


def test_get_routing(dummy):
    core = make_core([dummy], start_date=1745, end_date=1800)
    core.set_data(dummy.name, "slope", MessageData(value=2.0))
    core.prepare_to_run()
    core.run(1750)

    assert abs(core.send_message(M_GETDATA, "dummyc").magnitude - 10.0) < 1e-9
    q = core.send_message(M_GETDATA, "dummyc", MessageData(date=1747))
    assert abs(q.magnitude - 4.0) < 1e-9
    q = core.send_message(M_GETDATA, "dummy-component.slope")
    assert q.magnitude == 2.0
    assert core.send_message(M_GETDATA, "startDate").magnitude == 1745
    assert core.send_message(M_GETDATA, "core.endDate").magnitude == 1800


def test_set_fans_out_to_all_inputs():
    a = DummyModelComponent(name="a", capabilities=("ac",))
    b = DummyModelComponent(name="b", capabilities=("bc",))
    core = make_core([a, b])
    core.send_message(M_SETDATA, "slope", MessageData(value=3.0))
    assert a.slope == 3.0
    assert b.slope == 3.0

    core.send_message(M_SETDATA, "b.slope", MessageData(value=1.0))
    assert a.slope == 3.0
    assert b.slope == 1.0


@pytest.mark.parametrize(
    "message, datum",
    [
        ("no-such-message", "dummyc"),
        (M_GETDATA, "no-such-capability"),
        (M_SETDATA, "no-such-input"),
        (M_DUMP_TO_DEEP_OCEAN, "startDate"),
        (M_GETDATA, "no-such-component.dummyc"),
    ],
)
def test_unknown_messages_fail(dummy, message, datum):
    core = make_core([dummy])
    with pytest.raises(CoreError):
        core.send_message(message, datum, MessageData(value=1.0))


def test_set_data(dummy):
    core = make_core([dummy])
    core.set_data("core", "startDate", MessageData(value="1800"))
    core.set_data("core", "endDate", MessageData(value=1900))
    core.set_data("core", "do_spinup", MessageData(value="false"))
    assert core.get_start_date() == 1800
    assert core.get_end_date() == 1900
    assert core.do_spinup is False

    with pytest.raises(CoreError):
        core.set_data("core", "bogus", MessageData(value=1))
    with pytest.raises(CoreError):
        core.set_data("nobody", "slope", MessageData(value=1))


def test_disabled_component_is_removed():
    a = DummyModelComponent(name="a", capabilities=("ac",))
    b = DummyModelComponent(name="b", capabilities=("bc",))
    core = make_core([a, b])
    core.set_data("b", "enabled", MessageData(value=False))
    core.prepare_to_run()

    assert core.order == ["a"]
    assert b.was_shut_down
    with pytest.raises(CoreError):
        core.get_component_by_capability("bc")
    core.run(1750)
    assert b.runs == []


def test_output_flag(dummy):
    core = make_core([dummy])
    assert core.is_output_enabled(dummy.name)
    core.set_data(dummy.name, "output", MessageData(value="off"))
    assert not core.is_output_enabled(dummy.name)


def test_run_years_and_visits(dummy):
    core = make_core([dummy], start_date=1745, end_date=1760)
    visitor = CountingVisitor()
    core.add_visitor(visitor)
    core.prepare_to_run()
    core.run(1750)

    assert dummy.runs == [1746, 1747, 1748, 1749, 1750]
    # one initial visit at the start date, then one per year
    assert [d for _, d in visitor.visits] == [1745, 1746, 1747, 1748, 1749, 1750]
    assert not any(s for s, _ in visitor.visits)
    assert core.get_current_date() == 1750


def test_run_without_advance_warns(dummy):
    core = make_core([dummy], start_date=1745, end_date=1760)
    core.prepare_to_run()
    core.run(1750)
    with pytest.warns(UserWarning, match="does not advance"):
        core.run(1750)
    assert dummy.runs[-1] == 1750
    assert len(dummy.runs) == 5


def test_run_is_clamped_to_end_date(dummy):
    core = make_core([dummy], start_date=1745, end_date=1750)
    core.prepare_to_run()
    with pytest.warns(UserWarning, match="after the end date"):
        core.run(1900)
    assert dummy.runs[-1] == 1750


def test_negative_date_runs_to_end(dummy):
    core = make_core([dummy], start_date=1745, end_date=1748)
    core.run()  # prepares the core on the fly
    assert dummy.prepared == 1
    assert dummy.runs == [1746, 1747, 1748]


def test_spinup_until_converged():
    a = DummyModelComponent(name="a", capabilities=("ac",), spinup_steps_needed=3)
    b = DummyModelComponent(name="b", capabilities=("bc",), spinup_steps_needed=1)
    core = make_core([a, b], do_spinup=True)
    visitor = CountingVisitor()
    core.add_visitor(visitor)
    core.prepare_to_run()

    assert a.spinup_steps == [1, 2, 3]
    assert b.spinup_steps == [1, 2, 3]
    assert visitor.visits == [(True, 1), (True, 2), (True, 3)]
    assert not core.in_spinup()


def test_spinup_cap():
    a = DummyModelComponent(spinup_steps_needed=10_000)
    core = make_core([a], do_spinup=True, max_spinup=5)
    with pytest.warns(UserWarning, match="did not converge"):
        core.prepare_to_run()
    assert a.spinup_steps == [1, 2, 3, 4, 5]


def test_reset_and_rerun(dummy):
    core = make_core([dummy], start_date=1745, end_date=1800)
    core.set_data(dummy.name, "slope", MessageData(value=1.5))
    core.prepare_to_run()
    core.run(1760)
    v1760 = dummy.value

    core.reset(1750)
    assert core.last_date == 1750
    assert abs(dummy.value - 7.5) < 1e-9

    core.run(1760)
    assert abs(dummy.value - v1760) < 1e-9


def test_reset_before_start_reruns_spinup(dummy):
    core = make_core([dummy], do_spinup=True)
    core.prepare_to_run()
    core.run(1750)
    core.reset(1700)
    assert dummy.prepared == 2
    assert dummy.spinup_steps == [1, 1]
    assert core.last_date == core.get_start_date()


def test_reset_into_future_fails(dummy):
    core = make_core([dummy])
    core.prepare_to_run()
    core.run(1750)
    with pytest.raises(CoreError):
        core.reset(1760)


def test_shut_down(dummy):
    core = make_core([dummy])
    core.prepare_to_run()
    core.shut_down()
    assert dummy.was_shut_down
    with pytest.raises(CoreError):
        core.run(1750)
    with pytest.raises(CoreError):
        core.prepare_to_run()


def test_repr_shows_keywords():
    core = Core(name="hist", end_date=2100, log_level="ERROR")
    text = repr(core)
    assert text.startswith("Core(")
    assert "name = 'hist'" in text
    assert "end_date = 2100" in text
