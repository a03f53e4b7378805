from ccbmtk import TimestepController


def test_jump_reduces_step_until_timeout():
    tc = TimestepController()
    assert not tc.update(1.0, 1.0, 0.0)
    assert tc.max_timestep == 1.0

    # flux jumps from 0 to 5 PgC/yr
    assert tc.update(2.0, 1.0, 5.0)
    assert tc.max_timestep == 0.5

    # 19 trigger free years keep the reduced step
    for year in range(3, 22):
        assert not tc.update(float(year), 1.0, 5.0)
        assert tc.max_timestep == 0.5

    # the 20th restores it
    tc.update(22.0, 1.0, 5.0)
    assert tc.max_timestep == 1.0
    assert tc.timeout == 0


def test_partial_years_do_not_count_down():
    tc = TimestepController()
    tc.update(1.0, 1.0, 5.0)
    timeout = tc.timeout
    assert tc.max_timestep == 0.5
    for t in (1.5, 2.0):
        tc.update(t, 0.5, 2.5)  # 5 PgC/yr
    assert tc.timeout == timeout - 1


def test_step_is_floored_and_grows_in_stages():
    tc = TimestepController(timeout=2)
    flux = 0.0
    for year in range(1, 5):
        flux += 1.0
        tc.update(float(year), 1.0, flux)
    assert tc.max_timestep == 0.3

    # first increase after the timeout, then another
    tc.update(5.0, 1.0, flux)
    tc.update(6.0, 1.0, flux)
    assert abs(tc.max_timestep - 0.6) < 1e-12
    assert tc.timeout == 2
    tc.update(7.0, 1.0, flux)
    tc.update(8.0, 1.0, flux)
    assert tc.max_timestep == 1.0


def test_new_year_and_snapshot():
    tc = TimestepController()
    tc.update(0.5, 0.5, 1.0)
    tc.update(1.0, 0.5, 1.0)
    assert tc.timesteps == 2
    snap = tc.snapshot()
    tc.new_year()
    assert tc.timesteps == 0

    tc.update(2.0, 1.0, 10.0)
    tc.restore(snap)
    assert tc.max_timestep == snap[0]
    assert tc.lastflux_annualized == snap[2]
