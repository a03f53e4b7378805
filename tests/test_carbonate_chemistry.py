"""Carbonate chemistry of the surface boxes."""

import numpy as np
import pytest

from ccbmtk import (
    CarbonateChemistry,
    ChemistryError,
    InputError,
    KeywordError,
    MissingKeywordError,
    equilibrium_constants,
    get_hplus,
)
from ccbmtk.carbonate_chemistry import alkalinity_at_ph

# low latitude box geometry
LL_VOLUME = 3.6e14 * 0.85 * 100
LL_AREA = 3.6e14 * 0.85
HL_VOLUME = 3.6e14 * 0.15 * 100
HL_AREA = 3.6e14 * 0.15


def make_chem(name="LL", **kwargs):
    if name == "LL":
        return CarbonateChemistry(name=name, volume=LL_VOLUME, area=LL_AREA, **kwargs)
    return CarbonateChemistry(name=name, volume=HL_VOLUME, area=HL_AREA, **kwargs)


@pytest.mark.parametrize("tc", [-1.4, 5.0, 17.9, 25.0])
@pytest.mark.parametrize("dic", [1900e-6, 2050e-6, 2200e-6])
def test_round_trip(tc, dic):
    chem = make_chem()
    carbon = chem.dic_to_carbon(dic)
    chem.run(tc, carbon)

    # the speciation adds up to the DIC we put in
    assert abs(chem.co2st + chem.hco3 + chem.co3 - dic) < 1e-12
    assert abs(chem.dic_to_carbon(chem.co2st + chem.hco3 + chem.co3) - carbon) < 1e-6

    # and pH plus DIC reproduce the alkalinity
    ta = alkalinity_at_ph(chem.ph, chem.dic, chem.k1, chem.k2, chem.kb, chem.kw, chem.boron)
    assert abs(ta - chem.alkalinity) < 1e-10


def test_typical_surface_values():
    chem = make_chem()
    chem.run(17.9, chem.dic_to_carbon(2027e-6))
    assert 7.9 < chem.ph < 8.4
    assert 150 < chem.pco2 < 500
    assert 100e-6 < chem.co3 < 350e-6
    assert chem.omega_ca > chem.omega_ar > 1
    assert 5 < chem.revelle_factor() < 20
    assert chem.revelle_factor() == pytest.approx(chem.dic / chem.co3)
    assert chem.ph == pytest.approx(-np.log10(chem.h))
    assert chem.tr > 0


def test_constants_are_positive():
    k = equilibrium_constants(15.0, 35.0)
    assert all(v > 0 for v in k)
    k0, sc, kw, kh, k1, k2, kb, kspc, kspa, boron, calcium = k
    assert k1 > k2
    assert kspa > kspc
    assert abs(boron - 416e-6) < 1e-9


def test_get_hplus_matches_charge_balance():
    _, _, kw, _, k1, k2, kb, _, _, boron, _ = equilibrium_constants(10.0, 34.5)
    h = get_hplus(2000e-6, 2300e-6, k1, k2, kb, kw, boron)
    ta = alkalinity_at_ph(-np.log10(h), 2000e-6, k1, k2, kb, kw, boron)
    assert abs(ta - 2300e-6) < 1e-10


def test_get_hplus_without_root():
    _, _, kw, _, k1, k2, kb, _, _, boron, _ = equilibrium_constants(10.0, 34.5)
    with pytest.raises(ChemistryError):
        get_hplus(2000e-6, 1.0, k1, k2, kb, kw, boron)


def test_dic_out_of_range():
    chem = make_chem()
    with pytest.raises(ChemistryError):
        chem.run(15.0, chem.dic_to_carbon(4000e-6))
    with pytest.raises(ChemistryError):
        chem.run(15.0, chem.dic_to_carbon(500e-6))


def test_alkalinity_out_of_range():
    chem = make_chem(alkalinity=1500e-6)
    with pytest.raises(ChemistryError):
        chem.run(15.0, chem.dic_to_carbon(2000e-6))


def test_flux_direction():
    chem = make_chem()
    chem.run(17.9, chem.dic_to_carbon(2027e-6))
    assert chem.annual_surface_flux(chem.pco2 + 50) > 0
    assert chem.annual_surface_flux(chem.pco2 - 50) < 0
    assert abs(chem.annual_surface_flux(chem.pco2)) < 1e-12
    # a larger carbon pool raises the ocean pCO2
    assert chem.annual_surface_flux(chem.pco2, cpoolscale=1.01) < 0


@pytest.mark.parametrize("name, tc, target", [("HL", -1.4, 1.0), ("LL", 17.9, -1.0)])
def test_equilibrate_alkalinity(name, tc, target):
    chem = make_chem(name)
    carbon = chem.dic_to_carbon(2027e-6)
    alk = chem.equilibrate_alkalinity(tc, carbon, 277.15, target)
    assert 2100e-6 <= alk <= 2750e-6
    assert abs(chem.annual_surface_flux(277.15) - target) < 1e-6


def test_equilibrate_alkalinity_fails_outside_window():
    chem = make_chem("HL")
    with pytest.raises(ChemistryError):
        chem.equilibrate_alkalinity(-1.4, chem.dic_to_carbon(2027e-6), 277.15, 1000.0)


def test_keywords():
    with pytest.raises(MissingKeywordError):
        CarbonateChemistry(name="x", volume=1.0)
    with pytest.raises(KeywordError):
        CarbonateChemistry(name="x", volume=1.0, area=1.0, depth=100)
    with pytest.raises(InputError):
        CarbonateChemistry(name="x", volume=-1.0, area=1.0)
    with pytest.raises(InputError):
        CarbonateChemistry(name="x", volume=1.0, area=1.0, salinity="high")
