"""
tests/test_config.py
Config validation, tolerance handling and fixed-step sizing.
"""
import pytest
import torch

from rkode import Config, ConfigError, available_methods


def test_defaults():
    conf = Config()
    assert conf.method == "dopri5"
    assert conf.atol == 1e-4 and conf.rtol == 1e-4
    assert conf.fnewt == pytest.approx(0.01)
    assert not conf.fixed
    assert not conf.has_output


def test_unknown_method_and_solver_kind():
    with pytest.raises(ConfigError):
        Config("dopri6")
    with pytest.raises(ConfigError):
        Config("radau5", ls_kind="mumps")


def test_available_methods():
    names = available_methods()
    for name in ("fweuler", "bweuler", "moeuler", "rk2", "rk3", "heun3", "rk4",
                 "rk4-3/8", "merson4", "zonneveld4", "fehlberg4", "dopri5",
                 "verner6", "fehlberg7", "dopri8", "radau5"):
        assert name in names


def test_radau5_tolerance_transform():
    conf = Config("radau5")
    conf.set_tolerances(1e-6, 1e-6)
    assert conf.atol_user == 1e-6 and conf.rtol_user == 1e-6
    assert conf.rtol == pytest.approx(1e-5, rel=1e-12)
    assert conf.atol == pytest.approx(1e-5, rel=1e-12)

    conf.set_tolerances(1e-8, 1e-6)
    assert conf.atol == pytest.approx(1e-7, rel=1e-12)


def test_explicit_tolerances_are_kept():
    conf = Config("dopri5")
    conf.set_tolerances(1e-8, 1e-6)
    assert conf.atol == 1e-8 and conf.rtol == 1e-6
    assert conf.fnewt == pytest.approx(1e-3)


def test_newton_tolerance_floor():
    conf = Config("bweuler")
    conf.set_tolerances(1e-14)
    assert conf.fnewt == pytest.approx(10.0 * conf.eps / 1e-14)
    conf.set_tolerances(1.0)
    assert conf.fnewt == 0.03


def test_per_component_tolerances():
    conf = Config("dopri5")
    conf.set_tolerances(torch.tensor([1e-6, 1e-8]), 1e-6)
    assert isinstance(conf.atol, torch.Tensor)
    assert conf.atol.dtype == torch.float64


def test_bad_tolerances():
    conf = Config()
    with pytest.raises(ConfigError):
        conf.set_tolerances(0.0)
    with pytest.raises(ConfigError):
        conf.set_tolerances(1e-4, -1.0)
    with pytest.raises(ConfigError):
        conf.set_tolerances(torch.tensor([1e-4, 0.0]))


def test_set_fixed_h():
    conf = Config("bweuler")
    conf.set_fixed_h(1.875 / 50.0, 1.5)
    assert conf.fixed
    assert conf.fixed_nsteps == 40
    assert conf.fixed_h == pytest.approx(0.0375)

    conf.set_fixed_h(0.3, 1.0)
    assert conf.fixed_nsteps == 4
    assert conf.fixed_h == 0.25

    conf.set_fixed_h(0.5, 3.0, x0=1.0)
    assert conf.fixed_nsteps == 4
    assert conf.fixed_h == 0.5

    with pytest.raises(ConfigError):
        conf.set_fixed_h(0.0, 1.0)
    with pytest.raises(ConfigError):
        conf.set_fixed_h(0.1, 0.0)


def test_output_flags():
    conf = Config()
    conf.set_step_out(False, step_f=lambda istep, h, x, y: None)
    assert conf.step_out and not conf.step_save
    conf.set_dense_out(True, 0.1, 1.0)
    assert conf.dense_out and conf.dense_save
    assert conf.has_output
    with pytest.raises(ConfigError):
        conf.set_dense_out(True, 0.0, 1.0)
