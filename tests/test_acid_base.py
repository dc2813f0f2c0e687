import pytest

from science_labs import acid_base
from science_labs.acid_base import AcidBaseParams, Indicator, run_simulation
from science_labs.errors import InvalidParameterError
from science_labs.rng import Mulberry32


def test_litmus_neutral_is_even_blend():
    out = run_simulation(AcidBaseParams(Indicator.LITMUS, 7.0, 1.0))
    assert out.rgb == pytest.approx((127.5, 0.0, 127.5), abs=1.0)


def test_litmus_extremes_approach_pure_colors():
    acid = run_simulation(AcidBaseParams("litmus", 0.0))
    base = run_simulation(AcidBaseParams("litmus", 14.0))
    assert acid.rgb == (255.0, 0.0, 0.0)
    assert base.rgb == (0.0, 0.0, 255.0)


def test_litmus_fractions_limits():
    acid, base = acid_base.litmus_fractions(-1000.0)
    assert acid == pytest.approx(1.0) and base == pytest.approx(0.0)
    acid, base = acid_base.litmus_fractions(1000.0)
    assert acid == pytest.approx(0.0) and base == pytest.approx(1.0)
    acid, base = acid_base.litmus_fractions(7.0)
    assert acid == pytest.approx(0.5) and base == pytest.approx(0.5)


@pytest.mark.parametrize("ph,rgb", [(1.0, (255, 0, 0)), (4.0, (255, 128, 0)), (7.0, (0, 255, 0)),
                                    (10.0, (0, 0, 255)), (14.0, (128, 0, 128))])
def test_universal_anchor_exact(ph, rgb):
    assert acid_base.interpolate_universal_color(ph) == list(rgb)


def test_universal_interpolates_between_anchors():
    # halfway between pH 7 green and pH 10 blue
    assert acid_base.interpolate_universal_color(8.5) == [0, 128, 128]


def test_universal_clamps_below_table():
    assert acid_base.interpolate_universal_color(0.0) == [255, 0, 0]
    assert acid_base.interpolate_universal_color(0.5) == [255, 0, 0]


def test_noise_bounded_and_seeded():
    params = AcidBaseParams(Indicator.UNIVERSAL, 5.5)
    clean = run_simulation(params)
    a = run_simulation(params, rng=Mulberry32(1))
    b = run_simulation(params, rng=Mulberry32(1))
    assert a == b
    half_width = acid_base.CONFIG["noise_sigma"] * 255 / 2
    for noisy, ref in zip(a.rgb, clean.rgb):
        assert abs(noisy - ref) <= half_width
        assert 0.0 <= noisy <= 255.0


def test_noise_clamped_at_channel_limits():
    out = run_simulation(AcidBaseParams(Indicator.LITMUS, 0.0), rng=Mulberry32(5), noise_sigma=0.5)
    assert all(0.0 <= v <= 255.0 for v in out.rgb)


@pytest.mark.parametrize("kwargs", [
    {"indicator": "litmus", "ph": -0.1},
    {"indicator": "litmus", "ph": 14.5},
    {"indicator": "phenolphthalein", "ph": 7.0},
    {"indicator": "universal", "ph": 7.0, "path_length_cm": 0.0},
])
def test_invalid_parameters_rejected(kwargs):
    with pytest.raises(InvalidParameterError):
        AcidBaseParams(**kwargs)


def test_dataset_is_reproducible():
    a = acid_base.generate_synthetic_dataset(50, seed=42)
    b = acid_base.generate_synthetic_dataset(50, seed=42)
    assert a.equals(b)
    assert list(a.columns) == ["ph", "path_length_cm", "indicator", "r", "g", "b"]


def test_dataset_seed_changes_rows():
    a = acid_base.generate_synthetic_dataset(20, seed=1)
    b = acid_base.generate_synthetic_dataset(20, seed=2)
    assert not a.equals(b)


def test_dataset_values_in_range():
    df = acid_base.generate_synthetic_dataset(200, seed=3)
    assert len(df) == 200
    assert df["ph"].between(0, 14).all()
    assert df["path_length_cm"].between(0.5, 2.0).all()
    assert set(df["indicator"].unique()) <= {0, 1}
    assert df[["r", "g", "b"]].stack().between(0, 255).all()


def test_rgb_to_css():
    assert acid_base.rgb_to_css((127.5, 0, 254.6)) == "rgb(128, 0, 255)"


def test_indicator_codes_round_trip():
    for indicator in Indicator:
        assert Indicator.from_code(indicator.code) is indicator
