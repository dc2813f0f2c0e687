import pytest

from science_labs import tomato
from science_labs.errors import InvalidParameterError
from science_labs.tomato import Stage, TomatoParams, simulate_tomato, stage_from_gdd, update_fruit_count


def _params(**overrides):
    values = dict(avg_temp_c=24.0, soil_moisture_pct=60.0, sunlight_hours=10.0, soil_n=60.0, pest_pressure=2.0)
    values.update(overrides)
    return TomatoParams(**values)


def test_stage_never_regresses_with_gdd():
    orders = [stage_from_gdd(g, True).order for g in range(0, 1600, 10)]
    assert orders == sorted(orders)
    assert stage_from_gdd(0.0, True) is Stage.GERMINATION
    assert stage_from_gdd(1300.0, True) is Stage.RIPENING


def test_ungerminated_is_seed():
    assert stage_from_gdd(900.0, False) is Stage.SEED


def test_series_covers_requested_days():
    series = simulate_tomato(_params(days=45))
    assert [s.day for s in series] == list(range(1, 46))


def test_height_and_stage_monotonic():
    series = simulate_tomato(_params(days=120))
    heights = [s.height_cm for s in series]
    stages = [s.stage.order for s in series]
    assert heights == sorted(heights)
    assert stages == sorted(stages)
    assert 0.0 < heights[-1] <= tomato.MAX_HEIGHT_CM


def test_fruit_count_bounded():
    for pest in (0.0, 5.0, 10.0):
        for s in simulate_tomato(_params(pest_pressure=pest, avg_temp_c=30.0, days=150)):
            assert 0 <= s.fruit_count <= tomato.FRUIT_CAP


def test_cold_environment_does_not_grow():
    series = simulate_tomato(_params(avg_temp_c=8.0))
    assert all(s.height_cm == 0.0 for s in series)
    assert all(s.gdd_cum == 0.0 for s in series)


def test_health_index_in_unit_interval():
    for s in simulate_tomato(_params(pest_pressure=10.0, soil_moisture_pct=0.0, days=5)):
        assert 0.0 <= s.health_index <= 1.0


def test_variety_factor_is_seeded():
    a = simulate_tomato(_params(random_seed=11))
    b = simulate_tomato(_params(random_seed=11))
    assert a == b


@pytest.mark.parametrize("overrides", [
    {"soil_moisture_pct": 120.0},
    {"pest_pressure": -1.0},
    {"sunlight_hours": 25.0},
    {"days": 0},
    {"days": float("nan")},
    {"days": 2.5},
    {"avg_temp_c": float("nan")},
])
def test_invalid_parameters_rejected(overrides):
    with pytest.raises(InvalidParameterError):
        _params(**overrides)


def test_trajectory_dataset_is_reproducible():
    a = tomato.generate_synthetic_dataset(4, seed=42, days=30)
    b = tomato.generate_synthetic_dataset(4, seed=42, days=30)
    assert a.equals(b)
    assert len(a) == 4 * 30
    assert list(a.columns[:6]) == list(tomato.FEATURE_COLUMNS)


def test_target_day_dataset_has_one_row_per_environment():
    df = tomato.generate_synthetic_dataset(10, seed=5, days=30, target_day=60)
    assert len(df) == 10
    assert (df["target_day"] == 60).all()
    for key, (low, high) in tomato.RANGES.items():
        assert df[key].between(low, high).all()


def test_features_default_to_simulated_days():
    params = _params(days=70)
    assert params.features()["target_day"] == 70
    assert params.features(target_day=12)["target_day"] == 12


def test_states_to_frame_uses_stage_names():
    frame = tomato.states_to_frame(simulate_tomato(_params(days=3)))
    assert len(frame) == 3
    assert set(frame["stage"]) <= {s.value for s in Stage}


def test_late_stage_fruit_rules_overlap():
    """Known quirk: additions and pest attrition both apply on the same day."""
    # add floor(0.8 * 20 * 0.3) = 4, then floor(14 * (1 - 5 * 0.02)) = 12
    assert update_fruit_count(10, Stage.FRUIT_DEVELOPMENT, True, 0.8, 20.0, 5.0) == 12
    # ripening adds only below 20 fruit, attrition still applies
    assert update_fruit_count(10, Stage.RIPENING, True, 1.0, 20.0, 5.0) == 12
    assert update_fruit_count(25, Stage.RIPENING, True, 1.0, 20.0, 5.0) == 22
    # pest pressure of 3 or less leaves additions untouched
    assert update_fruit_count(10, Stage.FRUIT_DEVELOPMENT, True, 0.8, 20.0, 3.0) == 14
    assert update_fruit_count(28, Stage.FRUIT_SET, True, 1.0, 20.0, 9.0) == tomato.FRUIT_CAP


def test_simulated_late_stages_apply_overlapping_fruit_rules():
    """Known quirk, on a hot simulated run with pest pressure above 3."""
    pest = 4.5
    series = simulate_tomato(
        _params(avg_temp_c=36.0, sunlight_hours=14.0, soil_n=100.0, pest_pressure=pest, days=90)
    )
    late = [
        (prev, state)
        for prev, state in zip(series, series[1:])
        if state.stage in (Stage.FRUIT_DEVELOPMENT, Stage.RIPENING)
    ]
    assert late
    assert any(prev.fruit_count > 0 for prev, _ in late)
    for prev, state in late:
        k = 0.3 if state.stage is Stage.FRUIT_DEVELOPMENT else 0.2
        added = prev.fruit_count
        if state.stage is Stage.FRUIT_DEVELOPMENT or prev.fruit_count < 20:
            added = min(tomato.FRUIT_CAP, prev.fruit_count + int(state.biomass * state.effective_gdd * k))
        assert state.fruit_count == int(added * (1 - pest * 0.02))


def test_dataset_seed_changes_rows():
    a = tomato.generate_synthetic_dataset(3, seed=1, days=10)
    b = tomato.generate_synthetic_dataset(3, seed=2, days=10)
    assert not a.equals(b)
