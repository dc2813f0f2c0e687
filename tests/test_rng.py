from science_labs.rng import Mulberry32, mulberry32


def test_golden_sequence_seed_42():
    rng = Mulberry32(42)
    assert rng.take(5) == [
        0.6011037519201636,
        0.44829055899754167,
        0.8524657934904099,
        0.6697340414393693,
        0.17481389874592423,
    ]


def test_golden_sequence_seed_0():
    assert mulberry32(0).take(3) == [
        0.26642920868471265,
        0.0003297457005828619,
        0.2232720274478197,
    ]


def test_outputs_in_unit_interval():
    rng = Mulberry32(12345)
    values = rng.take(20000)
    assert all(0.0 <= v < 1.0 for v in values)


def test_different_seeds_differ():
    assert Mulberry32(1).take(5) != Mulberry32(2).take(5)


def test_reset_restarts_sequence():
    rng = Mulberry32(99)
    first = rng.take(4)
    rng.reset()
    assert rng.take(4) == first


def test_independent_instances_do_not_share_state():
    a = Mulberry32(7)
    a.take(10)
    b = Mulberry32(7)
    assert b.take(3) == Mulberry32(7).take(3)


def test_seed_wraps_to_32_bits():
    assert Mulberry32(2**32 + 5).take(3) == Mulberry32(5).take(3)


def test_uniform_range():
    rng = Mulberry32(3)
    for _ in range(1000):
        v = rng.uniform(0.5, 2.0)
        assert 0.5 <= v < 2.0


def test_stream_is_lazy_and_unbounded():
    stream = iter(Mulberry32(42))
    assert next(stream) == 0.6011037519201636
    assert next(stream) == 0.44829055899754167


def test_time_seeded_generator_is_usable():
    rng = Mulberry32.from_time()
    assert 0 <= rng.seed < 1_000_000_000
    assert 0.0 <= rng() < 1.0
