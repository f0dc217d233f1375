import pytest

from alloc_sim.profile import Alloc
from alloc_sim.profilers import DotNetProfiler
from alloc_sim.profilers import GoProfiler
from alloc_sim.profilers import PROFILERS
from alloc_sim.profilers import PROFILER_NAMES
from alloc_sim.profilers import PerfectProfiler
from alloc_sim.profilers import make_profiler_factories
from alloc_sim.profilers import make_rng
from alloc_sim.workloads import SequentialWorkload


def _feed(profiler, events):
    for stack, size in events:
        profiler.malloc(size, stack)
    return profiler.profile()


def test_perfect_profiler_is_exact():
    events = [("a", 8), ("b", 100), ("a", 24), ("c", 1), ("b", 3), ("a", 8)]

    prof = _feed(PerfectProfiler(), events)

    assert prof == {
        "a": Alloc(objects=3, bytes=40),
        "b": Alloc(objects=2, bytes=103),
        "c": Alloc(objects=1, bytes=1),
    }


def test_empty_profile():
    assert len(PerfectProfiler().profile()) == 0
    assert len(DotNetProfiler(rate=1024).profile()) == 0
    assert len(GoProfiler(make_rng(1), rate=1024).profile()) == 0


def test_dotnet_first_allocation_is_sampled():
    prof = _feed(DotNetProfiler(scale=False, rate=1024), [("small", 1)])
    assert prof == {"small": Alloc(1, 1)}


def test_dotnet_unscaled_matches_example():
    # 1000 x 16 then 1000 x 128 bytes with one sample per 1024 bytes
    profiler = DotNetProfiler(scale=False, rate=1024)
    SequentialWorkload(16, 128).run(1000, profiler)

    prof = profiler.profile()

    assert prof["small"] == Alloc(objects=16, bytes=256)
    assert prof["big"] == Alloc(objects=125, bytes=16000)


@pytest.mark.parametrize("size, count", [(16, 1000), (128, 1000), (256, 777), (1024, 50)])
def test_dotnet_sample_count_follows_bytes(size, count):
    # sizes dividing the rate; remainders are dropped when the countdown resets
    rate = 1024
    profiler = DotNetProfiler(scale=False, rate=rate)
    for _ in range(count):
        profiler.malloc(size, "site")

    samples = profiler.profile()["site"].objects

    assert abs(samples - (count * size) // rate) <= 1


def test_dotnet_scaled_approximates_truth():
    profiler = DotNetProfiler(scale=True, rate=1024)
    SequentialWorkload(16, 128).run(1000, profiler)

    prof = profiler.profile()

    assert prof["small"] == Alloc(objects=1024, bytes=16384)
    assert prof["big"] == Alloc(objects=1000, bytes=128000)


def test_dotnet_scale_clamped_for_big_objects():
    rate = 1024
    scaled = DotNetProfiler(scale=True, rate=rate)
    unscaled = DotNetProfiler(scale=False, rate=rate)
    for profiler in (scaled, unscaled):
        for _ in range(50):
            profiler.malloc(rate * 2, "big")

    assert scaled.scale_factor(rate * 2) == 1.0
    assert scaled.profile() == unscaled.profile() == {"big": Alloc(50, 50 * rate * 2)}


def test_go_profiler_deterministic_for_seed():
    def run(seed):
        profiler = GoProfiler(make_rng(seed), scale=False, rate=1024)
        SequentialWorkload(16, 128).run(5000, profiler)
        return profiler.profile()

    assert run(7) == run(7)


def test_go_first_allocation_is_sampled():
    prof = _feed(GoProfiler(make_rng(3), scale=False, rate=1024), [("small", 1)])
    assert prof == {"small": Alloc(1, 1)}


@pytest.mark.parametrize("profiler_cls", ["dotnet", "go"])
def test_scaled_estimate_recovers_constant_size_totals(profiler_cls):
    ops = 200_000
    rate = 1024
    if profiler_cls == "dotnet":
        profiler = DotNetProfiler(scale=True, rate=rate)
    else:
        profiler = GoProfiler(make_rng(12345), scale=True, rate=rate)
    workload = SequentialWorkload(64, 512)

    workload.run(ops, profiler)
    prof = profiler.profile()

    for stack, size in (("small", 64), ("big", 512)):
        got = prof[stack]
        assert got.objects == pytest.approx(ops, rel=0.05)
        assert got.bytes == pytest.approx(ops * size, rel=0.05)


def test_go_scale_factor():
    profiler = GoProfiler(make_rng(0), rate=1024)
    # tiny objects are rarely sampled, huge ones always
    assert profiler.scale_factor(1) == pytest.approx(1024.5, rel=1e-3)
    assert profiler.scale_factor(1024 * 50) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "make_profiler",
    [
        lambda: PerfectProfiler(),
        lambda: DotNetProfiler(rate=64),
        lambda: GoProfiler(make_rng(5), rate=64),
    ],
)
def test_profile_is_idempotent_snapshot(make_profiler):
    profiler = make_profiler()
    for _ in range(100):
        profiler.malloc(32, "a")

    first = profiler.profile()
    second = profiler.profile()
    for _ in range(100):
        profiler.malloc(32, "a")
    third = profiler.profile()

    assert first == second
    assert third["a"].bytes > first["a"].bytes
    with pytest.raises(TypeError):
        first.add("a", Alloc(1, 1))


@pytest.mark.parametrize("rate", [0, -5, 1.5, True])
def test_invalid_rate(rate):
    with pytest.raises(ValueError):
        DotNetProfiler(rate=rate)
    with pytest.raises(ValueError):
        GoProfiler(make_rng(0), rate=rate)


def test_profiler_factories_fresh_instances_and_order():
    factories = make_profiler_factories(["go", "dotnet"], rate=1024, seed=1)

    names = [f().name() for f in factories]
    assert names == ["perfect", "dotnet", "go"]
    assert factories[1]() is not factories[1]()


def test_profiler_factories_reject_unknown():
    with pytest.raises(ValueError, match="unknown profiler"):
        make_profiler_factories(["jemalloc"])


def test_make_rng_accepts_negative_seed():
    assert make_rng(-1).random() == make_rng(-1).random()


def test_profiler_registry():
    assert PROFILER_NAMES == ["perfect", "dotnet", "go"]
    for name, cls in PROFILERS.items():
        profiler = cls.from_config(scale=True, rate=1024, seed=0)
        assert isinstance(profiler, cls)
        assert profiler.name() == name


@pytest.mark.parametrize(
    "make_profiler",
    [
        lambda: DotNetProfiler(scale=True, rate=1024),
        lambda: GoProfiler(make_rng(2), scale=True, rate=1024),
    ],
)
def test_zero_byte_samples_are_not_scaled(make_profiler):
    profiler = make_profiler()
    profiler.malloc(0, "empty")

    assert profiler.scale_factor(0) == 1.0
    assert profiler.profile() == {"empty": Alloc(1, 0)}
