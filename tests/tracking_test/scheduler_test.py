from healthease.tracking.scheduler import AnimationScheduler


class FakeClock:
    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now


def test_idle_scheduler_does_nothing():
    calls = []
    sched = AnimationScheduler(lambda dt: calls.append(dt) or True)
    assert not sched.tick()
    assert not sched.step(0.1)
    assert calls == []


def test_first_tick_has_zero_dt():
    calls = []
    clock = FakeClock()
    sched = AnimationScheduler(lambda dt: calls.append(dt) or True, clock=clock)
    sched.ensure_running()
    sched.tick()
    clock.now += 0.25
    sched.tick()
    assert calls == [0.0, 0.25]


def test_ensure_running_is_idempotent():
    calls = []
    clock = FakeClock()
    sched = AnimationScheduler(lambda dt: calls.append(dt) or True, clock=clock)
    sched.ensure_running()
    sched.tick()
    clock.now += 0.5
    sched.ensure_running()
    sched.tick()
    # a second ensure_running must not reset the delta
    assert calls == [0.0, 0.5]


def test_stops_when_frame_reports_idle():
    remaining = [3]

    def frame(dt):
        remaining[0] -= 1
        return remaining[0] > 0

    sched = AnimationScheduler(frame)
    sched.ensure_running()
    results = [sched.step(0.1) for _ in range(5)]
    assert results == [True, True, False, False, False]
    assert sched.frame_count == 3
    assert not sched.is_running


def test_run_loop_until_idle():
    clock = FakeClock()
    remaining = [4]

    def frame(dt):
        remaining[0] -= 1
        return remaining[0] > 0

    def sleep(seconds):
        clock.now += seconds

    sched = AnimationScheduler(frame, clock=clock)
    sched.ensure_running()
    assert sched.run(sleep=sleep) == 4
    assert not sched.is_running


def test_run_respects_time_limit():
    clock = FakeClock()

    def sleep(seconds):
        clock.now += seconds

    sched = AnimationScheduler(lambda dt: True, clock=clock)
    sched.ensure_running()
    frames = sched.run(max_seconds=1.0, sleep=sleep)
    assert 29 <= frames <= 32
    assert sched.is_running
