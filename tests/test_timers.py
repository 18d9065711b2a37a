from focus_mode.utils.timers import Scheduler


class Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_runs_due_callbacks_in_order():
    clock = Clock()
    scheduler = Scheduler(clock=clock)
    calls = []
    scheduler.schedule_in(10, lambda: calls.append("b"))
    scheduler.schedule_in(5, lambda: calls.append("a"))
    scheduler.schedule_in(10, lambda: calls.append("c"))

    assert scheduler.run_pending() == 0
    assert scheduler.next_delay() == 5

    clock.now += 10
    assert scheduler.run_pending() == 3
    assert calls == ["a", "b", "c"]
    assert scheduler.next_delay() is None


def test_cancelled_timer_never_fires():
    clock = Clock()
    scheduler = Scheduler(clock=clock)
    calls = []
    handle = scheduler.schedule_in(1, lambda: calls.append("x"))
    scheduler.schedule_in(2, lambda: calls.append("y"))

    scheduler.cancel(handle)
    scheduler.cancel(handle)
    assert not handle.active
    assert scheduler.pending() == 1

    clock.now += 5
    scheduler.run_pending()
    assert calls == ["y"]


def test_callback_errors_do_not_stop_the_queue():
    clock = Clock()
    scheduler = Scheduler(clock=clock)
    calls = []

    def boom():
        raise RuntimeError("boom")

    scheduler.schedule_in(1, boom)
    scheduler.schedule_in(1, lambda: calls.append("ok"))

    clock.now += 1
    assert scheduler.run_pending() == 2
    assert calls == ["ok"]


def test_callback_can_reschedule():
    clock = Clock()
    scheduler = Scheduler(clock=clock)
    calls = []

    def tick():
        calls.append(clock.now)
        scheduler.schedule_in(60, tick)

    scheduler.schedule_in(60, tick)
    for _ in range(3):
        clock.now += 60
        scheduler.run_pending()

    assert calls == [160.0, 220.0, 280.0]
    assert scheduler.pending() == 1
