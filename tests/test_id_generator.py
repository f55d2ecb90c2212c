from event_analytics.services.id_generator import MonotonicIdGenerator, to_base36


class FakeClock:
    def __init__(self, *times):
        self.times = list(times)

    def __call__(self):
        return self.times.pop(0)


def test_to_base36_is_fixed_width():
    assert to_base36(0, 4) == "0000"
    assert to_base36(35, 4) == "000z"
    assert to_base36(36, 4) == "0010"


def test_ids_sort_in_generation_order_within_one_millisecond():
    generate = MonotonicIdGenerator(clock=FakeClock(*[1700000000.0] * 50))

    ids = [generate() for _ in range(50)]

    assert ids == sorted(ids)
    assert len(set(ids)) == 50


def test_clock_going_backwards_keeps_ids_increasing():
    generate = MonotonicIdGenerator(clock=FakeClock(1700000000.5, 1700000000.1, 1700000001.0))

    ids = [generate() for _ in range(3)]

    assert ids == sorted(ids)
    assert len(set(ids)) == 3
    assert all(len(i) == 13 for i in ids)
