import pytest

from multitask_ik.core.base_multirate_loop import BaseMultiRateControlLoop


class CountingLoop(BaseMultiRateControlLoop):
    def __init__(self, frequencies=None):
        super().__init__(
            base_frequency_hz=100.0,
            task_frequencies_hz=frequencies or {'controller': 100.0, 'slow': 30.0},
            realtime=False,
        )
        self.times = []
        self.cleaned_up = False

    def initialize(self):
        return True

    def cleanup(self):
        self.cleaned_up = True

    def loop_iteration(self, elapsed):
        self.execute_task('controller', elapsed)
        self.execute_task('slow')

    def controller_tick(self, elapsed):
        self.times.append(elapsed)

    def slow_tick(self):
        if len(self.times) >= 50:
            self.stop()


def test_decimation_is_rounded():
    loop = CountingLoop()
    assert loop.task_decimations == {'controller': 1, 'slow': 3}
    assert loop.task_period('slow') == pytest.approx(0.03)


def test_tasks_run_at_their_decimated_rate():
    loop = CountingLoop()
    assert loop.run(duration_s=0.2)

    n = loop.iteration_counter
    assert loop.task_counters['controller'] == n
    assert loop.task_counters['slow'] == -(-n // 3)
    assert loop.cleaned_up


def test_loop_time_advances_by_base_period():
    loop = CountingLoop()
    loop.run(duration_s=0.05)
    assert loop.times[:3] == pytest.approx([0.0, 0.01, 0.02])


def test_stop_ends_run():
    loop = CountingLoop()
    assert loop.run(duration_s=None)
    assert 50 <= len(loop.times) <= 53


@pytest.mark.parametrize("frequencies", [{'controller': 0.0}, {'controller': 200.0}])
def test_invalid_task_frequency(frequencies):
    with pytest.raises(ValueError):
        CountingLoop(frequencies)


def test_unknown_task():
    loop = CountingLoop()
    with pytest.raises(ValueError):
        loop.execute_task('planner')
