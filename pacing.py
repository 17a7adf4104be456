"""Frame pacing for the front-end: steps per display frame and energy-history sampling."""
from collections import deque

BASE_FPS = 60
MIN_STEP_CAP = 60
MAX_CATCHUP_SECONDS = 0.5


class StepPacer:
    """
    Converts elapsed wall-clock time into a whole number of solver steps.

    The target rate is `multiplier * speed * base_fps` steps per second.
    Fractional steps carry over to the next frame. After a long pause the
    backlog is capped to half a second worth of steps (at least MIN_STEP_CAP)
    and the remainder is dropped.
    """

    def __init__(self, multiplier, speed=1.0, base_fps=BASE_FPS):
        self.multiplier = multiplier
        self.speed = speed
        self.base_fps = base_fps
        self.accumulator = 0.0

    @property
    def target_steps_per_sec(self):
        return self.multiplier * self.speed * self.base_fps

    @property
    def max_steps(self):
        return int(max(self.target_steps_per_sec * MAX_CATCHUP_SECONDS, MIN_STEP_CAP))

    def advance(self, elapsed_s):
        """Returns the number of steps to run for `elapsed_s` seconds of wall time."""
        if elapsed_s <= 0:
            return 0

        self.accumulator += elapsed_s * self.target_steps_per_sec
        steps = int(self.accumulator)

        if steps > self.max_steps:
            steps = self.max_steps
            self.accumulator = 0.0
        else:
            self.accumulator -= steps
        return steps

    def reset(self):
        self.accumulator = 0.0


HISTORY_INTERVAL_S = 0.2
HISTORY_MAX_SAMPLES = 50


class EnergyHistory:
    """
    Rolling record of (time, delta_energy) samples for the energy chart.

    A sample is taken at most every `interval` seconds of wall time, and only
    the newest `max_samples` are kept.
    """

    def __init__(self, interval=HISTORY_INTERVAL_S, max_samples=HISTORY_MAX_SAMPLES):
        self.interval = interval
        self.times = deque(maxlen=max_samples)
        self.deltas = deque(maxlen=max_samples)
        self.last_sample = None

    def __len__(self):
        return len(self.times)

    def record(self, now, stats):
        """Appends `stats` if `interval` has passed since the last sample. Returns True when it did."""
        if self.last_sample is not None and now - self.last_sample <= self.interval:
            return False
        self.last_sample = now
        self.times.append(stats.time)
        self.deltas.append(stats.delta_energy)
        return True

    def clear(self):
        self.times.clear()
        self.deltas.clear()
        self.last_sample = None
