import threading

from molweight.core.progress import CancellationToken, ProgressTracker


class ProgressRecorder:
    def __init__(self):
        self.updates: list[tuple[float, str]] = list()

    def __call__(self, percent: float, description: str) -> None:
        self.updates.append((percent, description))


class TestCancellationToken:
    def test_token_is_not_cancelled_on_creation(self):
        assert not CancellationToken().cancelled

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.cancelled

    def test_reset(self):
        token = CancellationToken()
        token.cancel()
        token.reset()
        assert not token.cancelled

    def test_cancel_from_another_thread(self):
        token = CancellationToken()
        thread = threading.Thread(target=token.cancel)
        thread.start()
        thread.join()
        assert token.cancelled


class TestProgressTracker:
    def test_start_and_finish_are_reported(self):
        recorder = ProgressRecorder()
        tracker = ProgressTracker(recorder, "stage", 10)
        tracker.finish()
        assert recorder.updates[0] == (0.0, "stage")
        assert recorder.updates[-1] == (100.0, "stage")

    def test_advance_reports_percent(self):
        recorder = ProgressRecorder()
        tracker = ProgressTracker(recorder, "stage", 4)
        tracker.advance()
        assert recorder.updates[-1] == (25.0, "stage")

    def test_progress_is_reported_every_interval(self):
        recorder = ProgressRecorder()
        tracker = ProgressTracker(recorder, "stage", 100, interval=10)
        for _ in range(100):
            tracker.advance()
        # initial report plus one report every 10 steps
        assert len(recorder.updates) == 11

    def test_percent_never_exceeds_100(self):
        recorder = ProgressRecorder()
        tracker = ProgressTracker(recorder, "stage", 2)
        for _ in range(5):
            tracker.advance()
        assert max(x for x, _ in recorder.updates) == 100.0

    def test_percent_is_non_decreasing(self):
        recorder = ProgressRecorder()
        tracker = ProgressTracker(recorder, "stage", 7, interval=2)
        for _ in range(7):
            tracker.advance()
        tracker.finish()
        percents = [x for x, _ in recorder.updates]
        assert percents == sorted(percents)

    def test_no_callback(self):
        tracker = ProgressTracker(None, "stage", 10)
        tracker.advance()
        tracker.finish()
        assert tracker.completed == 1
