import logging

import numpy as np
import pytest

from keyhue.constants import MAJOR_PROFILE, MINOR_PROFILE
from keyhue.histogram import PitchClassAccumulator
from keyhue.key_estimation import (
    Key,
    KeyStabilityTracker,
    KeyStatus,
    Mode,
    StabilityState,
    best_key,
    estimate_key,
    key_correlations,
    key_label,
    pearson_correlation,
    rotated_profile,
)
from keyhue.pitch import PitchClass


def test_pearson_correlation_basic() -> None:
    a = np.array([1.0, 2.0, 3.0, 4.0])
    assert pearson_correlation(a, a) == pytest.approx(1.0)
    assert pearson_correlation(a, -a) == pytest.approx(-1.0)


def test_pearson_correlation_zero_variance() -> None:
    assert pearson_correlation(np.full(12, 1 / 12), np.arange(12.0)) == 0.0
    assert pearson_correlation(np.zeros(12), np.zeros(12)) == 0.0


def test_rotated_profile_places_tonic_weight() -> None:
    rotated = rotated_profile(MAJOR_PROFILE, PitchClass.A)
    assert int(np.argmax(rotated)) == PitchClass.A
    assert rotated.sum() == pytest.approx(1.0)


def test_key_correlations_order() -> None:
    keys = [key for key, _ in key_correlations(np.full(12, 1 / 12))]
    assert len(keys) == 24
    assert keys[0] == Key(PitchClass.C, Mode.MAJOR)
    assert keys[1] == Key(PitchClass.C, Mode.MINOR)
    assert keys[-1] == Key(PitchClass.B, Mode.MINOR)


def test_best_key_recovers_major_profile() -> None:
    histogram = rotated_profile(MAJOR_PROFILE, PitchClass.G)
    key, correlation, second = best_key(histogram)
    assert key == Key(PitchClass.G, Mode.MAJOR)
    assert correlation == pytest.approx(1.0)
    assert second < correlation


def test_best_key_recovers_minor_profile() -> None:
    histogram = rotated_profile(MINOR_PROFILE, PitchClass.D)
    key, correlation, _ = best_key(histogram)
    assert key == Key(PitchClass.D, Mode.MINOR)
    assert correlation == pytest.approx(1.0)


def test_best_key_single_pitch_class() -> None:
    histogram = np.zeros(12)
    histogram[PitchClass.A] = 1.0
    key, correlation, second = best_key(histogram)
    assert key.tonic is PitchClass.A
    assert correlation > 0.15
    # A major and A minor are nearly indistinguishable on one note
    assert correlation - second < 0.01


def test_best_key_ties_keep_first_candidate() -> None:
    key, correlation, second = best_key(np.full(12, 1 / 12))
    assert key == Key(PitchClass.C, Mode.MAJOR)
    assert correlation == 0.0
    assert second == 0.0


def test_key_labels() -> None:
    assert Key(PitchClass.A, Mode.MINOR).label == "A minor"
    assert Key(PitchClass.A_SHARP, Mode.MINOR).label == "Bb minor"
    assert Key(PitchClass.A_SHARP, Mode.MAJOR).label == "A# major"
    assert Key(PitchClass.F_SHARP, Mode.MINOR).label == "Gb minor"
    assert key_label(KeyStatus.DETECTING) == "Detecting..."
    assert key_label(KeyStatus.UNDETERMINED) == "N/A"


def test_tracker_commits_after_three_frames() -> None:
    tracker = KeyStabilityTracker()
    a_major = Key(PitchClass.A, Mode.MAJOR)
    assert tracker.state is StabilityState.NO_EVIDENCE
    assert tracker.observe(a_major, 0.7, 0.6) == (KeyStatus.DETECTING, 0.7)
    assert tracker.state is StabilityState.TENTATIVE
    assert tracker.observe(a_major, 0.7, 0.6) == (KeyStatus.DETECTING, 0.7)
    assert tracker.observe(a_major, 0.7, 0.6) == (a_major, 0.7)
    assert tracker.state is StabilityState.COMMITTED
    # further agreement keeps reporting the commit-time confidence
    assert tracker.observe(a_major, 0.9, 0.2) == (a_major, 0.7)
    assert tracker.counter == 4


def test_tracker_key_change_needs_separation() -> None:
    tracker = KeyStabilityTracker()
    a_major = Key(PitchClass.A, Mode.MAJOR)
    e_major = Key(PitchClass.E, Mode.MAJOR)
    for _ in range(3):
        tracker.observe(a_major, 0.7, 0.6)

    estimate, confidence = tracker.observe(e_major, 0.8, 0.75)
    assert estimate is KeyStatus.DETECTING
    assert confidence == pytest.approx(0.8)
    assert tracker.counter == 0
    assert tracker.committed == a_major


def test_tracker_key_change_needs_three_qualifying_frames() -> None:
    tracker = KeyStabilityTracker()
    a_major = Key(PitchClass.A, Mode.MAJOR)
    e_major = Key(PitchClass.E, Mode.MAJOR)
    for _ in range(3):
        tracker.observe(a_major, 0.7, 0.6)

    assert tracker.observe(e_major, 0.8, 0.5)[0] is KeyStatus.DETECTING
    assert tracker.observe(e_major, 0.8, 0.5)[0] is KeyStatus.DETECTING
    assert tracker.committed == a_major
    assert tracker.observe(e_major, 0.8, 0.5) == (e_major, 0.8)
    assert tracker.committed == e_major


def test_tracker_interrupted_candidate_starts_over() -> None:
    tracker = KeyStabilityTracker()
    a_major = Key(PitchClass.A, Mode.MAJOR)
    d_minor = Key(PitchClass.D, Mode.MINOR)
    tracker.observe(a_major, 0.7, 0.5)
    tracker.observe(a_major, 0.7, 0.5)
    tracker.observe(d_minor, 0.7, 0.5)
    assert tracker.candidate == d_minor
    assert tracker.counter == 1
    assert tracker.committed is None


def test_tracker_weak_correlation_clears_counter() -> None:
    tracker = KeyStabilityTracker()
    a_major = Key(PitchClass.A, Mode.MAJOR)
    for _ in range(3):
        tracker.observe(a_major, 0.7, 0.6)
    assert tracker.observe(a_major, 0.1, 0.0) == (KeyStatus.DETECTING, 0.1)
    assert tracker.counter == 0
    assert tracker.committed == a_major
    # the committed key needs three agreeing frames to be reported again
    tracker.observe(a_major, 0.7, 0.6)
    tracker.observe(a_major, 0.7, 0.6)
    assert tracker.observe(a_major, 0.7, 0.6) == (a_major, 0.7)


def test_tracker_low_confidence_never_commits() -> None:
    tracker = KeyStabilityTracker()
    c_major = Key(PitchClass.C, Mode.MAJOR)
    for _ in range(10):
        estimate, confidence = tracker.observe(c_major, 0.25, 0.0)
    assert estimate is KeyStatus.DETECTING
    assert confidence == pytest.approx(0.25)
    assert tracker.state is StabilityState.NO_EVIDENCE


def test_tracker_logs_commit(caplog: pytest.LogCaptureFixture) -> None:
    tracker = KeyStabilityTracker()
    g_minor = Key(PitchClass.G, Mode.MINOR)
    with caplog.at_level(logging.INFO, logger="keyhue.key_estimation"):
        for _ in range(3):
            tracker.observe(g_minor, 0.6, 0.3)
    assert "G minor" in caplog.text


def test_tracker_reset() -> None:
    tracker = KeyStabilityTracker()
    a_major = Key(PitchClass.A, Mode.MAJOR)
    for _ in range(3):
        tracker.observe(a_major, 0.7, 0.6)
    tracker.reset()
    assert tracker.committed is None
    assert tracker.counter == 0
    assert tracker.state is StabilityState.NO_EVIDENCE


def test_estimate_key_needs_five_detections() -> None:
    acc = PitchClassAccumulator()
    tracker = KeyStabilityTracker()
    for _ in range(4):
        acc.update(PitchClass.A, 1.0)
    assert estimate_key(acc, tracker) == (KeyStatus.DETECTING, 0.0)
    assert tracker.counter == 0


def test_estimate_key_needs_histogram_mass() -> None:
    acc = PitchClassAccumulator()
    for _ in range(5):
        acc.update(PitchClass.A, 0.0)
    assert estimate_key(acc, KeyStabilityTracker()) == (KeyStatus.UNDETERMINED, 0.0)


def test_estimate_key_reports_stable_key() -> None:
    acc = PitchClassAccumulator(decay=1.0)
    tracker = KeyStabilityTracker()
    profile = rotated_profile(MAJOR_PROFILE, PitchClass.D)
    results = []
    for _ in range(3):
        for pitch_class in PitchClass:
            acc.update(pitch_class, float(profile[pitch_class]))
        results.append(estimate_key(acc, tracker))
    estimate, confidence = results[-1]
    assert estimate == Key(PitchClass.D, Mode.MAJOR)
    assert confidence > 0.3
