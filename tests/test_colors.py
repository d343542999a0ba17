import pytest

from keyhue.colors import (
    NEUTRAL,
    OklchColor,
    base_hue,
    dynamic_note_color,
    key_color,
    note_color,
)


def test_base_hues_are_evenly_spaced():
    assert base_hue("C") == 0.0
    assert base_hue("C#") == 30.0
    assert base_hue("A") == 270.0
    assert base_hue("B") == 330.0


def test_base_hue_accepts_flats_and_unknown_names():
    assert base_hue("Bb") == base_hue("A#")
    assert base_hue("X") == 0.0


def test_note_color():
    assert note_color("A") == OklchColor(0.74, 0.42, 270.0)
    assert note_color("N/A") == OklchColor(0.60, 0.15, 200.0)


def test_key_color_major_and_minor():
    assert key_color("C major") == OklchColor(0.76, 0.44, 0.0)
    assert key_color("A minor") == OklchColor(0.59, 0.32, 270.0)


def test_key_color_flat_and_sharp_spellings_match():
    assert key_color("Bb minor") == key_color("A# minor")
    assert key_color("Db major").hue == 30.0


def test_key_color_sentinels():
    assert key_color("Detecting...") is NEUTRAL
    assert key_color("N/A") is NEUTRAL


def test_key_color_is_pure():
    assert key_color(" F# major ") == key_color("F# major")
    assert key_color("F# major") == key_color("F# major")


def test_dynamic_note_color_at_rest_matches_note_color():
    color = dynamic_note_color("A", 0.0, 0.0, 0.0)
    assert color.lightness == pytest.approx(0.74)
    assert color.chroma == pytest.approx(0.42)
    assert color.hue == pytest.approx(270.0)


def test_dynamic_note_color_upper_extremes():
    color = dynamic_note_color("C", 100.0, 10_000.0, 500.0)
    assert color.hue == pytest.approx(6.5)
    assert color.lightness == pytest.approx(0.77)
    assert color.chroma == pytest.approx(0.45)


def test_dynamic_note_color_wraps_hue():
    color = dynamic_note_color("C", -100.0, -10_000.0, -500.0)
    assert color.hue == pytest.approx(353.5)
    assert color.lightness == pytest.approx(0.71)
    assert color.chroma == pytest.approx(0.39)


def test_dynamic_note_color_stays_in_bands():
    for values in [(-5.0, 300.0, 12.0), (30.0, -5000.0, -80.0), (3.0, 3.0, 3.0)]:
        color = dynamic_note_color("G#", *values)
        assert 0.70 <= color.lightness <= 0.78
        assert 0.38 <= color.chroma <= 0.46
        assert abs(color.hue - 240.0) <= 6.5


def test_dynamic_note_color_without_note():
    assert dynamic_note_color("N/A", 5.0, 5.0, 5.0) is NEUTRAL


def test_css_rendering():
    assert NEUTRAL.css() == "oklch(0.60 0.15 200)"
    assert note_color("F#").css() == "oklch(0.74 0.42 180)"
