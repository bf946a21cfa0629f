"""Tests for the ppetiles.colors module."""

import pytest

from ppetiles import colors


class TestRamp:
    """Tests for the ramp function."""

    def test_zero_is_green(self):
        """PPE 0 should be full green at half light."""
        red, green, blue, light = colors.ramp(0)
        assert (red, green, blue) == (0, 1, 0)
        assert light == 127

    def test_first_step(self):
        """PPE 0.6 should be yellow at full light."""
        red, green, blue, light = colors.ramp(0.6)
        assert (red, green, blue, light) == (1, 1, 0, 255)

    def test_between_first_and_second_step(self):
        """Green should fade linearly between 0.6 and 2."""
        red, green, blue, _ = colors.ramp(1.3)
        assert red == 1
        assert green == pytest.approx(0.5)
        assert blue == 0

    def test_four_is_red_and_blue(self):
        """PPE 4 should be red 1, green 0 and blue 1."""
        red, green, blue, _ = colors.ramp(4)
        assert red == 1
        assert green == 0
        assert blue == 1

    def test_blue_saturates_above_third_step(self):
        """Blue should stay at 1 above the third step."""
        assert colors.ramp(7.5)[:3] == (1, 0, 1)
        assert colors.ramp(10)[:3] == (1, 0, 1)

    def test_blue_clamped_at_second_step(self):
        """Blue is clamped to zero where the formula would go negative."""
        assert colors.ramp(2)[:3] == (1, 0, 0)


class TestRGBA:
    """Tests for the 8-bit colour helpers."""

    def test_continuous_at_first_step(self):
        """Crossing 0.6 should change at most one channel, and only slightly."""
        before = colors.ppe_to_rgb(0.6)
        after = colors.ppe_to_rgb(0.6 + 1e-6)
        changed = [abs(a - b) for a, b in zip(before, after) if a != b]
        assert len(changed) <= 1
        assert all(delta <= 1 for delta in changed)

    def test_known_colours(self):
        """Sample values should map to their 8-bit colours."""
        assert colors.ppe_to_rgba(0) == (0, 127, 0, 0.9)
        assert colors.ppe_to_rgba(1.5) == (255, 91, 0, 0.9)
        assert colors.ppe_to_rgba(3.2) == (255, 0, 153, 0.9)
        assert colors.ppe_to_rgba(4) == (255, 0, 255, 0.9)

    def test_fill_alpha(self):
        """The Pillow fill should carry alpha 229."""
        assert colors.ALPHA_8BIT == 229
        assert colors.ppe_to_fill(0.3) == (127, 191, 0, 229)

    def test_css_color(self):
        """css_color should format an rgba() string."""
        assert colors.css_color(1.5) == "rgba(255, 91, 0, 0.9)"

    def test_legend(self):
        """The legend should start at green and be sorted by value."""
        legend = colors.legend()
        assert legend[0] == (0.0, "rgba(0, 127, 0, 0.9)")
        assert [value for value, _ in legend] == sorted(value for value, _ in legend)
