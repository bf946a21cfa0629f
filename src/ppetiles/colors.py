"""Colour ramp for PPE values.

Low PPE (good street quality) is green, the colour moves through yellow
to red as the value rises past the first breakpoint and turns towards
blue above the second one.
"""
import math

FIRST_STEP = 0.6
SECOND_STEP = 2.0
THIRD_STEP = 4.0

ALPHA = 0.9
ALPHA_8BIT = math.floor(ALPHA * 255)


def ramp(ppe):
    """Channel fractions for a PPE value.

    Parameters
    ----------
    ppe : float
        PPE value, expected in [0, 10].

    Returns
    -------
    tuple of float
        ``(red, green, blue, light)`` where the colour channels are in
        [0, 1] and `light` is the maximum green intensity (127 to 255).
    """
    red = green = blue = 0.0
    light = 255.0
    if ppe <= FIRST_STEP:
        red = ppe / FIRST_STEP
        green = 1.0
        light = 127 + 128 * (ppe / FIRST_STEP)
    elif ppe < SECOND_STEP:
        pitch = SECOND_STEP - FIRST_STEP
        red = 1.0
        green = (SECOND_STEP - ppe) / pitch
    else:
        # Also covers ppe >= THIRD_STEP, where blue saturates.
        pitch = THIRD_STEP - SECOND_STEP
        red = 1.0
        blue = min(1.0, max(0.0, (ppe - pitch) / pitch))
    return red, green, blue, light


def ppe_to_rgb(ppe):
    """8-bit ``(R, G, B)`` for a PPE value."""
    red, green, blue, light = ramp(ppe)
    return (math.floor(red * 255),
            math.floor(green * light),
            math.floor(blue * 255))


def ppe_to_rgba(ppe):
    """``(R, G, B, alpha)`` with the fixed alpha as a fraction."""
    return ppe_to_rgb(ppe) + (ALPHA,)


def ppe_to_fill(ppe):
    """``(R, G, B, A)`` with 8-bit alpha, usable as a Pillow fill."""
    return ppe_to_rgb(ppe) + (ALPHA_8BIT,)


def css_color(ppe):
    """CSS ``rgba()`` string for a PPE value, e.g. for map legends."""
    r, g, b, a = ppe_to_rgba(ppe)
    return f"rgba({r}, {g}, {b}, {a})"


def legend(values=(0.0, FIRST_STEP, 1.0, SECOND_STEP, 3.0, THIRD_STEP)):
    """List of ``(ppe, css_color)`` pairs describing the ramp."""
    return [(value, css_color(value)) for value in values]
