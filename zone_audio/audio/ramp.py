"""
Pure volume helpers.

These functions hold no playback state so they can be exercised without an
audio device. The mixer calls them once per track per tick.
"""


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """
    Clamp a value into the closed range [low, high].
    """
    return max(low, min(high, float(value)))


def ramp_volume(current: float, target: float, rate: float, dt: float, ceiling: float = 1.0) -> float:
    """
    Move `current` toward `target` by at most `rate * dt`.

    The step never overshoots the target, and the result always stays inside
    [0, ceiling].

    Args:
        current (float): Volume applied on the previous tick
        target (float): Volume the track is heading for
        rate (float): Ramp speed in volume units per second
        dt (float): Elapsed seconds since the previous tick (negative is treated as 0)
        ceiling (float): Maximum volume of the track

    Returns:
        float: The new volume
    """
    step = max(0.0, rate) * max(0.0, dt)
    target = clamp(target, 0.0, ceiling)

    if current < target:
        current = min(current + step, target)
    elif current > target:
        current = max(current - step, target)

    return clamp(current, 0.0, ceiling)


def distance_gain(distance: float, inner_radius: float, outer_radius: float) -> float:
    """
    Linear loudness falloff for a point sound source.

    Returns 1.0 within `inner_radius`, 0.0 at or beyond `outer_radius` and a
    linear blend in between.
    """
    if distance <= inner_radius:
        return 1.0
    if distance >= outer_radius:
        return 0.0
    return 1.0 - (distance - inner_radius) / (outer_radius - inner_radius)
