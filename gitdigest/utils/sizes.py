import math

SLIDER_MAX_POSITION = 500
SLIDER_MAX_KB = 102400  # 100 MB


def log_slider_to_size(position: int) -> int:
    """Slider position in [1, 500] -> max file size in KB, on a log curve."""
    position = min(max(position, 1), SLIDER_MAX_POSITION)
    max_value = math.log(SLIDER_MAX_KB)
    return round(math.exp(max_value * (position / SLIDER_MAX_POSITION) ** 1.5))


def format_size(size_kb: float) -> str:
    if size_kb >= 1024:
        return f"{round(size_kb / 1024)}MB"
    return f"{round(size_kb)}KB"
