from .canvas import draw_hline, draw_vline, fill_rect, new_canvas, stroke_rect, validate_rgba
from .draw_markers import draw_markers
from .resize import fit_to_size

__all__ = [
    "draw_hline",
    "draw_markers",
    "draw_vline",
    "fill_rect",
    "fit_to_size",
    "new_canvas",
    "stroke_rect",
    "validate_rgba",
]
