from .export import decode_png, encode_png, to_frame_tensor

__all__ = ["decode_png", "encode_png", "to_frame_tensor"]
