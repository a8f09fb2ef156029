"""klex_core.io -- raster codec (Pillow)."""

from klex_core.io.codec import decode_rgba, encode

__all__ = ["decode_rgba", "encode"]
