"""Rendering: coordinate transform, text layout and the raster and preview backends."""
