"""
ImageMarkup - Draw strokes, rectangles and text labels on top of an image.

This package contains the main application modules:
- core: Application core and wiring
- ui: User interface components
- editor: Annotation model, tools, history and canvas
- services: Application services (config, logging)
"""

__version__ = "0.1.0"
