"""
matterbuild - a static site build pipeline.

matterbuild renders Jinja, Markdown, SCSS and CoffeeScript templates with
front matter written in YAML, JSON5, TOML, CSON or CoffeeScript, converts
images into resized rasters and .ico bundles, and ships a few small
maintenance scripts for site repositories.
"""

__version__ = "1.0.0"

from .formats import FormatEngine, FormatRegistry
from .options import FrontMatterOptions, normalize_front_matter_options
from .render import ParsedTemplate, TemplateRenderer
from .images import ImageTransform, transform_images

__all__ = [
    'FormatEngine',
    'FormatRegistry',
    'FrontMatterOptions',
    'normalize_front_matter_options',
    'ParsedTemplate',
    'TemplateRenderer',
    'ImageTransform',
    'transform_images',
]
