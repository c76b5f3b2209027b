"""
Exception types raised by matterbuild.

Every error raised on purpose by the package derives from MatterbuildError,
so a build-level caller can stop on any of them with a single except clause.
"""

import pprint


class MatterbuildError(Exception):
    """Base class for all matterbuild errors."""


class InvalidConfigurationShape(MatterbuildError, ValueError):
    """Raised when caller-supplied options have an unsupported shape."""

    def __init__(self, value, message='invalid options'):
        self.value = value
        super().__init__(f"{message}: {pprint.saferepr(value)}")


class InvalidArguments(MatterbuildError, TypeError):
    """Raised when the render function receives the wrong arity or types."""


class FrontMatterParseError(MatterbuildError):
    """Raised when front matter cannot be rendered or parsed."""


class TemplateRenderError(MatterbuildError):
    """Raised when a template body cannot be rendered."""


class ImageEncodingError(MatterbuildError):
    """Raised when an image cannot be decoded, resized or encoded."""

    def __init__(self, src, message):
        self.src = src
        super().__init__(f"Error building image from source: {src}: {message}")


class UnknownFormatError(MatterbuildError, KeyError):
    """Raised when a format or template language name is not registered."""

    def __str__(self):
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ''


class FormatError(MatterbuildError):
    """Raised when a notation engine cannot perform an operation."""


class CommitError(MatterbuildError):
    """Raised when the git commit helper fails."""
