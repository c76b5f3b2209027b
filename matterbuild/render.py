"""
Template rendering with front matter.

TemplateRenderer splits a template into front matter and body, renders the
front matter through the template engines so it may use template
expressions, parses it with the selected notation, merges the result into the
rendering data and finally renders the body.

The renderer accepts its optional arguments in any order::

    renderer(text)
    renderer(text, 'md')
    renderer(text, {'title': 'Hi'})
    renderer(text, {'title': 'Hi'}, {'delimiters': '~~~'}, 'njk,md')

At most one string (or ``False``) sets the template language, and up to two
mappings give the data and the front matter options, in that order.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from jinja2 import Environment, pass_context

from .engines import TemplateEngines
from .errors import (
    FrontMatterParseError,
    InvalidArguments,
    TemplateRenderError,
)
from .files import read_file_bom
from .formats import FormatRegistry, TEMPLATE_FORMAT_ALIASES
from .options import (
    FrontMatterOptions,
    canonical_language,
    normalize_template_defaults,
)

_PATTERN_CACHE = {}
_EXCERPT_CACHE = {}


def front_matter_pattern(open_delimiter, close_delimiter):
    """Compile the pattern splitting a template into front matter and body."""
    key = (open_delimiter, close_delimiter)
    if key not in _PATTERN_CACHE:
        _PATTERN_CACHE[key] = re.compile(
            r'(?P<block>' + re.escape(open_delimiter) + r'(?P<language>[^\-\r\n]\w*)?\r?\n'
            r'(?:(?P<matter>[\s\S]*?)?\r?\n)?'
            + re.escape(close_delimiter) + r'(?:\r?\n)?)?'
            r'(?P<content>[\s\S]*)\Z'
        )
    return _PATTERN_CACHE[key]


def excerpt_separator_pattern(separator):
    """Compile the pattern finding a line that holds only ``separator``."""
    if separator not in _EXCERPT_CACHE:
        _EXCERPT_CACHE[separator] = re.compile(r'^' + re.escape(separator) + r'[ \t\r]*$', re.M)
    return _EXCERPT_CACHE[separator]


@dataclass
class ParsedTemplate:
    """Every intermediate result of one render call."""

    input: str
    language: str = ''
    matter: str = ''
    content: str = ''
    matter_rendered: str = ''
    data: Dict[str, Any] = field(default_factory=dict)
    rendered: str = ''
    excerpt: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    has_front_matter: bool = False


def _is_language_arg(arg):
    return isinstance(arg, str) or arg is False


def _is_object_arg(arg):
    return arg is None or isinstance(arg, Mapping)


def split_arguments(args):
    """Sort the optional render arguments into (template_lang, data, options).

    ``template_lang`` is ``None`` when no language was given.
    """
    if len(args) > 3:
        raise InvalidArguments(f"too many arguments: expected at most 3, got {len(args)}")
    for arg in args:
        if not (_is_language_arg(arg) or _is_object_arg(arg)):
            raise InvalidArguments(f"invalid argument: {arg!r}")

    language_args = [arg for arg in args if _is_language_arg(arg)]
    if len(language_args) > 1:
        raise InvalidArguments(f"more than one template language given: {language_args!r}")
    template_lang = language_args[0] if language_args else None
    is_template_lang_set = bool(language_args)

    object_args = [arg for arg in args if _is_object_arg(arg)]
    if len(object_args) == 3:
        if not any(arg is None for arg in object_args):
            raise InvalidArguments("expected at most 2 mappings (data, options)")
        # A None in the language slot counts as an explicit empty language.
        object_args = [arg for arg in object_args if arg is not None]
        is_template_lang_set = True
    data = dict(object_args[0] or {}) if len(object_args) > 0 else {}
    options = dict(object_args[1] or {}) if len(object_args) > 1 else {}

    if 'template_lang' in options:
        if is_template_lang_set:
            raise InvalidArguments("template language given both as argument and option")
        value = options.pop('template_lang')
        if not _is_language_arg(value):
            raise InvalidArguments(f"invalid template_lang option: {value!r}")
        template_lang = value
    return template_lang, data, options


def set_alias(data, alias, value):
    """Store ``value`` under a dotted alias such as ``page.excerpt``.

    Intermediate mappings are copied, so mappings shared with the caller are
    never modified.
    """
    keys = alias.split('.')
    target = data
    for key in keys[:-1]:
        current = target.get(key)
        current = dict(current) if isinstance(current, Mapping) else {}
        target[key] = current
        target = current
    target[keys[-1]] = value


class TemplateRenderer:
    """Render template strings and files with front matter support."""

    def __init__(self, engines: Optional[TemplateEngines] = None, registry: Optional[FormatRegistry] = None,
                 front_matter: Any = None, template_defaults: Any = None,
                 default_data: Optional[Mapping[str, Any]] = None, access_global_data: bool = True,
                 root_path: Any = None, input_dir: Optional[str] = None):
        self.engines = engines or TemplateEngines()
        self.registry = registry or FormatRegistry.default()
        if default_data is not None and not isinstance(default_data, Mapping):
            raise InvalidArguments(f"invalid default data: {default_data!r}")
        self.default_data = dict(default_data or {})
        self.access_global_data = access_global_data
        self.root_path = root_path
        self.input_dir = input_dir
        defaults = normalize_template_defaults(template_defaults)
        self.default_template_lang = defaults.pop('template_lang', None)
        self.front_matter = FrontMatterOptions.resolve(defaults, front_matter)
        self.logger = logging.getLogger('Matterbuild.Render')

    def resolve_options(self, options: Mapping[str, Any]) -> FrontMatterOptions:
        return FrontMatterOptions.resolve(self.front_matter, options)

    def registry_for(self, options: FrontMatterOptions) -> FormatRegistry:
        if options.engines:
            return self.registry.copy(options.engines)
        return self.registry

    def __call__(self, input, *args, context: Optional[Mapping[str, Any]] = None) -> ParsedTemplate:
        if not isinstance(input, str):
            raise InvalidArguments(f"invalid input argument: {input!r}")
        template_lang, data, options = split_arguments(args)
        if template_lang is None:
            template_lang = self.default_template_lang
        data = {**self.default_data, **data}
        if self.access_global_data and context:
            data = {**context, **data}
        options = self.resolve_options(options)

        parsed = ParsedTemplate(input=input)
        match = front_matter_pattern(*options.delimiters).match(input)
        parsed.has_front_matter = match.group('block') is not None
        parsed.matter = match.group('matter') or ''
        parsed.content = match.group('content') or ''
        try:
            if match.group('language'):
                parsed.language = canonical_language(match.group('language'))
            else:
                parsed.language = options.language
            if parsed.has_front_matter:
                parsed.matter_rendered = self.engines.render_matter(parsed.matter, data, template_lang)
                parsed.data = self.registry_for(options).parse(parsed.matter_rendered, parsed.language)
                if not isinstance(parsed.data, Mapping):
                    raise TypeError(f"front matter must be a mapping, got {type(parsed.data).__name__}")
                parsed.data = dict(parsed.data)
                data.update(parsed.data)
        except Exception as err:
            raise FrontMatterParseError(f"cannot parse front matter of template: {err}") from err

        if options.excerpt:
            self.extract_excerpt(parsed, options, data)

        parsed.context = data
        try:
            parsed.rendered = self.engines.render(parsed.content, data, template_lang)
        except Exception as err:
            raise TemplateRenderError(f"cannot render template: {err}") from err
        return parsed

    def extract_excerpt(self, parsed: ParsedTemplate, options: FrontMatterOptions, data: Dict[str, Any]):
        """Extract the excerpt, best effort.

        A callable excerpt option is called with ``(parsed, options)`` and its
        return value is used; otherwise the excerpt is the body text up to the
        first line holding only the separator.
        """
        if callable(options.excerpt):
            excerpt = options.excerpt(parsed, options)
            if excerpt is None:
                excerpt = parsed.excerpt
        else:
            match = excerpt_separator_pattern(options.excerpt_separator).search(parsed.content)
            excerpt = parsed.content[:match.start()] if match else None
        if excerpt is None:
            return
        parsed.excerpt = excerpt
        set_alias(data, options.excerpt_alias, excerpt)

    def resolve_path(self, input_path, root_path=None):
        root = self.root_path if root_path is None else root_path
        if root is None or root is False:
            return os.path.abspath(input_path)
        if root is True:
            if not self.input_dir:
                raise InvalidArguments("root_path=True needs an input directory")
            return os.path.abspath(os.path.join(self.input_dir, input_path))
        if not isinstance(root, str):
            raise InvalidArguments(f"invalid root_path: {root!r}")
        return os.path.abspath(os.path.join(root, input_path))

    def render_file(self, input_path, *args, root_path=None, context=None) -> ParsedTemplate:
        """Read a template file and render it like ``__call__``."""
        if not isinstance(input_path, str):
            raise InvalidArguments(f"invalid input_path argument: {input_path!r}")
        if len(args) > 3:
            raise InvalidArguments(f"too many arguments: expected at most 3, got {len(args)}")
        input_path = self.resolve_path(input_path, root_path)
        self.logger.info(f"Rendering {input_path}")
        try:
            text = read_file_bom(input_path)
        except (IOError, OSError) as err:
            raise TemplateRenderError(f"cannot read input file {input_path}: {err}") from err
        return self(text, *args, context=context)


def _language_from_path(path):
    name = os.path.basename(path)
    for candidate in sorted(TEMPLATE_FORMAT_ALIASES, key=len, reverse=True):
        if name.endswith('.' + candidate):
            return candidate
    return None


def install_render_tools(env: Environment, renderer: TemplateRenderer):
    """Expose the renderer and notation helpers to Jinja templates."""

    def ambient(ctx):
        return ctx.get_all() if renderer.access_global_data else None

    @pass_context
    def render_template_string(ctx, input, *args):
        return renderer(input, *args, context=ambient(ctx)).rendered

    @pass_context
    def render_template_file(ctx, input_path, *args):
        return renderer.render_file(input_path, *args, context=ambient(ctx)).rendered

    @pass_context
    def render_content(ctx, text, template_lang=None):
        return renderer.engines.render(text, dict(ambient(ctx) or {}), template_lang)

    @pass_context
    def render_file(ctx, input_path, data=None, template_lang=None):
        path = renderer.resolve_path(input_path)
        template_lang = template_lang or _language_from_path(path)
        values = dict(ambient(ctx) or {})
        values.update(data or {})
        return renderer.engines.render(read_file_bom(path), values, template_lang, input_path=path)

    def parse(text, reviver=None, language='json'):
        return renderer.registry.parse(text, canonical_language(language or 'json'), reviver)

    def stringify(value, replacer=None, space=None, language='json'):
        return renderer.registry.stringify(value, canonical_language(language or 'json'), replacer, space)

    def current_date(fmt='%Y-%m-%d'):
        return datetime.now().strftime(fmt)

    for name, fn in (
        ('render_template_string', render_template_string),
        ('render_template_file', render_template_file),
        ('parse', parse),
        ('stringify', stringify),
    ):
        env.globals[name] = fn
        env.filters[name] = fn
    env.filters['render_content'] = render_content
    env.globals['render_file'] = render_file
    env.globals['current_date'] = current_date
    renderer.logger.debug(
        "Render tools loaded: render_template_string, render_template_file, render_file, "
        "render_content, parse, stringify, current_date"
    )
