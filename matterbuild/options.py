"""
Front matter option normalization.

Caller configuration may arrive as nothing, a notation name, an excerpt
toggle or an options mapping. The functions here reduce any of those to a
dict holding only the options that differ from the defaults, and
FrontMatterOptions folds such dicts into a complete record.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Tuple, Union

from .errors import InvalidConfigurationShape

DEFAULT_LANGUAGE = 'yaml'
DEFAULT_DELIMITER = '---'
DEFAULT_EXCERPT_ALIAS = 'page.excerpt'

LANGUAGE_ALIASES = {
    'node': 'javascript',
    'javascript': 'javascript',
    'js': 'javascript',
    'legacy': 'jsLegacy',
    'jslegacy': 'jsLegacy',
    'coffee': 'coffee',
    'coffeescript': 'coffee',
    'cs': 'coffee',
    'cson': 'cson',
    'coffee-json': 'cson',
    'coffeejson': 'cson',
    'coffee-obj': 'cson',
    'coffeeobj': 'cson',
    'csobj': 'cson',
    'json': 'json',
    'json5': 'json',
    'jsonc': 'json',
    'toml': 'toml',
    'tml': 'toml',
    'yaml': DEFAULT_LANGUAGE,
    'yml': DEFAULT_LANGUAGE,
}


def canonical_language(language: str) -> str:
    """Map a notation name or alias to the registered engine name."""
    if not isinstance(language, str):
        raise InvalidConfigurationShape(language, 'invalid language')
    language = language.lower().strip() or DEFAULT_LANGUAGE
    return LANGUAGE_ALIASES.get(language, language)


def normalize_language(options: Any = None) -> Dict[str, str]:
    """Return ``{'language': name}`` unless the language is the default."""
    if not options:
        return {}
    if isinstance(options, Mapping):
        language = options.get('language') or options.get('lang') or DEFAULT_LANGUAGE
    elif isinstance(options, str):
        language = options
    else:
        raise InvalidConfigurationShape(options)
    language = canonical_language(language)
    if language == DEFAULT_LANGUAGE:
        return {}
    return {'language': language}


def normalize_delimiters(options: Any = None) -> Dict[str, Tuple[str, str]]:
    """Resolve zero, one or two delimiters into an (open, close) pair."""
    if not options:
        return {}
    if isinstance(options, (list, tuple)):
        delimiters = options
    elif isinstance(options, Mapping):
        delimiters = options.get('delims') or options.get('delimiters') or [DEFAULT_DELIMITER, DEFAULT_DELIMITER]
    elif isinstance(options, str):
        delimiters = [options, options]
    else:
        raise InvalidConfigurationShape(options)
    delimiters = list(delimiters) if isinstance(delimiters, (list, tuple)) else [delimiters]
    if not delimiters:
        return {}
    if len(delimiters) == 1:
        delimiters.append(delimiters[0])
    elif len(delimiters) > 2:
        raise InvalidConfigurationShape(options, 'invalid delimiters')
    if not all(isinstance(d, str) and d for d in delimiters):
        raise InvalidConfigurationShape(options, 'invalid delimiters')
    if delimiters[0] == DEFAULT_DELIMITER and delimiters[1] == DEFAULT_DELIMITER:
        return {}
    return {'delimiters': (delimiters[0], delimiters[1])}


def normalize_excerpt(options: Any = None) -> Dict[str, Any]:
    """Reduce an excerpt specification to the options that change anything.

    Accepts a bool, a separator string, a callable, or a mapping with
    ``excerpt``, ``excerpt_separator`` and ``excerpt_alias`` keys. A separator
    given without ``excerpt`` switches excerpts on.
    """
    if options is None:
        return {}
    separator = alias = None
    if isinstance(options, Mapping):
        excerpt = options.get('excerpt')
        if not isinstance(excerpt, bool):
            excerpt = excerpt or None
        separator = options.get('excerpt_separator') or None
        alias = options.get('excerpt_alias') or None
    elif isinstance(options, bool) or callable(options):
        excerpt = options
    elif isinstance(options, str):
        excerpt = bool(options)
        separator = options or None
    else:
        raise InvalidConfigurationShape(options, 'invalid excerpt')

    result = {}
    if excerpt:
        if isinstance(excerpt, str):
            if excerpt != DEFAULT_DELIMITER:
                separator = excerpt
            result['excerpt'] = True
        elif excerpt is True or callable(excerpt):
            result['excerpt'] = excerpt
        else:
            raise InvalidConfigurationShape(excerpt, 'invalid excerpt')
        if separator and separator != DEFAULT_DELIMITER:
            if not isinstance(separator, str):
                raise InvalidConfigurationShape(separator, 'invalid excerpt_separator')
            result['excerpt_separator'] = separator
    elif not isinstance(excerpt, bool) and isinstance(separator, str) and separator:
        result['excerpt'] = True
        if separator != DEFAULT_DELIMITER:
            result['excerpt_separator'] = separator

    if result.get('excerpt') and alias:
        if not isinstance(alias, str):
            raise InvalidConfigurationShape(alias, 'invalid excerpt_alias')
        if alias != DEFAULT_EXCERPT_ALIAS:
            result['excerpt_alias'] = alias
    return result


def normalize_engines(options: Any = None) -> Dict[str, Any]:
    """Collect custom notation engines from ``parsers`` and ``engines``."""
    if not isinstance(options, Mapping):
        return {}
    engines = {}
    for key in ('parsers', 'engines'):
        value = options.get(key)
        if value is None:
            continue
        if not isinstance(value, Mapping):
            raise InvalidConfigurationShape(value, f'invalid {key}')
        engines.update(value)
    return {'engines': engines} if engines else {}


def normalize_front_matter_options(options: Any = None) -> Dict[str, Any]:
    """Normalize any accepted configuration shape into a minimal options dict."""
    if options is None:
        return {}
    if isinstance(options, bool):
        return normalize_excerpt(options)
    if isinstance(options, str):
        return normalize_language(options)
    if isinstance(options, Mapping):
        result = {}
        result.update(normalize_engines(options))
        result.update(normalize_language(options))
        result.update(normalize_delimiters(options))
        result.update(normalize_excerpt(options))
        return result
    raise InvalidConfigurationShape(options)


def explicit_front_matter_options(options: Any = None) -> Dict[str, Any]:
    """Normalize ``options`` but keep default values the caller named.

    Layered over non-default settings, ``{'language': 'yaml'}`` must restore
    YAML rather than normalize away to nothing.
    """
    result = normalize_front_matter_options(options)
    if isinstance(options, bool):
        result.setdefault('excerpt', options)
    elif isinstance(options, str):
        result.setdefault('language', DEFAULT_LANGUAGE)
    elif isinstance(options, Mapping):
        if 'language' in options or 'lang' in options:
            result.setdefault('language', DEFAULT_LANGUAGE)
        if options.get('delimiters') or options.get('delims'):
            result.setdefault('delimiters', (DEFAULT_DELIMITER, DEFAULT_DELIMITER))
        if 'excerpt' in options:
            result.setdefault('excerpt', False)
        if result.get('excerpt'):
            if options.get('excerpt_separator'):
                result.setdefault('excerpt_separator', DEFAULT_DELIMITER)
            if options.get('excerpt_alias'):
                result.setdefault('excerpt_alias', DEFAULT_EXCERPT_ALIAS)
    return result


@dataclass(frozen=True)
class FrontMatterOptions:
    """Complete front matter options for one render call."""

    language: str = DEFAULT_LANGUAGE
    delimiters: Tuple[str, str] = (DEFAULT_DELIMITER, DEFAULT_DELIMITER)
    excerpt: Union[bool, Callable] = False
    excerpt_separator: str = DEFAULT_DELIMITER
    excerpt_alias: str = DEFAULT_EXCERPT_ALIAS
    engines: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def resolve(cls, *layers: Any) -> 'FrontMatterOptions':
        """Fold caller configurations, later layers winning, over the defaults.

        A value a layer names explicitly wins even when it equals the default.
        """
        options = cls()
        for layer in layers:
            if isinstance(layer, FrontMatterOptions):
                options = replace(layer, engines={**options.engines, **layer.engines})
            else:
                options = options.merged(explicit_front_matter_options(layer))
        return options

    def merged(self, normalized: Mapping[str, Any]) -> 'FrontMatterOptions':
        changes = dict(normalized)
        if 'engines' in changes:
            changes['engines'] = {**self.engines, **changes['engines']}
        return replace(self, **changes)

    def as_dict(self) -> Dict[str, Any]:
        """Return only the options that differ from the defaults."""
        defaults = FrontMatterOptions()
        return {
            name: getattr(self, name)
            for name in ('language', 'delimiters', 'excerpt', 'excerpt_separator', 'excerpt_alias', 'engines')
            if getattr(self, name) != getattr(defaults, name)
        }


def normalize_template_defaults(value: Any) -> Dict[str, Any]:
    """Normalize the renderer-wide defaults.

    ``None`` means no defaults, a string is the default template language, a
    list of up to two strings is ``[template_lang, front_matter_language]``
    and a mapping is taken as front matter options plus ``template_lang``.
    """
    if value is None:
        return {}
    if isinstance(value, str):
        return {'template_lang': value}
    if isinstance(value, (list, tuple)):
        if len(value) > 2 or not all(isinstance(item, str) for item in value):
            raise InvalidConfigurationShape(value, 'invalid template defaults')
        result = {}
        if len(value) > 0 and value[0]:
            result['template_lang'] = value[0]
        if len(value) > 1 and value[1]:
            result.update(normalize_language(value[1]))
        return result
    if isinstance(value, Mapping):
        return dict(value)
    raise InvalidConfigurationShape(value, 'invalid template defaults')
