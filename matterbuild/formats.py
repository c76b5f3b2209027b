"""
Format registry for matterbuild.

Holds the template extension tables used to recognise template files and the
notation engines used to parse and serialize front matter and data files.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

import cson
import execjs
import json5
import tomli
import tomli_w
import yaml

from .errors import FormatError, UnknownFormatError

# Default template extensions and their aliases. The first element of each
# list is the default extension.
TEMPLATE_EXTENSIONS = {
    'HTML': ['html', 'htm', 'xhtml', 'shtml'],
    'Markdown': ['md', 'markdown', 'txt', 'mkd', 'mdown'],
    'Jinja': ['njk', 'nunj', 'nunjucks', 'jinja', 'jinja2', 'j2'],
    'JSON': ['json', 'jsonc', 'geojson', 'topojson'],
    'CoffeeScript': ['coffee', 'cs', 'cjsx'],
    'CSON': ['cson', 'csn'],
    'SASS': ['scss', 'sass'],
}

TEMPLATE_FORMAT_ALIASES = {}
for _format, _extensions in TEMPLATE_EXTENSIONS.items():
    TEMPLATE_FORMAT_ALIASES[_format] = _format
    TEMPLATE_FORMAT_ALIASES[_format.lower()] = _format
    for _extension in _extensions:
        TEMPLATE_FORMAT_ALIASES[_extension] = _format
del _format, _extensions, _extension
TEMPLATE_FORMAT_ALIASES.update({
    'JSONC': 'JSON',
    'SCSS': 'SASS',
    'nunjucks': 'Jinja',
    'Nunjucks': 'Jinja',
    'coffeescript': 'CoffeeScript',
})


def resolve_template_format(token: str) -> str:
    """Return the canonical template format for an extension or alias."""
    try:
        return TEMPLATE_FORMAT_ALIASES[token]
    except (KeyError, TypeError):
        raise UnknownFormatError(f"unknown template format: {token!r}") from None


def default_extension(token: str) -> str:
    """Return the default extension of the format an alias belongs to."""
    return TEMPLATE_EXTENSIONS[resolve_template_format(token)][0]


def _revive(holder, key, reviver):
    """Apply a JSON.parse style reviver bottom-up."""
    value = holder[key]
    if isinstance(value, dict):
        for k in list(value):
            revived = _revive(value, k, reviver)
            if revived is None:
                del value[k]
            else:
                value[k] = revived
    elif isinstance(value, list):
        for i in range(len(value)):
            value[i] = _revive(value, i, reviver)
    return reviver(key, value)


@dataclass
class FormatEngine:
    """A parse/stringify pair for one structured-data notation."""

    name: str
    loads: Callable[[str], Any]
    dumps: Optional[Callable[..., str]] = None

    def parse(self, text: str, reviver: Optional[Callable] = None) -> Any:
        if text is None or not text.strip():
            return {}
        value = self.loads(text)
        if value is None:
            return {}
        if reviver is not None:
            return _revive({'': value}, '', reviver)
        return value

    def stringify(self, value: Any, replacer=None, space=None) -> str:
        if self.dumps is None:
            raise FormatError(f"stringifying {self.name} is not supported")
        return self.dumps(value, replacer, space)


def _yaml_dumps(value, replacer=None, space=None):
    return yaml.safe_dump(
        value,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        indent=space or 2,
    )


def _json_dumps(value, replacer=None, space=None):
    # json5 does not double-quote keys, plain JSON output is kept for stringify.
    options = {'replacer': None, 'space': 2}
    if isinstance(replacer, Mapping):
        options.update(replacer)
    elif replacer is not None:
        options['replacer'] = replacer
    if space is not None:
        options['space'] = space
    return json.dumps(
        value,
        default=options['replacer'],
        indent=options['space'],
        ensure_ascii=False,
    )


def _toml_dumps(value, replacer=None, space=None):
    return tomli_w.dumps(value)


def _cson_dumps(value, replacer=None, space=None):
    return cson.dumps(value)


def _javascript_loads(text):
    return execjs.eval('(' + text + ')')


def _coffee_loads(text):
    # Needs a JavaScript runtime, resolved by PyExecJS on first use.
    import coffeescript
    return execjs.eval(coffeescript.compile(text, bare=True))


class FormatRegistry:
    """Maps notation names to FormatEngine instances.

    Registries are built explicitly and passed around; nothing is registered
    at import time. Use ``FormatRegistry.default()`` for the stock engines.
    """

    def __init__(self, engines: Optional[Mapping[str, Any]] = None):
        self._engines: Dict[str, FormatEngine] = {}
        for name, engine in (engines or {}).items():
            self.register(name, engine)

    @classmethod
    def default(cls) -> 'FormatRegistry':
        registry = cls()
        registry.register('yaml', FormatEngine('YAML', yaml.safe_load, _yaml_dumps))
        registry.register('json', FormatEngine('JSON', json5.loads, _json_dumps))
        registry.register('toml', FormatEngine('TOML', tomli.loads, _toml_dumps))
        registry.register('coffee', FormatEngine('CoffeeScript', _coffee_loads))
        registry.register('cson', FormatEngine('CSON', cson.loads, _cson_dumps))
        javascript = FormatEngine('JavaScript', _javascript_loads, _json_dumps)
        registry.register('javascript', javascript)
        registry.register('jsLegacy', javascript)
        return registry

    def register(self, name: str, engine: Any) -> FormatEngine:
        """Register an engine under a name, replacing any previous one.

        ``engine`` may be a FormatEngine, a mapping with ``parse`` and
        optionally ``stringify`` callables, or a bare parse callable.
        """
        if isinstance(engine, FormatEngine):
            pass
        elif isinstance(engine, Mapping) and callable(engine.get('parse')):
            dumps = engine.get('stringify')
            engine = FormatEngine(
                name,
                engine['parse'],
                (lambda value, replacer=None, space=None, _fn=dumps: _fn(value, replacer, space)) if dumps else None,
            )
        elif callable(engine):
            engine = FormatEngine(name, engine)
        else:
            raise FormatError(f"invalid engine for {name!r}: {engine!r}")
        self._engines[name] = engine
        return engine

    def get(self, name: str) -> FormatEngine:
        try:
            return self._engines[name]
        except (KeyError, TypeError):
            raise UnknownFormatError(
                f"no front matter engine registered for language {name!r} "
                f"(known: {', '.join(self.names())})"
            ) from None

    def parse(self, text: str, language: str = 'yaml', reviver=None) -> Any:
        return self.get(language).parse(text, reviver)

    def stringify(self, value: Any, language: str = 'yaml', replacer=None, space=None) -> str:
        return self.get(language).stringify(value, replacer, space)

    def names(self) -> List[str]:
        return sorted(self._engines)

    def copy(self, extra: Optional[Mapping[str, Any]] = None) -> 'FormatRegistry':
        """Return a new registry with these engines plus ``extra``."""
        registry = FormatRegistry(self._engines)
        for name, engine in (extra or {}).items():
            registry.register(name, engine)
        return registry

    def __contains__(self, name) -> bool:
        return name in self._engines

    def __len__(self) -> int:
        return len(self._engines)
