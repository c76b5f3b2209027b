"""
Template engines used to render strings in a given template language.

Jinja renders the ``njk`` family, mistune converts Markdown, libsass compiles
SCSS and the CoffeeScript compiler handles ``coffee``. A template language
may be a comma separated chain such as ``njk,md``; each engine is applied in
order to the output of the previous one.
"""

import json
import logging
import os
from typing import Any, Iterable, Mapping, Optional

import cson
import mistune
import sass
from jinja2 import Environment

from .errors import UnknownFormatError
from .formats import resolve_template_format

DEFAULT_TEMPLATE_LANG = 'njk'


def create_markdown_parser():
    """Create a Mistune markdown parser with a custom renderer."""
    class CustomRenderer(mistune.HTMLRenderer):
        def __init__(self):
            super().__init__(escape=False)
        def block_code(self, code, info=None):
            escaped_code = mistune.escape(code)
            return '<pre style="white-space: pre-wrap;"><code>{}</code></pre>'.format(escaped_code)
    return mistune.create_markdown(
        renderer=CustomRenderer(),
        plugins=['table', 'task_lists', 'strikethrough']
    )


def compile_coffee(text, bare=False):
    """Compile CoffeeScript source to JavaScript."""
    # Needs a JavaScript runtime, resolved by PyExecJS on first use.
    import coffeescript
    return coffeescript.compile(text, bare=bare)


class TemplateEngines:
    """Render text with the engine chain named by a template language."""

    def __init__(self, env: Optional[Environment] = None, markdown_template_engine='njk',
                 html_template_engine='njk', include_paths: Iterable[str] = (),
                 sass_output_style='nested', default_template_lang=DEFAULT_TEMPLATE_LANG):
        self.env = env or Environment(autoescape=False, keep_trailing_newline=True)
        self.markdown_template_engine = markdown_template_engine
        self.html_template_engine = html_template_engine
        self.include_paths = [p for p in include_paths if p]
        self.sass_output_style = sass_output_style
        self.default_template_lang = default_template_lang
        self.markdown_parser = create_markdown_parser()
        self.logger = logging.getLogger('Matterbuild.Engines')
        self._renderers = {
            'Jinja': self.render_jinja,
            'Markdown': self.render_markdown,
            'HTML': self.render_html,
            'SASS': self.render_scss,
            'CoffeeScript': self.render_coffee,
            'CSON': self.render_cson,
            'JSON': self.render_json,
        }

    def chain(self, template_lang) -> list:
        """Split a template language into canonical engine names."""
        if not template_lang:
            template_lang = self.default_template_lang
        if not isinstance(template_lang, str):
            raise UnknownFormatError(f"invalid template language: {template_lang!r}")
        return [resolve_template_format(part.strip()) for part in template_lang.split(',') if part.strip()]

    def render(self, text: str, data: Optional[Mapping[str, Any]] = None, template_lang=None,
               input_path: Optional[str] = None) -> str:
        data = data if data is not None else {}
        for engine in self.chain(template_lang):
            text = self._renderers[engine](text, data, input_path=input_path)
        return text

    def render_matter(self, text: str, data: Mapping[str, Any], template_lang=None) -> str:
        """Resolve template expressions in front matter text.

        Only the expression engine of the chain applies; compiling front
        matter as Markdown or SCSS would destroy it. Jinja runs at most once.
        """
        if not text:
            return text
        for name in self.chain(template_lang):
            if name == 'Markdown':
                preprocess = self.markdown_template_engine
            elif name == 'HTML':
                preprocess = self.html_template_engine
            else:
                preprocess = None
            names = self.chain(preprocess) if preprocess else [name]
            if 'Jinja' in names:
                return self.render_jinja(text, data)
        return text

    def render_jinja(self, text, data, input_path=None):
        return self.env.from_string(text).render(data)

    def _preprocess(self, text, data, engine):
        if not engine:
            return text
        for name in self.chain(engine):
            if name not in ('Markdown', 'HTML'):
                text = self._renderers[name](text, data)
        return text

    def render_markdown(self, text, data, input_path=None):
        text = self._preprocess(text, data, self.markdown_template_engine)
        return self.markdown_parser(text)

    def render_html(self, text, data, input_path=None):
        return self._preprocess(text, data, self.html_template_engine)

    def compile_scss(self, text, input_path=None):
        include_paths = list(self.include_paths)
        if input_path:
            include_paths.insert(0, os.path.dirname(os.path.abspath(input_path)) or '.')
        return sass.compile(
            string=text,
            include_paths=include_paths,
            output_style=self.sass_output_style,
        )

    def render_scss(self, text, data, input_path=None):
        return self.compile_scss(text, input_path)

    def render_coffee(self, text, data, input_path=None):
        return compile_coffee(text)

    def render_cson(self, text, data, input_path=None):
        return json.dumps(cson.loads(text), indent=2, ensure_ascii=False)

    def render_json(self, text, data, input_path=None):
        return text
