"""Tests for front matter option normalization."""

import pytest
import os

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from matterbuild.errors import InvalidConfigurationShape
from matterbuild.options import (
    FrontMatterOptions,
    canonical_language,
    explicit_front_matter_options,
    normalize_delimiters,
    normalize_excerpt,
    normalize_front_matter_options,
    normalize_language,
    normalize_template_defaults,
)


class TestLanguage:

    @pytest.mark.parametrize('alias,expected', [
        ('js', 'javascript'),
        ('Node', 'javascript'),
        ('JavaScript', 'javascript'),
        ('legacy', 'jsLegacy'),
        ('CS', 'coffee'),
        ('coffeescript', 'coffee'),
        ('coffee-json', 'cson'),
        ('json5', 'json'),
        ('jsonc', 'json'),
        ('tml', 'toml'),
        ('YML', 'yaml'),
        ('', 'yaml'),
    ])
    def test_canonical_language(self, alias, expected):
        assert canonical_language(alias) == expected

    def test_unknown_language_passes_through(self):
        assert canonical_language('  INI ') == 'ini'

    def test_canonical_language_rejects_non_strings(self):
        with pytest.raises(InvalidConfigurationShape):
            canonical_language(3)

    def test_normalize_language(self):
        assert normalize_language('toml') == {'language': 'toml'}
        assert normalize_language({'lang': 'js'}) == {'language': 'javascript'}
        assert normalize_language('yml') == {}
        assert normalize_language(None) == {}


class TestDelimiters:

    def test_single_string_is_duplicated(self):
        assert normalize_delimiters('~~~') == {'delimiters': ('~~~', '~~~')}

    def test_list_of_one_is_duplicated(self):
        assert normalize_delimiters(['+++']) == {'delimiters': ('+++', '+++')}

    def test_pair_is_used_directly(self):
        assert normalize_delimiters({'delims': ['<!--', '-->']}) == {'delimiters': ('<!--', '-->')}

    def test_defaults_are_omitted(self):
        assert normalize_delimiters('---') == {}
        assert normalize_delimiters(['---', '---']) == {}
        assert normalize_delimiters({'language': 'toml'}) == {}

    def test_more_than_two_is_an_error(self):
        with pytest.raises(InvalidConfigurationShape) as exc_info:
            normalize_delimiters(['a', 'b', 'c'])
        assert exc_info.value.value == ['a', 'b', 'c']

    def test_empty_delimiter_is_an_error(self):
        with pytest.raises(InvalidConfigurationShape):
            normalize_delimiters(['---', ''])


class TestExcerpt:

    def test_boolean(self):
        assert normalize_excerpt(True) == {'excerpt': True}
        assert normalize_excerpt(False) == {}

    def test_separator_string(self):
        assert normalize_excerpt('<!-- more -->') == {'excerpt': True, 'excerpt_separator': '<!-- more -->'}
        assert normalize_excerpt('---') == {'excerpt': True}

    def test_callable(self):
        def excerpt(parsed, options):
            return 'x'
        assert normalize_excerpt(excerpt) == {'excerpt': excerpt}

    def test_mapping(self):
        assert normalize_excerpt({'excerpt': True, 'excerpt_alias': 'summary'}) == {
            'excerpt': True,
            'excerpt_alias': 'summary',
        }
        assert normalize_excerpt({'excerpt_separator': '<!--more-->'}) == {
            'excerpt': True,
            'excerpt_separator': '<!--more-->',
        }

    def test_disabled_excerpt_drops_everything(self):
        assert normalize_excerpt({'excerpt': False, 'excerpt_separator': '<!--more-->'}) == {}
        assert normalize_excerpt({'excerpt_alias': 'summary'}) == {}

    def test_invalid_excerpt(self):
        with pytest.raises(InvalidConfigurationShape):
            normalize_excerpt(12)


class TestNormalizeFrontMatterOptions:

    @pytest.mark.parametrize('options', [
        None,
        'yaml',
        False,
        {},
        {'language': 'yml', 'delimiters': '---', 'excerpt': False},
    ])
    def test_defaults_produce_empty_options(self, options):
        assert normalize_front_matter_options(options) == {}

    def test_string_is_notation(self):
        assert normalize_front_matter_options('TOML') == {'language': 'toml'}

    def test_boolean_is_excerpt_toggle(self):
        assert normalize_front_matter_options(True) == {'excerpt': True}

    def test_full_mapping(self):
        parse = lambda text: {}
        options = normalize_front_matter_options({
            'lang': 'cson',
            'delims': ['<<<', '>>>'],
            'excerpt': '<!--more-->',
            'parsers': {'ini': parse},
        })
        assert options == {
            'language': 'cson',
            'delimiters': ('<<<', '>>>'),
            'excerpt': True,
            'excerpt_separator': '<!--more-->',
            'engines': {'ini': parse},
        }

    def test_normalization_is_idempotent(self):
        first = normalize_front_matter_options({'language': 'json5', 'delimiters': ['~~~']})
        assert normalize_front_matter_options(first) == first

    @pytest.mark.parametrize('value', [42, 1.5, ['yaml'], object()])
    def test_invalid_shape(self, value):
        with pytest.raises(InvalidConfigurationShape) as exc_info:
            normalize_front_matter_options(value)
        assert exc_info.value.value is value

    def test_invalid_engines(self):
        with pytest.raises(InvalidConfigurationShape):
            normalize_front_matter_options({'engines': ['yaml']})


class TestFrontMatterOptions:

    def test_defaults(self):
        options = FrontMatterOptions()
        assert options.language == 'yaml'
        assert options.delimiters == ('---', '---')
        assert options.excerpt is False
        assert options.as_dict() == {}

    def test_resolve_layers(self):
        options = FrontMatterOptions.resolve('toml', {'delimiters': '+++'}, {'language': 'json'})
        assert options.language == 'json'
        assert options.delimiters == ('+++', '+++')

    def test_resolve_merges_engines(self):
        first = lambda text: 1
        second = lambda text: 2
        options = FrontMatterOptions.resolve({'engines': {'a': first}}, {'parsers': {'b': second}})
        assert options.engines == {'a': first, 'b': second}

    @pytest.mark.parametrize('layer,name,expected', [
        ({'language': 'yaml'}, 'language', 'yaml'),
        ('yml', 'language', 'yaml'),
        ({'delimiters': '---'}, 'delimiters', ('---', '---')),
        ({'excerpt': False}, 'excerpt', False),
        (False, 'excerpt', False),
    ])
    def test_named_default_restores_default(self, layer, name, expected):
        base = FrontMatterOptions.resolve({'language': 'toml', 'delimiters': '~~~', 'excerpt': True})
        assert getattr(FrontMatterOptions.resolve(base, layer), name) == expected

    def test_unnamed_keys_keep_earlier_layers(self):
        base = FrontMatterOptions.resolve({'language': 'toml', 'delimiters': '~~~'})
        options = FrontMatterOptions.resolve(base, {'excerpt': True})
        assert options.language == 'toml'
        assert options.delimiters == ('~~~', '~~~')

    def test_explicit_options_keep_named_defaults(self):
        assert explicit_front_matter_options({'lang': 'yml', 'delims': ['---'], 'excerpt': False}) == {
            'language': 'yaml',
            'delimiters': ('---', '---'),
            'excerpt': False,
        }
        assert explicit_front_matter_options({}) == {}

    def test_as_dict_round_trips_through_resolve(self):
        options = FrontMatterOptions.resolve({'language': 'toml', 'excerpt': True, 'excerpt_alias': 'summary'})
        assert FrontMatterOptions.resolve(options.as_dict()) == options


class TestTemplateDefaults:

    def test_shapes(self):
        assert normalize_template_defaults(None) == {}
        assert normalize_template_defaults('md') == {'template_lang': 'md'}
        assert normalize_template_defaults(['njk,md', 'toml']) == {'template_lang': 'njk,md', 'language': 'toml'}
        assert normalize_template_defaults({'language': 'json'}) == {'language': 'json'}

    def test_invalid(self):
        with pytest.raises(InvalidConfigurationShape):
            normalize_template_defaults(['a', 'b', 'c'])
        with pytest.raises(InvalidConfigurationShape):
            normalize_template_defaults(3)
