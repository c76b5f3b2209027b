"""Test configuration and fixtures for matterbuild tests."""

import pytest
import tempfile
import shutil
import logging
import os
from pathlib import Path

import yaml
from PIL import Image


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop the handlers installed by setup_logging after each test."""
    yield
    logger = logging.getLogger('Matterbuild')
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def log_dir(temp_dir):
    return os.path.join(temp_dir, 'logs')


@pytest.fixture
def sample_site(temp_dir):
    """Create a small site: templates, a layout, an include, data and a stylesheet."""
    root = Path(temp_dir)
    site_dir = root / 'site'
    (site_dir / 'blog').mkdir(parents=True)
    (root / 'layouts').mkdir()
    (root / 'includes').mkdir()
    (root / 'data').mkdir()

    (root / 'data' / 'site.yml').write_text(yaml.dump({'name': 'Example', 'lang': 'en'}))
    (root / 'data' / 'menu.json').write_text('{\n  // main menu\n  items: ["home", "blog"],\n}\n')

    (root / 'layouts' / 'base.njk').write_text(
        "<html lang=\"{{ site.lang }}\"><title>{{ title }}</title><body>{{ content }}</body></html>"
    )
    (root / 'layouts' / 'post.njk').write_text(
        "---\nlayout: base.njk\n---\n<article>{{ content }}</article>"
    )
    (root / 'includes' / 'nav.njk').write_text(
        "<nav>{% for item in menu['items'] %}<a>{{ item }}</a>{% endfor %}</nav>"
    )
    (root / 'includes' / '_colors.scss').write_text("$main: #ff0000;\n")

    (site_dir / 'index.html.njk').write_text(
        "---\ntitle: Home of {{ site.name }}\nlayout: base.njk\n---\n{% include 'nav.njk' %}<h1>{{ title }}</h1>"
    )
    (site_dir / 'blog' / 'first.html.njk').write_text(
        "---toml\ntitle = \"First post\"\nlayout = \"post.njk\"\n---\n<p>{{ page.url }}</p>"
    )
    (site_dir / 'style.css.scss').write_text(
        "@import 'colors';\nbody {\n  color: $main;\n}\n"
    )
    (site_dir / 'script.js.njk').write_text(
        "var  name = \"{{ site.name }}\" ;\n"
    )
    (site_dir / 'notes.txt.bak').write_text("not a template")
    return str(root)


@pytest.fixture
def sample_image(temp_dir):
    """A 64x48 RGB PNG."""
    path = os.path.join(temp_dir, 'photo.png')
    Image.new('RGB', (64, 48), color='red').save(path, 'PNG')
    return path


@pytest.fixture
def square_image(temp_dir):
    """A 64x64 RGBA PNG suitable for icons."""
    path = os.path.join(temp_dir, 'logo.png')
    Image.new('RGBA', (64, 64), color=(0, 0, 255, 128)).save(path, 'PNG')
    return path
