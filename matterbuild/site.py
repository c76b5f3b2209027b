"""
Site builder for matterbuild.

A Site is one build step: it renders the templates of an input directory
through the front matter renderer and its layouts, copies passthrough files
and minifies the CSS and JS it wrote. run_steps drives every configured step
and then the image transforms.
"""

import os
import shutil
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import csscompressor
import rjsmin
from jinja2 import Environment, FileSystemLoader

from .data import load_data_directory, load_file_contents
from .engines import TemplateEngines
from .errors import MatterbuildError, TemplateRenderError
from .files import ensure_directory, read_file_bom
from .formats import FormatRegistry, TEMPLATE_EXTENSIONS, resolve_template_format
from .images import ImageConverter, suppress_benign_warnings
from .render import TemplateRenderer, install_render_tools

MAX_LAYOUT_DEPTH = 10

# Output extension for single-extension templates (style.scss -> style.css).
OUTPUT_EXTENSIONS = {
    'SASS': '.css',
    'Markdown': '.html',
    'CoffeeScript': '.js',
    'CSON': '.json',
}


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Site build completed in",
            "Total templates rendered:",
            "Total images converted:",
            "Building site",
            "Building image",
            "Running step",
            "Rendering",
            "Writing",
            "Copying",
            "Minified",
            "Files to process",
            "Dry-run",
            "completed successfully",
            "Removing",
            "removed.",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


def setup_logging(log_dir=None):
    """Set up logging configuration for the Matterbuild logger tree."""
    logger = logging.getLogger('Matterbuild')
    logger.setLevel(logging.DEBUG)

    if not logger.handlers:
        # Console handler with filter
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.addFilter(InfoFilter())
        console_formatter = logging.Formatter('[matterbuild] %(message)s')
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

        # File handler for all logs
        logs_dir = log_dir or os.path.join(os.getcwd(), 'logs')
        os.makedirs(logs_dir, exist_ok=True)
        log_filename = datetime.now().strftime('matterbuild_%Y-%m-%d_%H-%M-%S.log')
        log_filepath = os.path.join(logs_dir, log_filename)

        file_handler = logging.FileHandler(log_filepath)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)
    return logger


class Site:
    """One build step: renders an input directory into an output directory."""

    def __init__(self, input_dir='input', output_dir='output', data_dir=None, includes_dir=None,
                 layouts_dir=None, template_formats=None, permalink_prefix=None, passthrough_copy=None,
                 front_matter=None, template_defaults=None, default_data=None, access_global_data=True,
                 markdown_template_engine='njk', html_template_engine='njk', minify=False,
                 registry: Optional[FormatRegistry] = None, log_dir=None):
        self.input_dir = input_dir
        self.output_dir = output_dir
        self.data_dir = data_dir
        self.includes_dir = includes_dir
        self.layouts_dir = layouts_dir
        self.template_formats = list(template_formats or ['njk', 'scss'])
        self.permalink_prefix = permalink_prefix if permalink_prefix is not None else input_dir
        self.passthrough_copy = list(passthrough_copy or [])
        self.minify = minify
        self.templates_rendered = 0
        self.written_files: List[str] = []
        self.logger = logging.getLogger('Matterbuild.Site')
        setup_logging(log_dir)
        suppress_benign_warnings()

        for fmt in self.template_formats:
            resolve_template_format(fmt)

        self.registry = registry or FormatRegistry.default()
        search_path = [p for p in (self.includes_dir, self.layouts_dir, self.input_dir) if p and os.path.isdir(p)]
        self.env = Environment(loader=FileSystemLoader(search_path), autoescape=False, keep_trailing_newline=True)
        self.engines = TemplateEngines(
            self.env,
            markdown_template_engine=markdown_template_engine,
            html_template_engine=html_template_engine,
            include_paths=[self.includes_dir] if self.includes_dir else [],
        )
        self.renderer = TemplateRenderer(
            self.engines,
            self.registry,
            front_matter=front_matter,
            template_defaults=template_defaults,
            default_data=default_data,
            access_global_data=access_global_data,
            input_dir=self.input_dir,
        )
        install_render_tools(self.env, self.renderer)
        self.global_data: Dict[str, Any] = {}

    @classmethod
    def from_settings(cls, settings: Dict[str, Any], registry: Optional[FormatRegistry] = None) -> 'Site':
        return cls(
            input_dir=settings['input'],
            output_dir=settings['output'],
            data_dir=settings.get('data'),
            includes_dir=settings.get('includes'),
            layouts_dir=settings.get('layouts'),
            template_formats=settings.get('template_formats'),
            permalink_prefix=settings.get('permalink_prefix'),
            passthrough_copy=settings.get('passthrough_copy'),
            front_matter=settings.get('front_matter'),
            template_defaults=settings.get('template_defaults'),
            default_data=settings.get('default_data'),
            access_global_data=settings.get('access_global_data', True),
            markdown_template_engine=settings.get('markdown_template_engine', 'njk'),
            html_template_engine=settings.get('html_template_engine', 'njk'),
            minify=settings.get('minify', False),
            registry=registry,
        )

    def create_output_dir(self):
        ensure_directory(self.output_dir)

    def copy_passthrough(self):
        """Copy passthrough files and directories into the output directory."""
        for source in self.passthrough_copy:
            if not os.path.exists(source):
                self.logger.warning(f"Passthrough path does not exist: {source}")
                continue
            relative = self.permalink(source, strip_extension=False)
            destination = os.path.join(self.output_dir, relative)
            if os.path.isdir(source):
                shutil.copytree(source, destination, dirs_exist_ok=True)
            else:
                ensure_directory(os.path.dirname(destination) or self.output_dir)
                shutil.copy2(source, destination)
            self.logger.info(f"Copying {source} -> {destination}")

    def add_file_content_as_global_data(self, data_path, slugify=True, ext_first_key=True):
        """Expose raw file contents of ``data_path`` under its directory name."""
        name = os.path.splitext(os.path.basename(os.path.normpath(data_path)))[0]
        self.global_data[name] = load_file_contents(data_path, slugify, ext_first_key)
        return self.global_data[name]

    def load_global_data(self):
        self.global_data.update(load_data_directory(self.data_dir, self.registry))
        return self.global_data

    def template_extension(self, path) -> Optional[str]:
        """Return the configured template extension of ``path``, if any."""
        name = os.path.basename(path)
        candidates = []
        for fmt in self.template_formats:
            candidates.extend(TEMPLATE_EXTENSIONS[resolve_template_format(fmt)])
        for ext in sorted(set(candidates), key=len, reverse=True):
            if name.endswith('.' + ext):
                return ext
        return None

    def permalink(self, input_path, strip_extension=True) -> str:
        """Strip the permalink prefix and the template extension from a path."""
        path = os.path.normpath(input_path)
        prefix = os.path.normpath(self.permalink_prefix) if self.permalink_prefix else ''
        if prefix and prefix != '.' and (path == prefix or path.startswith(prefix + os.sep)):
            path = path[len(prefix):].lstrip(os.sep)
        if strip_extension:
            ext = self.template_extension(path)
            if ext:
                path = path[:-(len(ext) + 1)]
        return path

    def get_template_files(self) -> List[str]:
        """Get all template files from the input directory."""
        template_files = []
        if not os.path.isdir(self.input_dir):
            self.logger.warning(f"Input directory not found: {self.input_dir}")
            return template_files
        excluded = {os.path.abspath(p) for p in (self.includes_dir, self.layouts_dir, self.data_dir, self.output_dir) if p}
        for root, dirs, files in os.walk(self.input_dir):
            dirs[:] = sorted(d for d in dirs if os.path.abspath(os.path.join(root, d)) not in excluded)
            for file in sorted(files):
                ext = self.template_extension(file)
                if not ext:
                    continue
                # SCSS partials are only ever imported.
                if resolve_template_format(ext) == 'SASS' and file.startswith('_'):
                    continue
                template_files.append(os.path.join(root, file))
        return template_files

    def find_layout(self, name) -> str:
        for directory in (self.layouts_dir, self.includes_dir):
            if directory:
                candidate = os.path.join(directory, name)
                if os.path.isfile(candidate):
                    return candidate
        raise TemplateRenderError(f"layout not found: {name}")

    def apply_layouts(self, content, data):
        layout = data.get('layout')
        depth = 0
        while layout:
            depth += 1
            if depth > MAX_LAYOUT_DEPTH:
                raise TemplateRenderError(f"layout chain too deep at {layout}")
            layout_path = self.find_layout(layout)
            layout_data = dict(data)
            layout_data.pop('layout', None)
            layout_data['content'] = content
            parsed = self.renderer(read_file_bom(layout_path), layout_data)
            content = parsed.rendered
            data = parsed.context
            layout = parsed.data.get('layout')
        return content

    def build_template(self, input_path) -> str:
        """Render one template file and write it to its permalink."""
        permalink = self.permalink(input_path)
        ext = self.template_extension(input_path)
        if not os.path.splitext(permalink)[1]:
            permalink += OUTPUT_EXTENSIONS.get(resolve_template_format(ext), '')
        output_path = os.path.join(self.output_dir, permalink)
        page = {
            'input_path': input_path,
            'output_path': output_path,
            'url': '/' + permalink.replace(os.sep, '/'),
        }
        data = dict(self.global_data)
        data['page'] = page
        if resolve_template_format(ext) == 'SASS':
            rendered = self.engines.compile_scss(read_file_bom(input_path), input_path)
        else:
            parsed = self.renderer.render_file(input_path, ext, data)
            rendered = self.apply_layouts(parsed.rendered, parsed.context)
        ensure_directory(os.path.dirname(output_path) or self.output_dir)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(rendered)
        self.logger.info(f"Writing {output_path} from {input_path}")
        self.templates_rendered += 1
        self.written_files.append(output_path)
        return output_path

    def minify_outputs(self):
        """Minify the CSS and JS files written by this build."""
        for path in self.written_files:
            if path.endswith('.min.css') or path.endswith('.min.js'):
                continue
            if path.endswith('.css'):
                minify = csscompressor.compress
            elif path.endswith('.js'):
                minify = rjsmin.jsmin
            else:
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    content = f.read()
                with open(path, 'w', encoding='utf-8') as f:
                    f.write(minify(content))
                self.logger.info(f"Minified {path}")
            except (IOError, OSError, PermissionError) as e:
                self.logger.error(f"Failed to minify {path}: {e}")
                raise

    def build(self) -> Dict[str, Any]:
        """Main build process."""
        start_time = time.time()
        self.logger.info(f"Building site from {self.input_dir} into {self.output_dir} ...")
        self.create_output_dir()
        self.copy_passthrough()
        self.load_global_data()
        for template_file in self.get_template_files():
            try:
                self.build_template(template_file)
            except MatterbuildError as e:
                self.logger.error(f"Error processing {template_file}: {e}")
                raise
        if self.minify:
            self.minify_outputs()
        total_time = time.time() - start_time
        self.logger.info(f"Site build completed in {total_time:.6f} seconds.")
        self.logger.info(f"Total templates rendered: {self.templates_rendered}")
        return {'templates_rendered': self.templates_rendered, 'files': list(self.written_files)}


def run_steps(settings_loader, steps=None, run_images=True) -> List[Dict[str, Any]]:
    """Run every configured build step, then the configured image transforms."""
    logger = logging.getLogger('Matterbuild.Site')
    registry = FormatRegistry.default()
    indexes = list(range(settings_loader.step_count())) if steps is None else list(steps)
    results = []
    for index in indexes:
        label = f"step{index + 1:02d}"
        logger.info(f"Running {label} ...")
        site = Site.from_settings(settings_loader.step_settings(index), registry)
        results.append(site.build())
        logger.info(f"Running {label} done.")
    if run_images:
        settings = settings_loader.settings
        images = settings.get('images') or []
        if images:
            converter = ImageConverter(settings.get('input', '.'), settings.get('output', '.'))
            converter.run(images)
            logger.info(f"Total images converted: {converter.images_converted}")
    return results
