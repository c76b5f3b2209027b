#!/usr/bin/env python3
"""
Command-line interface for matterbuild.
"""

import os
import sys
import argparse
import time
from typing import List, Optional

from . import __version__
from . import clean as clean_script
from . import commit as commit_script
from . import repo_files
from .images import ImageConverter, suppress_benign_warnings
from .settings import MatterbuildSettings
from .site import run_steps, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='matterbuild', description='matterbuild - static site build pipeline')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    subparsers = parser.add_subparsers(dest='command')

    build = subparsers.add_parser('build', help='Render the site (default command)')
    add_build_arguments(build)

    images = subparsers.add_parser('images', help='Run the configured image transforms')
    images.add_argument('--input', type=str, help='Directory image sources are relative to')
    images.add_argument('--output', type=str, help='Default output directory for images')

    init = subparsers.add_parser('init', help='Create a sample configuration file')
    init.add_argument('format', nargs='?', default='yml', choices=['yml', 'yaml', 'json', 'toml'])

    commit = subparsers.add_parser('commit', help='Commit with a prompted or default message')
    commit.add_argument('--message', '-m', type=str, help='Commit message (skips the prompt)')
    commit.add_argument('--timeout', type=float, default=commit_script.TIMEOUT,
                        help='Seconds to wait for a message before using the default')

    copy_files = subparsers.add_parser('copy-files', help='Copy files from checked-out repositories')
    copy_files.add_argument('mode', nargs='?', default='copy', choices=list(repo_files.MODES))
    copy_files.add_argument('--dry-run', '-d', action='store_true', help='Show what would be done')
    copy_files.add_argument('--base-dir', '-b', type=str, default='repo', help='Directory holding the repositories')
    copy_files.add_argument('--config', '-c', nargs='+', default=[repo_files.DEFAULT_CONFIG],
                            help='Repository files config(s)')

    clean = subparsers.add_parser('clean', help='Remove build artifacts')
    clean.add_argument('root', nargs='?', default=None, help='Project root (defaults to the current directory)')

    return parser


def add_build_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--input', type=str, help='Input directory containing templates')
    parser.add_argument('--output', type=str, help='Output directory for the generated site')
    parser.add_argument('--data', type=str, help='Global data directory')
    parser.add_argument('--includes', type=str, help='Includes directory')
    parser.add_argument('--layouts', type=str, help='Layouts directory')
    parser.add_argument('--formats', dest='template_formats', type=str,
                        help='Comma-separated list of template formats (e.g. njk,scss,md)')
    parser.add_argument('--prefix', dest='permalink_prefix', type=str,
                        help='Path prefix removed from input paths to build permalinks')
    parser.add_argument('--minify', action='store_true', default=None, help='Minify CSS and JS outputs')
    parser.add_argument('--step', type=int, action='append',
                        help='Run only this build step (1-based, repeatable)')
    parser.add_argument('--no-images', action='store_true', help='Skip the configured image transforms')


def load_settings(args_dict) -> MatterbuildSettings:
    settings_loader = MatterbuildSettings()
    settings_loader.load_settings()
    settings_loader.merge_with_args(args_dict)
    return settings_loader


def run_build(args) -> None:
    overrides = {
        key: getattr(args, key, None)
        for key in ('input', 'output', 'data', 'includes', 'layouts', 'template_formats', 'permalink_prefix', 'minify')
    }
    settings_loader = load_settings(overrides)
    steps = [s - 1 for s in args.step] if getattr(args, 'step', None) else None
    start_time = time.time()
    results = run_steps(settings_loader, steps, run_images=not getattr(args, 'no_images', False))
    total = sum(r['templates_rendered'] for r in results)
    logger = setup_logging()
    logger.info(f"Site build completed in {time.time() - start_time:.6f} seconds.")
    logger.info(f"Total templates rendered: {total}")


def run_images(args) -> None:
    settings_loader = load_settings({'input': args.input, 'output': args.output})
    settings = settings_loader.settings
    setup_logging()
    suppress_benign_warnings()
    converter = ImageConverter(settings['input'], settings['output'])
    converter.run(settings.get('images') or [])
    setup_logging().info(f"Total images converted: {converter.images_converted}")


def run_init(args) -> None:
    settings_loader = MatterbuildSettings()
    config_path = settings_loader.create_sample_config(args.format)
    print(f"Created sample configuration file: {config_path}")


def run_commit(args) -> None:
    setup_logging()
    settings = MatterbuildSettings()
    settings.load_settings()
    message = args.message
    if not message:
        default = commit_script.default_message(os.getcwd(), settings.settings.get('commit_message'))
        message = commit_script.prompt_message(default, args.timeout)
    print(commit_script.commit(message))


def run_copy_files(args) -> None:
    setup_logging()
    repo_files.process(args.config, args.mode, args.base_dir, args.dry_run)


def run_clean(args) -> None:
    setup_logging()
    root = args.root or os.getcwd()
    settings = MatterbuildSettings(root)
    settings.load_settings()
    clean_script.clean(root, settings.settings.get('clean_paths') or clean_script.DEFAULT_CLEAN_PATHS)


COMMANDS = {
    'build': run_build,
    'images': run_images,
    'init': run_init,
    'commit': run_commit,
    'copy-files': run_copy_files,
    'clean': run_clean,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0].startswith('-') and argv[0] not in ('-h', '--help', '--version'):
        argv.insert(0, 'build')
    args = parser.parse_args(argv)

    try:
        COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("^C\nOperation canceled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
