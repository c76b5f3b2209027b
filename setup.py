#!/usr/bin/env python3
"""
Setup script for matterbuild - static site build pipeline.
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='matterbuild',
    version='1.0.0',
    description='Static site build pipeline with multi-notation front matter and image transforms',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Internet :: WWW/HTTP :: Site Management',
        'Topic :: Software Development :: Build Tools',
        'Topic :: Text Processing :: Markup :: HTML',
    ],
    python_requires='>=3.8',
    install_requires=[
        'Jinja2>=3.0',
        'mistune>=3.0',
        'PyYAML>=6.0',
        'Pillow>=9.1',
        'csscompressor',
        'rjsmin',
        'libsass',
        'json5',
        'tomli',
        'tomli-w',
        'cson',
        'CoffeeScript',
        'PyExecJS',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'pytest-cov',
        ],
    },
    entry_points={
        'console_scripts': [
            'matterbuild=matterbuild.cli:main',
        ],
    },
    keywords='static site generator, front matter, jinja2, sass, image resizing, favicon',
)
