"""
Image transforms: resized rasters in several formats and .ico bundles.

Each transform descriptor names a source image, the formats and widths to
produce and where to write them. Descriptors run concurrently; a failing
descriptor does not undo the files its siblings already wrote.
"""

import io
import logging
import os
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from PIL import Image

from .errors import ImageEncodingError
from .files import ensure_directory

logger = logging.getLogger('Matterbuild.Images')

# Pillow cannot store icon frames larger than 256x256.
MAX_ICO_SIZE = 256
DEFAULT_ICO_SIZES = [16, 32, 48, 64, 128, 256]

PILLOW_FORMATS = {
    'jpeg': 'JPEG',
    'jpg': 'JPEG',
    'png': 'PNG',
    'webp': 'WEBP',
    'gif': 'GIF',
    'avif': 'AVIF',
    'tiff': 'TIFF',
    'bmp': 'BMP',
}

# Known-benign warnings emitted while converting palette images.
BENIGN_WARNINGS = [
    'Palette images with Transparency expressed in bytes should be converted to RGBA images',
]


def suppress_benign_warnings():
    """Silence warnings known to be harmless for image conversion."""
    for message in BENIGN_WARNINGS:
        warnings.filterwarnings('ignore', message=message, category=UserWarning)


@dataclass
class ImageTransform:
    """One source image and the outputs to produce from it."""

    src: str
    formats: List[str] = field(default_factory=lambda: ['webp', 'jpeg'])
    widths: List[Optional[int]] = field(default_factory=lambda: [None])
    output_dir: Optional[str] = None
    output_basename: Optional[str] = None

    @classmethod
    def from_dict(cls, value: Mapping[str, Any]) -> 'ImageTransform':
        if isinstance(value, ImageTransform):
            return value
        if not isinstance(value, Mapping) or not value.get('src'):
            raise ValueError(f"invalid image transform: {value!r}")
        formats = value.get('formats') or ['webp', 'jpeg']
        if isinstance(formats, str):
            formats = [formats]
        widths = value.get('widths') or [None]
        if not isinstance(widths, (list, tuple)):
            widths = [widths]
        return cls(
            src=value['src'],
            formats=[str(f).lower() for f in formats],
            widths=[None if w in (None, 'auto') else int(w) for w in widths],
            output_dir=value.get('outputDir', value.get('output_dir')),
            output_basename=value.get('outputBasename', value.get('output_basename')),
        )

    def basename(self) -> str:
        if self.output_basename:
            return self.output_basename
        return os.path.basename(self.src).split('.')[0]


def to_ico(src, sizes: Sequence[int] = DEFAULT_ICO_SIZES) -> bytes:
    """Pack one square RGBA frame per size into an .ico file."""
    sizes = sorted({int(s) for s in sizes if s and int(s) <= MAX_ICO_SIZE})
    if not sizes:
        raise ImageEncodingError(src, f"no valid icon sizes (maximum is {MAX_ICO_SIZE})")
    with Image.open(src) as img:
        img = img.convert('RGBA')
        frames = [img.resize((size, size), Image.LANCZOS) for size in sizes]
    buffer = io.BytesIO()
    largest = frames[-1]
    largest.save(
        buffer,
        format='ICO',
        sizes=[(size, size) for size in sizes],
        append_images=frames[:-1],
    )
    return buffer.getvalue()


def _target_widths(widths, original_width):
    """Resolve requested widths; never upscale, never repeat a width."""
    result = []
    for width in widths:
        width = original_width if width is None else min(int(width), original_width)
        if width not in result:
            result.append(width)
    return result


def _prepare(img, pillow_format):
    if pillow_format == 'JPEG' and img.mode not in ('RGB', 'L'):
        return img.convert('RGB')
    if pillow_format in ('PNG', 'WEBP', 'AVIF') and img.mode == 'P':
        return img.convert('RGBA')
    return img


class ImageConverter:
    """Runs image transform descriptors against an input directory."""

    def __init__(self, input_dir='.', output_dir='.', max_workers=None):
        self.input_dir = input_dir
        self.output_dir = output_dir
        self.max_workers = max_workers
        self.images_converted = 0

    def source_path(self, transform: ImageTransform) -> str:
        if os.path.isabs(transform.src):
            return transform.src
        return os.path.join(self.input_dir, transform.src)

    def write_ico(self, src, transform: ImageTransform, output_dir) -> Dict[str, Any]:
        filename = f"{transform.basename()}.ico"
        output_path = os.path.abspath(os.path.join(output_dir, filename))
        widths = [w for w in transform.widths if w] or DEFAULT_ICO_SIZES
        try:
            data = to_ico(src, widths)
        except ImageEncodingError:
            raise
        except Exception as e:
            raise ImageEncodingError(src, str(e)) from e
        with open(output_path, 'wb') as f:
            f.write(data)
        logger.info(f"Building image format: ico, widths: {','.join(str(w) for w in widths)}, output: {filename}")
        return {'format': 'ico', 'filename': filename, 'output_path': output_path, 'size': len(data)}

    def write_rasters(self, src, transform: ImageTransform, formats, output_dir) -> Dict[str, List[Dict[str, Any]]]:
        metadata = {}
        try:
            with Image.open(src) as img:
                img.load()
                source_format = (img.format or 'png').lower()
                for fmt in formats:
                    fmt = source_format if fmt == 'auto' else fmt
                    fmt = 'jpeg' if fmt == 'jpg' else fmt
                    pillow_format = PILLOW_FORMATS.get(fmt)
                    if pillow_format is None:
                        raise ImageEncodingError(src, f"unsupported image format: {fmt}")
                    entries = metadata.setdefault(fmt, [])
                    for width in _target_widths(transform.widths, img.width):
                        height = max(1, round(img.height * width / img.width))
                        resized = img if (width, height) == img.size else img.resize((width, height), Image.LANCZOS)
                        filename = f"{transform.basename()}-{width}.{fmt}"
                        output_path = os.path.abspath(os.path.join(output_dir, filename))
                        _prepare(resized, pillow_format).save(output_path, pillow_format)
                        logger.info(f"Building image format: {fmt}, width: {width}, output: {filename}")
                        entries.append({
                            'format': fmt,
                            'width': width,
                            'height': height,
                            'filename': filename,
                            'output_path': output_path,
                            'size': os.path.getsize(output_path),
                        })
        except ImageEncodingError:
            raise
        except Exception as e:
            raise ImageEncodingError(src, str(e)) from e
        return metadata

    def transform(self, transform: ImageTransform) -> Dict[str, Any]:
        """Produce every output of one descriptor."""
        output_dir = transform.output_dir or self.output_dir
        ensure_directory(output_dir)
        src = self.source_path(transform)
        logger.info(f"Building image from source: {src} ...")
        formats = [f for f in transform.formats if f != 'ico']
        metadata = {}
        if len(formats) != len(transform.formats):
            ico = self.write_ico(src, transform, output_dir)
        else:
            ico = None
        if formats:
            metadata.update(self.write_rasters(src, transform, formats, output_dir))
        if ico:
            metadata['ico'] = [ico]
        logger.info(f"Building image from source: {src} done.")
        return {'image': transform, 'metadata': metadata}

    def run(self, transforms: Sequence[Any]) -> List[Dict[str, Any]]:
        """Run all descriptors concurrently and wait for every one of them.

        The first failure, in descriptor order, is re-raised once all
        descriptors have finished.
        """
        transforms = [ImageTransform.from_dict(t) for t in transforms]
        if not transforms:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self.transform, t) for t in transforms]
        results = []
        for future in futures:
            results.append(future.result())
            self.images_converted += 1
        return results


def transform_images(transforms, input_dir='.', output_dir='.', max_workers=None):
    """Convenience wrapper around ImageConverter.run."""
    return ImageConverter(input_dir, output_dir, max_workers).run(transforms)
