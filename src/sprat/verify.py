"""
A final check over every delivered HTML artifact.
"""
from __future__ import annotations

from .core import ErrorPolicy, File
from .dependencies import PipDependency
from .paths import OutputDirPathCalc
from .pretty_utils import format_size, print_with_style, print_warning
from .transform import FileTransform

# Gmail clips messages whose HTML is larger than this.
CLIP_THRESHOLD = 102 * 1024


def find_images_without_alt(html: str, name: str = 'document') -> list[str]:
    """
    Return the `src` of every `<img>` lacking an `alt` attribute. Markup
    which cannot be parsed is reported as a warning against @name and has no
    images.
    """
    if not html.strip():
        return []
    import lxml.etree
    import lxml.html
    try:
        root = lxml.html.fromstring(html)
    except lxml.etree.LxmlError as e:
        print_warning(f'{name}: could not scan for images ({e})')
        return []
    return [img.get('src', '') for img in root.iter('img') if img.get('alt') is None]


class VerifyStep(FileTransform):
    """
    Reports the size of every HTML artifact in the output directory and
    rewrites it unchanged, confirming that each one can be read and written.
    Artifacts past the clipping threshold and images without alt text produce
    warnings. A failure for one file is reported without stopping the others.
    """
    name = 'verify'
    policy = ErrorPolicy.SKIP

    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('lxml'),
        }

    def __init__(self, clip_threshold: int = CLIP_THRESHOLD):
        super().__init__('output_dir', '*.html', OutputDirPathCalc())
        self.clip_threshold = clip_threshold
        self.sizes: dict[str, int] = {}

    async def __call__(self):
        self.sizes = {}
        return await super().__call__()

    def transform(self, file: File) -> File:
        size = len(file.contents)
        self.sizes[file.path.name] = size
        print_with_style(f'{file.path.name}: {format_size(size)}')
        if size > self.clip_threshold:
            print_warning(f'{file.path.name} is larger than {format_size(self.clip_threshold)} and may be clipped')
        for src in find_images_without_alt(file.text, file.path.name):
            print_warning(f'{file.path.name}: <img src="{src}"> has no alt attribute')
        return file
