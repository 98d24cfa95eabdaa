"""
Steps for reducing the size of compiled HTML while keeping it safe for email
clients.
"""
from __future__ import annotations

from dataclasses import dataclass

from .core import ErrorPolicy, File, MinifyError
from .dependencies import PipDependency
from .paths import OutputDirPathCalc
from .transform import FileTransform

MINIFIED_SUFFIX = '.min'


@dataclass(frozen=True)
class MinifyOptions:
    """
    Minifier configuration, named after the behaviours email clients care
    about.

    minify-html always collapses whitespace, never collapses it further than
    is layout-safe and never changes the case of tags or attributes. Those
    three fields describe that behaviour and reject any other value.
    """
    collapse_whitespace: bool = True
    conservative_collapse: bool = False
    case_sensitive: bool = True
    remove_comments: bool = False
    minify_css: bool = True
    minify_js: bool = True
    html5: bool = False
    keep_doctype: bool = True
    quote_unsafe_attribute_values: bool = True
    keep_spaces_between_attributes: bool = True

    def __post_init__(self):
        fixed = {
            'collapse_whitespace': True,
            'conservative_collapse': False,
            'case_sensitive': True,
        }
        for field_name, supported in fixed.items():
            if getattr(self, field_name) != supported:
                raise ValueError(f'minify-html does not support {field_name}={getattr(self, field_name)!r}')

    def to_minify_html(self) -> dict[str, bool]:
        """
        Translate these options into keyword arguments for
        `minify_html.minify()`.
        """
        return {
            'minify_css': self.minify_css,
            'minify_js': self.minify_js,
            # Conditional comments (<!--[if mso]>) must survive.
            'keep_comments': not self.remove_comments,
            # Outside of HTML5 mode optional tags are kept as written.
            'keep_closing_tags': not self.html5,
            'keep_html_and_head_opening_tags': not self.html5,
            'minify_doctype': not self.keep_doctype,
            'allow_noncompliant_unquoted_attribute_values': not self.quote_unsafe_attribute_values,
            'allow_removing_spaces_between_attributes': not self.keep_spaces_between_attributes,
        }


EMAIL_MINIFY_OPTIONS = MinifyOptions()


class HTMLMinifierStep(FileTransform):
    """
    Minifies every HTML file in the output directory into a sibling file
    carrying a `.min` suffix, leaving the original in place. Files which
    already carry the suffix are not minified again. A failure for one file is
    logged and only that file's minified counterpart is missing.
    """
    name = 'minify'
    policy = ErrorPolicy.SKIP
    error_cls = MinifyError

    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('minify-html', check_name='minify_html'),
        }

    def __init__(self, options: MinifyOptions = EMAIL_MINIFY_OPTIONS):
        super().__init__(
            'output_dir',
            '*.html',
            OutputDirPathCalc(suffix=MINIFIED_SUFFIX),
            exclude=[f'*{MINIFIED_SUFFIX}.html'],
        )
        self.options = options

    def minify(self, html: str) -> str:
        from minify_html import minify
        return minify(html, **self.options.to_minify_html())

    def transform(self, file: File) -> File:
        minified = self.minify(file.text).encode('utf-8')
        # Never ship a "minified" artifact larger than its source.
        if len(minified) > len(file.contents):
            minified = file.contents
        return file.evolve(contents=minified)
