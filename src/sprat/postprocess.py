"""
Pure clean-up passes over compiled HTML.
"""
import re
from html import escape

DOCTYPE_RE = re.compile(r'\s*(<!doctype[^>]*>)', re.IGNORECASE)
HTML_TAG_RE = re.compile(r'<html[\s>]', re.IGNORECASE)


def _strip_empty_styles(root):
    for element in root.iter():
        # Comments and processing instructions have no attributes to strip.
        if isinstance(element.tag, str) and element.get('style') == '':
            del element.attrib['style']


def remove_empty_styles(html: str) -> str:
    """
    Remove every `style` attribute whose value is exactly the empty string,
    leaving all other attributes alone. Full documents keep exactly the
    doctype they were given (or none); fragments stay fragments.
    """
    import lxml.html

    if not html.strip():
        return html

    doctype = DOCTYPE_RE.match(html)
    if doctype or HTML_TAG_RE.search(html):
        root = lxml.html.document_fromstring(html)
        _strip_empty_styles(root)
        return lxml.html.tostring(
            root,
            encoding='unicode',
            doctype=doctype.group(1) if doctype else None,
        )

    parts = []
    for fragment in lxml.html.fragments_fromstring(html):
        if isinstance(fragment, str):
            # Leading text comes back unescaped.
            parts.append(escape(fragment, quote=False))
            continue
        _strip_empty_styles(fragment)
        parts.append(lxml.html.tostring(fragment, encoding='unicode'))
    return ''.join(parts)
