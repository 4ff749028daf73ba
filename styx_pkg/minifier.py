"""Minification transforms keyed by content type."""

import csscompressor
import minify_html
import rjsmin


def minify_html_text(text):
    return minify_html.minify(text, minify_css=True, minify_js=True)


MINIFIERS = {
    'text/html': minify_html_text,
    'text/css': csscompressor.compress,
    'text/javascript': rjsmin.jsmin,
}

# Static assets that are minified in place when copied to the output tree.
ASSET_TYPES = {
    '.css': 'text/css',
    '.js': 'text/javascript',
}


class Minifier:
    """Applies the registered transform for a content type when enabled."""

    def __init__(self, enabled=True, minifiers=None):
        self.enabled = enabled
        self.minifiers = dict(MINIFIERS if minifiers is None else minifiers)

    def minify(self, content_type, text):
        fn = self.minifiers.get(content_type)
        if not self.enabled or fn is None:
            return text
        return fn(text)

    def asset_type(self, ext):
        """Content type for a static asset extension, or None if it is copied as-is."""
        content_type = ASSET_TYPES.get(ext)
        if content_type in self.minifiers:
            return content_type
        return None
