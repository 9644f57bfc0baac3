"""HTML utility functions for Folio.

This module provides small HTML string helpers shared by blocks, feeds
and the preview server.

Functions:
    escape_html: Escape text for HTML content and attributes.
    join_root_url: Prefix a site path with the base URL.
    inject_before_body_close: Insert a snippet before </body>.
"""

from __future__ import annotations

BODY_CLOSE = "</body>"


def escape_html(text: object) -> str:
    """Escape text for use in HTML element content and quoted attributes.

    None becomes an empty string. Both quote characters are escaped, so
    the result is safe inside single- or double-quoted attributes.

    Examples:
        >>> escape_html('<a title="x">')
        '&lt;a title=&quot;x&quot;&gt;'

        >>> escape_html("Fish & Chips")
        'Fish &amp; Chips'
    """
    if text is None:
        return ""
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def join_root_url(root_url: str, path: str) -> str:
    """Prefix a site path with the site's base URL.

    Exactly one slash separates the two parts. Absolute and
    protocol-relative URLs are returned unchanged, as is every path when
    no base URL is configured.

    Examples:
        >>> join_root_url("https://example.com/blog/", "/posts/")
        'https://example.com/blog/posts/'

        >>> join_root_url("https://example.com", "https://cdn.example.org/x.js")
        'https://cdn.example.org/x.js'
    """
    if not root_url or path.startswith(("http://", "https://", "//")):
        return path
    base = root_url.rstrip("/")
    return base + (path if path.startswith("/") else "/" + path)


def inject_before_body_close(html: str, snippet: str) -> str:
    """Insert snippet just before the last closing body tag.

    If the document has no closing body tag the snippet is appended.

    Examples:
        >>> inject_before_body_close("<body>x</body>", "<s/>")
        '<body>x<s/></body>'

        >>> inject_before_body_close("x", "<s/>")
        'x<s/>'
    """
    index = html.rfind(BODY_CLOSE)
    if index == -1:
        return html + snippet
    return html[:index] + snippet + html[index:]
