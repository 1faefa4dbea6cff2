import threading

import markdown
from bleach.sanitizer import Cleaner
from markupsafe import Markup


class AnswerScrubber:
    """Allow-list filter for HTML rendered from answer Markdown.

    Tags and attributes outside the lists are dropped; their text and any
    permitted children are kept.
    """

    tags = frozenset([
        "a", "p", "b", "i", "em", "strong", "hr",
        "h1", "h2", "h3", "h4", "h5", "h6",
        "blockquote", "img", "strike", "del", "code", "pre", "br",
        "ul", "ol", "li",
    ])
    attributes = ["href", "title", "src", "height", "width"]

    def __init__(self):
        # bleach cleaners hold parser state; one per thread
        self._local = threading.local()

    def _cleaner(self) -> Cleaner:
        cleaner = getattr(self._local, "cleaner", None)
        if cleaner is None:
            cleaner = self._local.cleaner = Cleaner(
                tags=self.tags,
                attributes=self.attributes,
                strip=True,
                strip_comments=True,
            )
        return cleaner

    def scrub(self, html: str) -> str:
        if not html:
            return ""
        return self._cleaner().clean(html)


class MarkdownRenderer:
    """Markdown to scrubbed HTML. Build one per app and hand it to whoever renders."""

    def __init__(self, scrubber: AnswerScrubber | None = None):
        self.scrubber = scrubber or AnswerScrubber()
        # markdown.Markdown keeps parse state on the instance; one per thread
        self._local = threading.local()

    def _markdown(self) -> markdown.Markdown:
        md = getattr(self._local, "md", None)
        if md is None:
            md = self._local.md = markdown.Markdown(extensions=["fenced_code", "sane_lists"])
        return md

    def render(self, text: str | None) -> Markup:
        if not text:
            return Markup("")
        md = self._markdown()
        md.reset()
        html = md.convert(text)
        return Markup(self.scrubber.scrub(html))
