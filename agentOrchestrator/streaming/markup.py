"""Streaming filter for tool calls that models write as inline text markup.

Some models emit ``<tool_call>{...}</tool_call>`` in their content instead of
structured tool-call fragments. The filter sees the text in arbitrary
chunks, so it holds back anything that may still turn into markup:

    feed("Sure <to")          -> "Sure "          ("<to" held)
    feed("ol_call>{}</tool_") -> ""               (inside a block)
    feed("call> done")        -> " done"
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple

DEFAULT_MARKUP_TAGS: Tuple[str, ...] = ("tool_call", "function_call", "tool_use")


class InlineToolMarkupFilter:
    """Per-stream filter. Not shared between streams."""

    def __init__(self, tags: Iterable[str] = DEFAULT_MARKUP_TAGS):
        self.tags = tuple(tags)
        names = "|".join(re.escape(tag) for tag in self.tags)
        self._open_re = re.compile(rf"<({names})(?=[\s/>])[^>]*>")
        self._buffer = ""
        self._inside: Optional[str] = None

    def feed(self, text: str) -> str:
        """Add a chunk and return the text that is safe to emit now."""
        if not self.tags:
            return text

        self._buffer += text
        out = []
        while self._buffer:
            if self._inside is not None:
                close = f"</{self._inside}>"
                end = self._buffer.find(close)
                if end < 0:
                    break
                self._buffer = self._buffer[end + len(close):]
                self._inside = None
                continue

            match = self._open_re.search(self._buffer)
            if match:
                out.append(self._buffer[:match.start()])
                if not match.group(0).endswith("/>"):
                    self._inside = match.group(1)
                self._buffer = self._buffer[match.end():]
                continue

            hold_from = self._partial_tag_start(self._buffer)
            out.append(self._buffer[:hold_from])
            self._buffer = self._buffer[hold_from:]
            break

        return "".join(out)

    def finish(self) -> str:
        """End of stream: drop an unterminated block or open tag, flush the rest."""
        rest, self._buffer = self._buffer, ""
        if self._inside is not None:
            self._inside = None
            return ""
        if self._is_open_tag_start(rest):
            return ""
        return rest

    def _partial_tag_start(self, buffer: str) -> int:
        """Index where a possibly incomplete opening tag begins, else len(buffer)."""
        idx = buffer.rfind("<")
        if idx < 0:
            return len(buffer)
        suffix = buffer[idx:]
        if ">" in suffix:
            return len(buffer)
        for tag in self.tags:
            opener = f"<{tag}"
            if opener.startswith(suffix) or self._is_open_tag_start(suffix):
                return idx
        return len(buffer)

    def _is_open_tag_start(self, text: str) -> bool:
        for tag in self.tags:
            opener = f"<{tag}"
            if text == opener:
                return True
            if text.startswith(opener) and text[len(opener)] in " \t\r\n/":
                return True
        return False
