from __future__ import annotations

import html
import re
from pathlib import Path

from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_for_filename
from pygments.lexers.special import TextLexer
from pygments.util import ClassNotFound

from .errors import DocumentError

# .code path/to/file.py #L3-L9
# .html fragment.html
DIRECTIVE_RE = re.compile(r"^\.(?P<kind>code|html)\s+(?P<path>\S+)(?:\s+#L(?P<start>\d+)(?:-L(?P<end>\d+))?)?\s*$")


def select_lines(text: str, start: int | None, end: int | None, name: str) -> tuple[str, int]:
    if start is None:
        return text, 1
    lines = text.splitlines()
    end = start if end is None else end
    if start < 1 or end < start or end > len(lines):
        raise DocumentError(f"line range L{start}-L{end} is outside {name} ({len(lines)} lines)")
    return "\n".join(lines[start - 1 : end]) + "\n", start


class DirectivePreprocessor(Preprocessor):
    # Registered after fenced_code so directive lines inside fences stay literal.

    def __init__(self, md, base_dir: Path):
        super().__init__(md)
        self.base_dir = base_dir

    def run(self, lines: list[str]) -> list[str]:
        out = []
        for line in lines:
            match = DIRECTIVE_RE.match(line)
            if not match:
                out.append(line)
                continue
            fragment = self.expand(match)
            out.extend(["", self.md.htmlStash.store(fragment), ""])
        return out

    def expand(self, match: re.Match) -> str:
        name = match.group("path")
        path = self.base_dir / name
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            raise DocumentError(f"couldn't read .{match.group('kind')} file {name}: {exc}") from exc
        if match.group("kind") == "html":
            return text
        start = match.group("start")
        end = match.group("end")
        snippet, first_line = select_lines(
            text, int(start) if start else None, int(end) if end else None, name
        )
        return self.highlight(snippet, path, first_line)

    def highlight(self, code: str, path: Path, first_line: int) -> str:
        try:
            lexer = get_lexer_for_filename(path.name, stripnl=False)
        except ClassNotFound:
            lexer = TextLexer()
        formatter = HtmlFormatter(cssclass="codehilite", linenos="table", linenostart=first_line)
        caption = f'<figcaption class="code-source">{html.escape(path.name)}</figcaption>'
        return f'<figure class="code">{caption}{highlight(code, lexer, formatter)}</figure>'


class DirectiveExtension(Extension):
    def __init__(self, base_dir: Path, **kwargs):
        super().__init__(**kwargs)
        self.base_dir = base_dir

    def extendMarkdown(self, md):
        md.preprocessors.register(DirectivePreprocessor(md, self.base_dir), "weblog_directives", 22)
