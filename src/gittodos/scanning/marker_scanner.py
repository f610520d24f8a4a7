"""Line-oriented scanning for TODO markers."""

import re
from typing import Iterator, List, Optional, Sequence, Union

from gittodos.models import TodoMatch

# Same heuristic git uses to decide a blob is binary
BINARY_SNIFF_BYTES = 8000

COMMENT_OPENERS = (r"//", r"#", r"--", r"/\*", r"<!--", r";", r"%", r'"""', r"'''")


def is_binary(content: bytes) -> bool:
    """Whether content looks binary (contains a NUL byte near the start)."""
    return b"\0" in content[:BINARY_SNIFF_BYTES]


def _split_labels(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [label.strip() for label in raw.split(",") if label.strip()]


class MarkerMatches:
    """Re-iterable, lazily evaluated matches for one file.

    Every iteration rescans the same content, so callers can walk the
    matches more than once.
    """

    def __init__(self, path: str, lines: Sequence[str], pattern: "re.Pattern[str]") -> None:
        self.path = path
        self._lines = lines
        self._pattern = pattern

    def __iter__(self) -> Iterator[TodoMatch]:
        for index, line in enumerate(self._lines):
            match = self._pattern.search(line)
            if match is None:
                continue
            text = line.strip()
            if not text:
                continue
            yield TodoMatch(
                line_number=index + 1,
                text=text,
                labels=_split_labels(match.group("labels")),
            )

    def __bool__(self) -> bool:
        return any(True for _ in self)


class MarkerScanner:
    """Finds lines containing marker tokens such as ``TODO``.

    Matching is syntax-agnostic: the token must appear as a whole word,
    case-insensitively. With ``require_comment`` the token must also be
    preceded somewhere on the line by a comment opener (``//``, ``#``,
    ``--``, ``/*``, ``<!--``, ``;``, ``%``, a docstring quote, or a leading
    ``*`` continuation). ``TODO(a, b)`` annotations are exposed as labels.
    """

    def __init__(
        self,
        tokens: Sequence[str] = ("todo",),
        require_comment: bool = False,
        max_file_size_bytes: Optional[int] = 1_000_000,
    ) -> None:
        """Initialize the scanner.

        Args:
            tokens: Marker tokens to look for
            require_comment: Only match tokens inside something that looks like a comment
            max_file_size_bytes: Content larger than this yields no matches (None disables)
        """
        if not tokens:
            raise ValueError("At least one marker token is required")
        self.tokens = list(tokens)
        self.require_comment = require_comment
        self.max_file_size_bytes = max_file_size_bytes
        self.pattern = self._build_pattern(self.tokens, require_comment)

    @staticmethod
    def _build_pattern(tokens: Sequence[str], require_comment: bool) -> "re.Pattern[str]":
        alternatives = "|".join(re.escape(token) for token in tokens)
        marker = rf"\b(?:{alternatives})\b(?:\((?P<labels>[^)]*)\))?"
        if require_comment:
            openers = "|".join(COMMENT_OPENERS)
            marker = rf"(?:(?:{openers})|^\s*\*).*?{marker}"
        return re.compile(marker, re.IGNORECASE)

    def scan(self, path: str, content: Union[bytes, str]) -> MarkerMatches:
        """Scan one file's content.

        Args:
            path: File path, carried along for reporting
            content: Raw bytes or decoded text

        Returns:
            Matches in file order; empty for binary or oversized content
        """
        if isinstance(content, bytes):
            if self._too_large(len(content)) or is_binary(content):
                return MarkerMatches(path, [], self.pattern)
            text = content.decode("utf-8", errors="replace")
        else:
            if self._too_large(len(content.encode("utf-8"))) or "\0" in content[:BINARY_SNIFF_BYTES]:
                return MarkerMatches(path, [], self.pattern)
            text = content

        # Split on \n only so numbering agrees with git blame
        lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
        return MarkerMatches(path, lines, self.pattern)

    def _too_large(self, size: int) -> bool:
        return self.max_file_size_bytes is not None and size > self.max_file_size_bytes
