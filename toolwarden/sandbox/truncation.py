"""UTF-8 safe output truncation.

Truncation is always a prefix operation and never cuts inside a multi-byte
code point. The metadata always reports the size of the original content.
"""

from __future__ import annotations

from dataclasses import dataclass

# Display-oriented caps for text returned to the model.
DEFAULT_MAX_LINES = 2000
DEFAULT_MAX_BYTES = 50 * 1024


@dataclass(frozen=True)
class TruncationMetadata:
    truncated: bool
    original_lines: int
    original_bytes: int


@dataclass(frozen=True)
class TruncationResult:
    output: str
    metadata: TruncationMetadata


def utf8_length(content: str) -> int:
    """Byte length of ``content`` encoded as UTF-8."""
    # surrogatepass: lone surrogates still count as the 3 bytes they occupy
    return len(content.encode("utf-8", errors="surrogatepass"))


def count_lines(content: str) -> int:
    """Number of lines, counting a trailing newline as starting an empty line."""
    if not content:
        return 0
    return content.count("\n") + 1


def _utf8_char_size(char: str) -> int:
    code_point = ord(char)
    if code_point < 0x80:
        return 1
    if code_point < 0x800:
        return 2
    if code_point < 0x10000:
        return 3
    return 4


def _line_prefix_end(content: str, max_lines: int) -> int:
    """Index where line ``max_lines + 1`` would start (its newline excluded)."""
    index = -1
    for _ in range(max_lines):
        index = content.find("\n", index + 1)
        if index == -1:
            return len(content)
    return index


def truncate_output(
    content: str,
    max_lines: int = DEFAULT_MAX_LINES,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> TruncationResult:
    """Bound ``content`` to ``max_lines`` lines and ``max_bytes`` UTF-8 bytes.

    Returns the content unchanged when both caps hold. Otherwise returns the
    longest prefix that stays within both caps without splitting a code point.

    Raises:
        ValueError: If either cap is not positive.
    """
    if max_lines <= 0 or max_bytes <= 0:
        raise ValueError("max_lines and max_bytes must be positive")

    original_lines = count_lines(content)
    original_bytes = utf8_length(content)

    if original_lines <= max_lines and original_bytes <= max_bytes:
        return TruncationResult(
            output=content,
            metadata=TruncationMetadata(
                truncated=False,
                original_lines=original_lines,
                original_bytes=original_bytes,
            ),
        )

    # Lines first (cheap slice), then walk code points for the byte budget.
    candidate = content[: _line_prefix_end(content, max_lines)]
    end = 0
    used = 0
    for char in candidate:
        size = _utf8_char_size(char)
        if used + size > max_bytes:
            break
        used += size
        end += 1

    return TruncationResult(
        output=candidate[:end],
        metadata=TruncationMetadata(
            truncated=True,
            original_lines=original_lines,
            original_bytes=original_bytes,
        ),
    )
