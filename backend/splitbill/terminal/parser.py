"""
Tokenizing for the bill terminal.

split_commands() turns one submitted line into individual command strings;
parse_command_args() turns one command string into [verb, *args].

Quoting is the same everywhere: a ' or " opens a quoted run that only the same
character closes, there are no escapes, and an unterminated quote runs to the end
of the input. Separators inside a quoted run are never split points.
"""

from typing import Iterator

QUOTE_CHARS = ("'", '"')
CHAINED_VERB = "add"


def _scan(text: str) -> Iterator[tuple[int, str, bool, bool]]:
    """
    Yield (index, char, quoted, delimiter) for every char.
    quoted is True for the quote chars themselves and everything between them;
    delimiter is True only for the opening and closing quote chars.
    """
    quote_char = None
    for i, char in enumerate(text):
        if quote_char is None and char in QUOTE_CHARS:
            quote_char = char
            yield i, char, True, True
        elif quote_char is not None and char == quote_char:
            quote_char = None
            yield i, char, True, True
        else:
            yield i, char, quote_char is not None, False


def _split_at(text: str, positions: list[int], skip: int) -> list[str]:
    """Cut text at each position (dropping `skip` chars there); trim pieces, drop empties."""
    pieces = []
    start = 0
    for pos in positions:
        pieces.append(text[start:pos])
        start = pos + skip
    pieces.append(text[start:])
    return [piece.strip() for piece in pieces if piece.strip()]


def _unquoted(text: str, separator: str) -> list[int]:
    return [i for i, char, quoted, _ in _scan(text) if char == separator and not quoted]


def _starts_with_verb(text: str, verb: str) -> bool:
    head = text[:len(verb)]
    rest = text[len(verb):len(verb) + 1]
    return head.lower() == verb and (rest == "" or rest.isspace())


def _chained_boundaries(text: str, verb: str = CHAINED_VERB) -> list[int]:
    """
    Positions of unquoted whitespace that is followed by `<verb><whitespace>`,
    where the command being closed has at least one argument after its own verb.
    """
    if not _starts_with_verb(text, verb):
        return []

    width = len(verb)
    boundaries = []
    start = 0
    for i, char, quoted, _ in _scan(text):
        if quoted or not char.isspace():
            continue
        after = i + 1
        if not _starts_with_verb(text[after:], verb) or after + width >= len(text):
            continue
        if text[start:i].strip().lower() == verb:
            continue
        boundaries.append(i)
        start = after
    return boundaries


def split_commands(line: str) -> list[str]:
    """
    Split a submitted line into commands, first matching rule wins:
    unquoted ';' , then unquoted newlines, then chained `add ... add ...`,
    otherwise the whole line is one command.
    """
    text = line.strip()
    if not text:
        return []

    for separator in (";", "\n"):
        positions = _unquoted(text, separator)
        if positions:
            return _split_at(text, positions, skip=1)

    boundaries = _chained_boundaries(text)
    if boundaries:
        return _split_at(text, boundaries, skip=1)

    return [text]


def parse_command_args(command: str) -> list[str]:
    """Split a command on unquoted whitespace; quote chars are removed, empty tokens dropped."""
    args = []
    current = []
    for _, char, quoted, delimiter in _scan(command):
        if delimiter:
            continue
        if char.isspace() and not quoted:
            token = "".join(current).strip()
            if token:
                args.append(token)
            current = []
        else:
            current.append(char)

    token = "".join(current).strip()
    if token:
        args.append(token)
    return args
