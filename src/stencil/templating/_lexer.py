"""Lexical analysis of template text.

Tokenization happens in two stages. ``TemplateLexer`` splits a template into
literal text, actions (``{{ ... }}``) and comments (``{{/* ... */}}``),
resolving whitespace-trim markers as it goes, so that later stages only ever
see already-trimmed text. ``ActionLexer`` then splits the inside of a single
action into items such as fields, variables, literals and pipes.
"""

import bisect
import enum
import re
from dataclasses import dataclass

from stencil.exceptions import MalformedExpressionError

LEFT_DELIM = "{{"
RIGHT_DELIM = "}}"
LEFT_COMMENT = "/*"
RIGHT_COMMENT = "*/"
TRIM_MARKER = "-"
TRIM_SPACE = " \t\r\n"


class TokenType(enum.Enum):
    """Types of tokens produced by the lexers."""

    # Template level
    TEXT = "TEXT"
    ACTION = "ACTION"
    COMMENT = "COMMENT"
    EOF = "EOF"

    # Inside actions
    FIELD = "FIELD"  # .Name
    DOT = "DOT"  # .
    VARIABLE = "VARIABLE"  # $ or $name
    IDENTIFIER = "IDENTIFIER"  # filter names and keywords
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOL = "BOOL"
    NIL = "NIL"
    PIPE = "PIPE"  # |
    DECLARE = "DECLARE"  # :=
    ASSIGN = "ASSIGN"  # =
    COMMA = "COMMA"  # ,
    LPAREN = "LPAREN"  # (
    RPAREN = "RPAREN"  # )


@dataclass(frozen=True, slots=True)
class Token:
    """A token with position information for precise error reporting.

    Attributes:
        type: The token type.
        value: Token text. For ACTION and COMMENT tokens this is the content
            between the delimiters, without trim markers.
        position: Offset of the token in the template source.
        end: Offset just past the token in the template source.
        line: 1-based line number.
        column: 1-based column number.
    """

    type: TokenType
    value: str
    position: int
    end: int
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class SourceLocator:
    """Maps source offsets to line and column numbers."""

    def __init__(self, text: str) -> None:
        self._line_starts: list[int] = [0]
        self._line_starts.extend(m.end() for m in re.finditer("\n", text))

    def locate(self, offset: int) -> tuple[int, int]:
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index] + 1


class TemplateLexer:
    """Splits template text into text, action and comment tokens.

    Trim markers are resolved here: ``{{- `` strips all whitespace at the end
    of the preceding text and `` -}}`` strips all whitespace at the start of
    the following text. Text that becomes empty is dropped.
    """

    def __init__(self, text: str, *, name: str | None = None) -> None:
        self.text: str = text
        self.name: str | None = name
        self.locator: SourceLocator = SourceLocator(text)

    def tokenize(self) -> list[Token]:
        """Tokenize the whole template.

        Returns:
            Tokens in document order, ending with an EOF token.

        Raises:
            MalformedExpressionError: If an action or comment is not closed.
        """
        text = self.text
        tokens: list[Token] = []
        position = 0
        trim_next = False

        while position < len(text):
            start = text.find(LEFT_DELIM, position)
            if start == -1:
                self._emit_text(tokens, position, len(text), trim_left=trim_next)
                position = len(text)
                break

            trim_before = self._has_left_trim(start)
            self._emit_text(
                tokens, position, start, trim_left=trim_next, trim_right=trim_before
            )

            content_start = start + len(LEFT_DELIM)
            if trim_before:
                content_start += len(TRIM_MARKER) + 1
            token, trim_next, position = self._lex_action(start, content_start)
            tokens.append(token)

        line, column = self.locator.locate(position)
        tokens.append(Token(TokenType.EOF, "", position, position, line, column))
        return tokens

    def _has_left_trim(self, start: int) -> bool:
        marker = start + len(LEFT_DELIM)
        return (
            self.text.startswith(TRIM_MARKER, marker)
            and marker + 1 < len(self.text)
            and self.text[marker + 1] in TRIM_SPACE
        )

    def _lex_action(self, start: int, content_start: int) -> tuple[Token, bool, int]:
        """Lex one action or comment starting at ``start``.

        Returns:
            Tuple of (token, trim_right, position after the closing delimiter).
        """
        text = self.text
        if text.startswith(LEFT_COMMENT, content_start):
            return self._lex_comment(start, content_start)

        close = self._find_action_end(start, content_start)
        trim_right = (
            close - 2 >= content_start
            and text[close - 1] == TRIM_MARKER
            and text[close - 2] in TRIM_SPACE
        )
        content_end = close - 1 if trim_right else close
        line, column = self.locator.locate(start)
        token = Token(
            TokenType.ACTION,
            text[content_start:content_end],
            content_start,
            content_end,
            line,
            column,
        )
        return token, trim_right, close + len(RIGHT_DELIM)

    def _lex_comment(self, start: int, content_start: int) -> tuple[Token, bool, int]:
        text = self.text
        close = text.find(RIGHT_COMMENT, content_start + len(LEFT_COMMENT))
        if close == -1:
            raise self._error("unclosed comment", start)
        after = close + len(RIGHT_COMMENT)
        trim_right = False
        if text.startswith(RIGHT_DELIM, after):
            end = after + len(RIGHT_DELIM)
        elif (
            after < len(text)
            and text[after] in TRIM_SPACE
            and text.startswith(TRIM_MARKER + RIGHT_DELIM, after + 1)
        ):
            trim_right = True
            end = after + 1 + len(TRIM_MARKER) + len(RIGHT_DELIM)
        else:
            raise self._error("comment ends before closing delimiter", start)
        line, column = self.locator.locate(start)
        token = Token(
            TokenType.COMMENT,
            text[content_start + len(LEFT_COMMENT) : close],
            content_start,
            after,
            line,
            column,
        )
        return token, trim_right, end

    def _find_action_end(self, start: int, content_start: int) -> int:
        """Find the offset of the ``}}`` closing the action, skipping quotes."""
        text = self.text
        index = content_start
        while index < len(text):
            char = text[index]
            if char in "\"'":
                index = self._skip_quoted(index, char, start)
            elif char == "`":
                close = text.find("`", index + 1)
                if close == -1:
                    raise self._error("unterminated raw quoted string", index)
                index = close + 1
            elif text.startswith(RIGHT_DELIM, index):
                return index
            else:
                index += 1
        raise self._error("unclosed action", start)

    def _skip_quoted(self, index: int, quote: str, start: int) -> int:
        text = self.text
        index += 1
        while index < len(text):
            char = text[index]
            if char == "\\":
                index += 2
                continue
            if char == quote:
                return index + 1
            if char == "\n":
                break
            index += 1
        raise self._error("unterminated quoted string", start)

    def _emit_text(
        self,
        tokens: list[Token],
        start: int,
        end: int,
        *,
        trim_left: bool = False,
        trim_right: bool = False,
    ) -> None:
        value = self.text[start:end]
        if trim_left:
            stripped = value.lstrip(TRIM_SPACE)
            start += len(value) - len(stripped)
            value = stripped
        if trim_right:
            value = value.rstrip(TRIM_SPACE)
        if not value:
            return
        line, column = self.locator.locate(start)
        tokens.append(
            Token(TokenType.TEXT, value, start, start + len(value), line, column)
        )

    def _error(self, message: str, offset: int) -> MalformedExpressionError:
        line, column = self.locator.locate(offset)
        return MalformedExpressionError(
            message, template=self.name, line=line, column=column
        )


_NUMBER_PATTERN = re.compile(
    r"""
    [+-]?
    (?:
        0[xX][0-9a-fA-F_]+
      | 0[bB][01_]+
      | 0[oO][0-7_]+
      | (?:\d[\d_]*)?\.\d[\d_]*(?:[eE][+-]?\d+)?
      | \d[\d_]*\.?(?:[eE][+-]?\d+)?
    )
    """,
    re.VERBOSE,
)
_IDENTIFIER_PATTERN = re.compile(r"[^\W\d]\w*")
_SPACE_PATTERN = re.compile(r"\s+")

_KEYWORDS = {
    "true": TokenType.BOOL,
    "false": TokenType.BOOL,
    "nil": TokenType.NIL,
}

_SINGLE_CHARS = {
    "|": TokenType.PIPE,
    ",": TokenType.COMMA,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "=": TokenType.ASSIGN,
}

_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


class ActionLexer:
    """Splits the content of a single action into items.

    Positions of produced tokens are reported relative to the whole template
    so that errors point at the right line and column.
    """

    def __init__(
        self,
        action: Token,
        *,
        locator: SourceLocator,
        name: str | None = None,
    ) -> None:
        self.action: Token = action
        self.text: str = action.value
        self.name: str | None = name
        self._offset: int = action.position
        self.locator: SourceLocator = locator
        self.position: int = 0

    def tokenize(self) -> list[Token]:
        """Tokenize the action content.

        Returns:
            Item tokens in order, ending with an EOF token.

        Raises:
            MalformedExpressionError: On characters that cannot start an item.
        """
        tokens: list[Token] = []
        while True:
            token = self.next_token()
            tokens.append(token)
            if token.type is TokenType.EOF:
                return tokens

    def next_token(self) -> Token:
        """Extract the next item from the action content."""
        text = self.text
        space = _SPACE_PATTERN.match(text, self.position)
        if space:
            self.position = space.end()
        if self.position >= len(text):
            return self._make(TokenType.EOF, "", self.position, self.position)

        start = self.position
        char = text[start]

        if text.startswith(":=", start):
            return self._advance_to(TokenType.DECLARE, start, start + 2)
        if char in _SINGLE_CHARS:
            return self._advance_to(_SINGLE_CHARS[char], start, start + 1)
        if char == "$":
            match = _IDENTIFIER_PATTERN.match(text, start + 1)
            end = match.end() if match else start + 1
            return self._advance_to(TokenType.VARIABLE, start, end)
        if char == ".":
            match = _IDENTIFIER_PATTERN.match(text, start + 1)
            if match:
                return self._advance_to(TokenType.FIELD, start, match.end())
            number = _NUMBER_PATTERN.match(text, start)
            if number and number.end() > start + 1:
                return self._advance_to(TokenType.NUMBER, start, number.end())
            return self._advance_to(TokenType.DOT, start, start + 1)
        if char == '"':
            return self._lex_string(start)
        if char == "`":
            close = text.find("`", start + 1)
            if close == -1:
                raise self._error("unterminated raw quoted string", start)
            self.position = close + 1
            return self._make(
                TokenType.STRING, text[start + 1 : close], start, close + 1
            )
        if char.isdigit() or (char in "+-" and start + 1 < len(text)):
            number = _NUMBER_PATTERN.match(text, start)
            if number:
                return self._advance_to(TokenType.NUMBER, start, number.end())
        identifier = _IDENTIFIER_PATTERN.match(text, start)
        if identifier:
            word = identifier.group(0)
            token_type = _KEYWORDS.get(word, TokenType.IDENTIFIER)
            return self._advance_to(token_type, start, identifier.end())

        msg = f"unexpected {char!r} in command"
        raise self._error(msg, start)

    def _lex_string(self, start: int) -> Token:
        text = self.text
        chars: list[str] = []
        index = start + 1
        while index < len(text):
            char = text[index]
            if char == '"':
                self.position = index + 1
                return self._make(TokenType.STRING, "".join(chars), start, index + 1)
            if char == "\\" and index + 1 < len(text):
                escape = text[index + 1]
                if escape in _ESCAPES:
                    chars.append(_ESCAPES[escape])
                    index += 2
                    continue
                if escape in "xuU":
                    width = {"x": 2, "u": 4, "U": 8}[escape]
                    digits = text[index + 2 : index + 2 + width]
                    if len(digits) != width or not all(
                        d in "0123456789abcdefABCDEF" for d in digits
                    ):
                        raise self._error("invalid escape in string", index)
                    chars.append(chr(int(digits, 16)))
                    index += 2 + width
                    continue
                raise self._error(f"unknown escape sequence \\{escape}", index)
            chars.append(char)
            index += 1
        raise self._error("unterminated quoted string", start)

    def _advance_to(self, token_type: TokenType, start: int, end: int) -> Token:
        self.position = end
        return self._make(token_type, self.text[start:end], start, end)

    def _make(self, token_type: TokenType, value: str, start: int, end: int) -> Token:
        line, column = self.locator.locate(self._offset + start)
        return Token(
            token_type, value, self._offset + start, self._offset + end, line, column
        )

    def _error(self, message: str, offset: int) -> MalformedExpressionError:
        line, column = self.locator.locate(self._offset + offset)
        return MalformedExpressionError(
            message,
            template=self.name,
            expression=self.text.strip(),
            line=line,
            column=column,
        )


def tokenize_template(text: str, *, name: str | None = None) -> list[Token]:
    """Tokenize a template into text, action and comment tokens.

    Args:
        text: Template source.
        name: Template name used in error messages.

    Returns:
        List of tokens ending with EOF.

    Raises:
        MalformedExpressionError: If an action or comment is not closed.
    """
    return TemplateLexer(text, name=name).tokenize()
