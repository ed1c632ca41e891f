"""
Tokenizer for the expressions embedded in Drip tags and outputs.

Produces Lark ``Token`` objects whose types are the terminals declared in
``drip_grammar``. Punctuation and operator terminals carry a leading
underscore so Lark drops them from the reductions. LITERAL tokens keep the
converted native value in ``token.value``.
"""

import re
from typing import Iterator

from lark import Token

from drip.drip_config import dbg
from drip.drip_datatypes import DripSyntaxError

_TOKEN_RE = re.compile(r"""
    (?P<ws>\s+)
  | (?P<selector>%(?:assign|cycle|loop|when)\b)
  | (?P<string>'[^']*'|"[^"]*")
  | (?P<float>-?\d+\.\d+)
  | (?P<int>-?\d+)
  | (?P<dotdot>\.\.)
  | (?P<property>\.[A-Za-z_][\w-]*\??)
  | (?P<keyword>[A-Za-z_][\w-]*\??:)
  | (?P<word>[A-Za-z_][\w-]*\??)
  | (?P<op>==|!=|<>|>=|<=|[<>.|;=:,()\[\]])
""", re.VERBOSE)

SELECTORS = {
    "%assign": "_ASSIGN",
    "%cycle": "_CYCLE",
    "%loop": "_LOOP",
    "%when": "_WHEN",
}

OPERATORS = {
    "==": "_EQ",
    "!=": "_NEQ",
    "<>": "_NEQ",
    ">=": "_GE",
    "<=": "_LE",
    "<": "_LT",
    ">": "_GT",
    ".": "_DOT",
    "|": "_PIPE",
    ";": "_SEMICOLON",
    "=": "_EQUAL",
    ":": "_COLON",
    ",": "_COMMA",
    "(": "_LPAR",
    ")": "_RPAR",
    "[": "_LSQB",
    "]": "_RSQB",
}

WORD_OPERATORS = {
    "and": "_AND",
    "or": "_OR",
    "contains": "_CONTAINS",
    "in": "_IN",
}

WORD_LITERALS = {
    "true": True,
    "false": False,
    "nil": None,
    "null": None,
}

# Display forms used in "expecting ..." messages.
TERMINAL_TEXT = {
    **{v: repr(k) for k, v in OPERATORS.items() if k != "<>"},
    **{v: repr(k) for k, v in WORD_OPERATORS.items()},
    "_DOTDOT": "'..'",
    "_ASSIGN": "assignment",
    "_CYCLE": "cycle",
    "_LOOP": "loop",
    "_WHEN": "when",
    "LITERAL": "literal",
    "IDENTIFIER": "identifier",
    "KEYWORD": "keyword",
    "PROPERTY": "property",
    "$END": "end of input",
}


class Scanner:
    """Iterates over the tokens of one expression source string."""

    def __init__(self, source: str):
        self.source = source

    def _token(self, kind: str, value, pos: int) -> Token:
        return Token(kind, value, start_pos=pos, line=1, column=pos + 1)

    def __iter__(self) -> Iterator[Token]:
        src = self.source
        pos = 0
        while pos < len(src):
            m = _TOKEN_RE.match(src, pos)
            if m is None:
                raise DripSyntaxError(f"unexpected character {src[pos]!r} in {src!r}")
            group = m.lastgroup
            text = m.group()
            start, pos = pos, m.end()
            match group:
                case "ws":
                    continue
                case "selector":
                    yield self._token(SELECTORS[text], text, start)
                case "string":
                    yield self._token("LITERAL", text[1:-1], start)
                case "float":
                    yield self._token("LITERAL", float(text), start)
                case "int":
                    yield self._token("LITERAL", int(text), start)
                case "dotdot":
                    yield self._token("_DOTDOT", text, start)
                case "property":
                    yield self._token("PROPERTY", text[1:], start)
                case "keyword":
                    yield self._token("KEYWORD", text[:-1], start)
                case "word":
                    if text in WORD_OPERATORS:
                        yield self._token(WORD_OPERATORS[text], text, start)
                    elif text in WORD_LITERALS:
                        yield self._token("LITERAL", WORD_LITERALS[text], start)
                    else:
                        yield self._token("IDENTIFIER", text, start)
                case "op":
                    yield self._token(OPERATORS[text], text, start)

    def tokens(self):
        toks = list(self)
        dbg("scan", repr(self.source), "->", [t.type for t in toks])
        return toks


def describe_token(token: Token) -> str:
    """Human-readable form of a token for error messages."""
    if token.type == "$END":
        return "end of input"
    if token.type == "LITERAL":
        return f"literal {token.value!r}"
    if token.type in ("IDENTIFIER", "KEYWORD", "PROPERTY"):
        return f"{TERMINAL_TEXT[token.type]} {token.value!r}"
    return TERMINAL_TEXT.get(token.type, repr(str(token)))
