"""
Parses Drip expressions and tag statements.

Each call scans one source string and feeds the tokens through an LALR
parser whose reductions build the result directly. Nothing is shared
between calls except the immutable parse tables.
"""

from typing import Iterable, Union

from lark import Lark, Token
from lark.exceptions import UnexpectedToken
from lark.lexer import Lexer

from drip.drip_config import dbg
from drip.drip_datatypes import DripSyntaxError, Assignment, Cycle, LoopHeader, When
from drip.drip_expressions import Expression
from drip.drip_grammar import GRAMMAR
from drip.drip_scanner import Scanner, TERMINAL_TEXT, describe_token
from drip.drip_transformer import DripTransformer

Statement = Union[Expression, Assignment, Cycle, LoopHeader, When]

SELECTOR_PREFIX = {
    "assign": "%assign",
    "cycle": "%cycle",
    "loop": "%loop",
    "when": "%when",
}


class ScannerLexer(Lexer):
    """Adapts Scanner to Lark's lexer interface."""

    def __init__(self, lexer_conf):
        pass

    def lex(self, data):
        return iter(Scanner(data))


_lark_parser = Lark(
    GRAMMAR,
    parser="lalr",
    lexer=ScannerLexer,
    transformer=DripTransformer(),
)


# Start-form selectors are injected by the template layer, never typed by a user.
_SELECTORS = {"_ASSIGN", "_CYCLE", "_LOOP", "_WHEN"}


def _expected_text(expected) -> str:
    names = sorted(TERMINAL_TEXT.get(name, name) for name in expected if name not in _SELECTORS)
    return "{" + ", ".join(names) + "}"


def _convert_unexpected(e: UnexpectedToken) -> DripSyntaxError:
    return DripSyntaxError(
        f"parse error: unexpected {describe_token(e.token)}, expecting {_expected_text(e.expected)}"
    )


def parse_tokens(tokens: Iterable[Token]) -> Statement:
    """Run the parser over an already scanned token stream."""
    ip = _lark_parser.parse_interactive()
    end = 0
    try:
        for tok in tokens:
            ip.feed_token(tok)
            end = (tok.start_pos or 0) + len(str(tok))
        return ip.feed_token(Token("$END", "", start_pos=end, line=1, column=end + 1))
    except UnexpectedToken as e:
        raise _convert_unexpected(e) from None


def parse(source: str) -> Statement:
    """Parse any start form. The leading token decides which one."""
    dbg("parse", repr(source))
    return parse_tokens(Scanner(source).tokens())


def parse_expression(source: str) -> Expression:
    result = parse(source)
    if not isinstance(result, Expression):
        raise DripSyntaxError(f"parse error: expected an expression in {source!r}")
    return result


def parse_statement(selector: str, source: str) -> Statement:
    """Parse tag arguments with the given start form: assign, cycle, loop or when."""
    try:
        prefix = SELECTOR_PREFIX[selector]
    except KeyError:
        raise ValueError(f"unknown statement selector {selector!r}") from None
    return parse(f"{prefix} {source}")


def parse_loop(source: str) -> LoopHeader:
    return parse_statement("loop", source)


def parse_cycle(source: str) -> Cycle:
    return parse_statement("cycle", source)


def parse_assignment(source: str) -> Assignment:
    return parse_statement("assign", source)


def parse_when(source: str) -> When:
    return parse_statement("when", source)
