"""Parse gosub source text into lark syntax trees.

The lark tree is an intermediate form. `gosub.ast.build_ast` converts it to
the arena based AST that the rest of the pipeline works with.
"""

__all__ = ["parse", "SemicolonPostLex"]

import lark
from lark.lark import PostLex

import gosub

# Token types that end a statement when followed by a newline
_SEMI_TRIGGERS = frozenset({
    "NAME", "INT", "STRING", "RETURN", "BREAK", "CONTINUE",
    "INC", "DEC", "_RPAR", "_RBRACE",
})

_parsers = {}


class SemicolonPostLex(PostLex):
    """Turn newlines into statement terminators.

    A newline becomes a `;` when the token before it can end a statement,
    otherwise it is dropped. The end of input counts as a newline.
    """

    always_accept = ("NL",)

    def process(self, stream):
        prev = None
        for token in stream:
            if token.type == "NL":
                if prev is not None and prev.type in _SEMI_TRIGGERS:
                    yield lark.Token.new_borrow_pos("_SEMI", ";", token)
                prev = None
                continue
            yield token
            prev = token
        if prev is not None and prev.type in _SEMI_TRIGGERS:
            yield lark.Token.new_borrow_pos("_SEMI", ";", prev)


def parse(text, filename=None):
    """Parse the source of one file.

    Args:
        text: (str) Source code
        filename: (str | None) Source filename for error messages

    Returns:
        (lark.Tree) Syntax tree

    Raises:
        gosub.ParseError: If the text contains invalid syntax
    """
    parser = _lark_parser("gosub")
    try:
        return parser.parse(text)
    except lark.exceptions.UnexpectedInput as e:
        position = gosub.ast.SourcePosition(
            filename=filename,
            start_line=getattr(e, "line", None),
            start_column=getattr(e, "column", None),
        )
        raise gosub.ParseError(_describe(e), position, filename=filename) from e
    except lark.exceptions.LarkError as e:
        raise gosub.ParseError(str(e), filename=filename) from e


def _describe(error):
    """Short message for an unexpected token or character."""
    if isinstance(error, lark.exceptions.UnexpectedToken):
        token = error.token
        if token.type == "$END":
            return "unexpected end of file"
        if token.type == "_SEMI":
            return "unexpected newline"
        return f"unexpected {token.value!r}"
    if isinstance(error, lark.exceptions.UnexpectedCharacters):
        return f"invalid character {error.char!r}"
    return "invalid syntax"


def _lark_parser(name):
    """Get globally shared lark parser.

    Args:
        name: (str) name of the grammar file (without .lark)

    Returns:
        (lark.Lark) Parser instance
    """
    parser = _parsers.get(name)
    if parser is not None:
        return parser

    path = f"lark/{name}.lark"
    parser = lark.Lark.open(
        path,
        rel_to=__file__,
        parser="lalr",
        propagate_positions=True,
        maybe_placeholders=True,
        postlex=SemicolonPostLex(),
    )
    _parsers[name] = parser
    return parser
