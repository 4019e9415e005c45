"""Template parser.

Builds an immutable node tree from lexer tokens with a recursive-descent
parser. Blocks are matched strictly by nesting: every ``{{ end }}`` closes
the innermost open ``if`` or ``range``. Filter names and variable references
are checked here, so a template that parses can only fail at render time on
data-dependent problems.
"""

import re
from dataclasses import dataclass

from stencil.exceptions import (
    MalformedExpressionError,
    UnbalancedBlockError,
    UnknownFilterError,
)

from ._filters import FilterRegistry, default_registry
from ._lexer import ActionLexer, TemplateLexer, Token, TokenType
from ._nodes import (
    ActionNode,
    ArgumentNode,
    BoolNode,
    ChainNode,
    CommandNode,
    CommentNode,
    DotNode,
    FieldNode,
    IdentifierNode,
    IfNode,
    NilNode,
    NumberNode,
    PipelineNode,
    RangeNode,
    StringNode,
    TemplateNode,
    TextNode,
    VariableNode,
)

KEYWORDS = frozenset({"if", "else", "end", "range"})
UNSUPPORTED_ACTIONS = frozenset(
    {"with", "define", "template", "block", "break", "continue"}
)

_OCTAL_PATTERN = re.compile(r"[+-]?0[0-7_]+")


def _tag(word: str) -> str:
    return "{{" + word + "}}"


class _ItemStream:
    """Cursor over the items of one action."""

    def __init__(self, items: list[Token]) -> None:
        self.items: list[Token] = items
        self.index: int = 0
        self.previous: Token | None = None

    def peek(self, ahead: int = 0) -> Token:
        return self.items[min(self.index + ahead, len(self.items) - 1)]

    def next(self) -> Token:
        token = self.peek()
        if token.type is not TokenType.EOF:
            self.index += 1
        self.previous = token
        return token

    def peek_type(self, ahead: int = 0) -> TokenType:
        return self.peek(ahead).type


@dataclass(frozen=True, slots=True)
class _Clause:
    """An ``else`` or ``end`` action that terminated a node list."""

    keyword: str
    action: Token
    stream: _ItemStream


class TemplateParser:
    """Recursive-descent parser for templates.

    Args:
        source: Template text.
        name: Template name for error messages.
        registry: Filters that identifiers may name.
    """

    def __init__(
        self,
        source: str,
        *,
        name: str | None = None,
        registry: FilterRegistry | None = None,
    ) -> None:
        self.source: str = source
        self.name: str | None = name
        self.registry: FilterRegistry = (
            default_registry() if registry is None else registry
        )
        self._lexer: TemplateLexer = TemplateLexer(source, name=name)
        self.tokens: list[Token] = []
        self.position: int = 0
        self._scopes: list[set[str]] = [{""}]

    def parse(self) -> tuple[TemplateNode, ...]:
        """Parse the whole template.

        Returns:
            The top-level nodes.

        Raises:
            MalformedExpressionError: On invalid action syntax.
            UnknownFilterError: If an action names an unregistered filter.
            UnbalancedBlockError: On a stray or missing ``end`` or ``else``.
        """
        self.tokens = self._lexer.tokenize()
        self.position = 0
        nodes, clause = self._parse_list()
        if clause is not None:
            msg = f"unexpected {_tag(clause.keyword)}"
            raise self._unbalanced(msg, clause.action)
        return nodes

    # Structure

    def _parse_list(self) -> tuple[tuple[TemplateNode, ...], _Clause | None]:
        """Parse nodes until EOF or an ``else``/``end`` action."""
        nodes: list[TemplateNode] = []
        while True:
            token = self.tokens[self.position]
            if token.type is TokenType.EOF:
                return tuple(nodes), None
            self.position += 1

            if token.type is TokenType.TEXT:
                nodes.append(
                    TextNode(token.value, line=token.line, column=token.column)
                )
                continue
            if token.type is TokenType.COMMENT:
                nodes.append(
                    CommentNode(token.value, line=token.line, column=token.column)
                )
                continue

            lexer = ActionLexer(token, locator=self._lexer.locator, name=self.name)
            stream = _ItemStream(lexer.tokenize())
            first = stream.peek()
            if first.type is TokenType.IDENTIFIER and first.value in ("else", "end"):
                stream.next()
                return tuple(nodes), _Clause(first.value, token, stream)
            nodes.append(self._parse_action(token, stream))

    def _parse_body(
        self, declared: set[str]
    ) -> tuple[tuple[TemplateNode, ...], _Clause | None]:
        self._scopes.append(set(declared))
        try:
            return self._parse_list()
        finally:
            self._scopes.pop()

    def _parse_action(self, action: Token, stream: _ItemStream) -> TemplateNode:
        first = stream.peek()
        if first.type is TokenType.IDENTIFIER:
            if first.value == "if":
                stream.next()
                pipeline = self._parse_pipeline(stream, action, allow_declaration=True)
                self._expect_end(stream, action)
                return self._parse_if_rest(action, pipeline, set())
            if first.value == "range":
                stream.next()
                return self._parse_range(action, stream)
            if first.value in UNSUPPORTED_ACTIONS:
                msg = f"unsupported action {_tag(first.value)}"
                raise self._malformed(msg, action, first)

        pipeline = self._parse_pipeline(stream, action, allow_declaration=True)
        self._expect_end(stream, action)
        self._scopes[-1].update(pipeline.declarations)
        return ActionNode(pipeline, line=action.line, column=action.column)

    def _parse_if_rest(
        self, action: Token, pipeline: PipelineNode, inherited: set[str]
    ) -> IfNode:
        declared = inherited | set(pipeline.declarations)
        body, clause = self._parse_body(declared)
        if clause is None:
            raise self._unbalanced(f"missing {_tag('end')} for {_tag('if')}", action)

        else_body: tuple[TemplateNode, ...] = ()
        if clause.keyword == "else":
            stream = clause.stream
            following = stream.peek()
            if following.type is TokenType.IDENTIFIER and following.value == "if":
                stream.next()
                nested_pipeline = self._parse_pipeline(
                    stream, clause.action, allow_declaration=True
                )
                self._expect_end(stream, clause.action)
                nested = self._parse_if_rest(clause.action, nested_pipeline, declared)
                return IfNode(
                    pipeline,
                    body,
                    (nested,),
                    line=action.line,
                    column=action.column,
                )
            self._expect_end(stream, clause.action)
            else_body, clause = self._parse_body(declared)
            if clause is None:
                raise self._unbalanced(
                    f"missing {_tag('end')} for {_tag('if')}", action
                )
            if clause.keyword == "else":
                msg = f"unexpected {_tag('else')} after {_tag('else')}"
                raise self._unbalanced(msg, clause.action)

        self._expect_end(clause.stream, clause.action)
        return IfNode(pipeline, body, else_body, line=action.line, column=action.column)

    def _parse_range(self, action: Token, stream: _ItemStream) -> RangeNode:
        index_var: str | None = None
        value_var: str | None = None

        if stream.peek_type() is TokenType.VARIABLE:
            if stream.peek_type(1) is TokenType.DECLARE:
                value_var = self._declared_name(stream.next(), action)
                stream.next()
            elif (
                stream.peek_type(1) is TokenType.COMMA
                and stream.peek_type(2) is TokenType.VARIABLE
                and stream.peek_type(3) is TokenType.DECLARE
            ):
                index_var = self._declared_name(stream.next(), action)
                stream.next()
                value_var = self._declared_name(stream.next(), action)
                stream.next()

        pipeline = self._parse_pipeline(stream, action, allow_declaration=False)
        self._expect_end(stream, action)

        declared = {name for name in (index_var, value_var) if name}
        body, clause = self._parse_body(declared)
        if clause is None:
            raise self._unbalanced(f"missing {_tag('end')} for {_tag('range')}", action)

        else_body: tuple[TemplateNode, ...] = ()
        if clause.keyword == "else":
            self._expect_end(clause.stream, clause.action)
            else_body, clause = self._parse_body(set())
            if clause is None:
                raise self._unbalanced(
                    f"missing {_tag('end')} for {_tag('range')}", action
                )
            if clause.keyword == "else":
                msg = f"unexpected {_tag('else')} after {_tag('else')}"
                raise self._unbalanced(msg, clause.action)

        self._expect_end(clause.stream, clause.action)
        return RangeNode(
            index_var,
            value_var,
            pipeline,
            body,
            else_body,
            line=action.line,
            column=action.column,
        )

    # Pipelines

    def _parse_pipeline(
        self, stream: _ItemStream, action: Token, *, allow_declaration: bool
    ) -> PipelineNode:
        start = stream.peek()
        declarations: tuple[str, ...] = ()

        if start.type is TokenType.VARIABLE:
            following = stream.peek_type(1)
            if following is TokenType.DECLARE:
                if not allow_declaration:
                    raise self._malformed("unexpected declaration", action, start)
                declarations = (self._declared_name(stream.next(), action),)
                stream.next()
            elif following is TokenType.ASSIGN:
                raise self._malformed(
                    "variable assignment is not supported", action, start
                )
            elif following is TokenType.COMMA and allow_declaration:
                raise self._malformed("too many declarations", action, start)

        first_command = stream.peek()
        commands: list[CommandNode] = [self._parse_command(stream, action)]
        while stream.peek_type() is TokenType.PIPE:
            stream.next()
            command = self._parse_command(stream, action)
            if not isinstance(command.args[0], IdentifierNode):
                msg = "cannot pipe into a non-filter operand"
                raise self._malformed(msg, action, stream.previous or start)
            commands.append(command)

        for stage, command in enumerate(commands):
            self._check_arity(command, action, piped=stage > 0)

        end = stream.previous.end if stream.previous else start.position
        text = self.source[first_command.position : end].strip()
        return PipelineNode(
            declarations,
            tuple(commands),
            text,
            line=start.line,
            column=start.column,
        )

    def _check_arity(self, command: CommandNode, action: Token, *, piped: bool) -> None:
        """Reject filter calls whose argument count the filter cannot take.

        A filter named outside command position is called with no arguments.
        """
        head, *rest = command.args
        calls: list[tuple[IdentifierNode, int]] = []
        if isinstance(head, IdentifierNode):
            calls.append((head, len(rest) + int(piped)))
        calls.extend((arg, 0) for arg in rest if isinstance(arg, IdentifierNode))
        for node, count in calls:
            function = self.registry.get(node.name)
            if function is not None and not function.accepts(count):
                raise self._malformed(function.arity_message(count), action, node)

    def _parse_command(self, stream: _ItemStream, action: Token) -> CommandNode:
        start = stream.peek()
        args: list[ArgumentNode] = []
        while stream.peek_type() not in (
            TokenType.EOF,
            TokenType.PIPE,
            TokenType.RPAREN,
        ):
            args.append(self._parse_operand(stream, action))

        if not args:
            raise self._malformed("missing value for command", action, start)
        head = args[0]
        if isinstance(head, NilNode):
            raise self._malformed("nil is not a command", action, start)
        if len(args) > 1 and not isinstance(head, IdentifierNode):
            msg = "cannot give arguments to a non-filter"
            raise self._malformed(msg, action, start)
        return CommandNode(tuple(args), line=start.line, column=start.column)

    def _parse_operand(self, stream: _ItemStream, action: Token) -> ArgumentNode:
        token = stream.next()
        position = {"line": token.line, "column": token.column}

        match token.type:
            case TokenType.FIELD:
                names = (token.value[1:], *self._parse_chain(stream))
                return FieldNode(names, **position)
            case TokenType.DOT:
                return DotNode(**position)
            case TokenType.VARIABLE:
                name = token.value[1:]
                if not any(name in scope for scope in self._scopes):
                    msg = f"undefined variable {token.value}"
                    raise self._malformed(msg, action, token)
                return VariableNode(name, self._parse_chain(stream), **position)
            case TokenType.IDENTIFIER:
                if token.value in KEYWORDS or token.value in UNSUPPORTED_ACTIONS:
                    msg = f"unexpected keyword {token.value!r} in operand"
                    raise self._malformed(msg, action, token)
                if token.value not in self.registry:
                    raise UnknownFilterError(
                        f'filter "{token.value}" not defined',
                        template=self.name,
                        expression=action.value.strip(),
                        line=token.line,
                        column=token.column,
                    )
                return IdentifierNode(token.value, **position)
            case TokenType.STRING:
                return StringNode(token.value, **position)
            case TokenType.NUMBER:
                return NumberNode(
                    self._parse_number(token, action), token.value, **position
                )
            case TokenType.BOOL:
                return BoolNode(token.value == "true", **position)
            case TokenType.NIL:
                return NilNode(**position)
            case TokenType.LPAREN:
                pipeline = self._parse_pipeline(stream, action, allow_declaration=False)
                closing = stream.next()
                if closing.type is not TokenType.RPAREN:
                    raise self._malformed("unclosed left paren", action, token)
                fields = self._parse_chain(stream)
                if fields:
                    return ChainNode(pipeline, fields, **position)
                return pipeline
            case TokenType.EOF:
                raise self._malformed("unexpected end of action", action, token)
            case _:
                msg = f"unexpected {token.value!r} in operand"
                raise self._malformed(msg, action, token)

    def _parse_chain(self, stream: _ItemStream) -> tuple[str, ...]:
        """Collect ``.Field`` items written directly after an operand."""
        names: list[str] = []
        while (
            stream.peek_type() is TokenType.FIELD
            and stream.previous is not None
            and stream.peek().position == stream.previous.end
        ):
            names.append(stream.next().value[1:])
        return tuple(names)

    def _parse_number(self, token: Token, action: Token) -> int | float:
        text = token.value.replace("_", "")
        try:
            lowered = text.lower()
            if lowered.lstrip("+-").startswith(("0x", "0b", "0o")):
                return int(text, 0)
            if _OCTAL_PATTERN.fullmatch(token.value):
                return int(text, 8)
            if any(marker in lowered for marker in (".", "e")):
                return float(text)
            return int(text)
        except ValueError:
            msg = f"bad number syntax: {token.value!r}"
            raise self._malformed(msg, action, token) from None

    # Helpers

    def _declared_name(self, token: Token, action: Token) -> str:
        if token.value == "$":
            raise self._malformed("cannot declare $", action, token)
        return token.value[1:]

    def _expect_end(self, stream: _ItemStream, action: Token) -> None:
        token = stream.peek()
        if token.type is not TokenType.EOF:
            msg = f"unexpected {token.value!r} in action"
            raise self._malformed(msg, action, token)

    def _malformed(
        self, message: str, action: Token, token: Token | TemplateNode
    ) -> MalformedExpressionError:
        return MalformedExpressionError(
            message,
            template=self.name,
            expression=action.value.strip(),
            line=token.line,
            column=token.column,
        )

    def _unbalanced(self, message: str, action: Token) -> UnbalancedBlockError:
        return UnbalancedBlockError(
            message,
            template=self.name,
            expression=action.value.strip(),
            line=action.line,
            column=action.column,
        )


def parse_template(
    source: str,
    *,
    name: str | None = None,
    registry: FilterRegistry | None = None,
) -> tuple[TemplateNode, ...]:
    """Parse template source into nodes.

    Args:
        source: Template text.
        name: Template name for error messages.
        registry: Filters available to the template. Defaults to the
            standard registry.

    Returns:
        The top-level nodes.
    """
    return TemplateParser(source, name=name, registry=registry).parse()
