"""
Lumen abstract syntax tree
Statement and expression nodes produced by the parser; pure data
"""

from typing import List, Optional, Union
from dataclasses import dataclass, field

from lexing import Token


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class BlockExpression:
    statements: List['Statement'] = field(default_factory=list)


@dataclass(frozen=True)
class IfExpression:
    """`else_branch` is None, a block, or a nested if for `else if` chains"""
    condition: 'Expression'
    if_block: BlockExpression
    else_branch: Optional[Union[BlockExpression, 'IfExpression']] = None


@dataclass(frozen=True)
class BinaryExpression:
    left: 'Expression'
    operator: Token
    right: 'Expression'


@dataclass(frozen=True)
class UnaryExpression:
    operator: Token
    right: 'Expression'


@dataclass(frozen=True)
class GroupExpression:
    child: 'Expression'


@dataclass(frozen=True)
class CallExpression:
    identifier: Token
    arguments: List['Expression'] = field(default_factory=list)


@dataclass(frozen=True)
class IdentifierExpression:
    identifier: Token


@dataclass(frozen=True)
class LiteralExpression:
    token: Token


@dataclass(frozen=True)
class ArrayExpression:
    """Array literal; elements are literal or identifier tokens"""
    elements: List[Token] = field(default_factory=list)


Expression = Union[
    BlockExpression, IfExpression, BinaryExpression, UnaryExpression, GroupExpression,
    CallExpression, IdentifierExpression, LiteralExpression, ArrayExpression
]


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class LetStatement:
    identifier: Token
    expression: Expression


@dataclass(frozen=True)
class AssignmentStatement:
    identifier: Token
    expression: Expression


@dataclass(frozen=True)
class Parameter:
    identifier: Token
    is_variadic: bool = False

    @property
    def name(self) -> str:
        return self.identifier.lexeme


@dataclass(frozen=True)
class FunctionStatement:
    identifier: Token
    parameters: List[Parameter]
    block: BlockExpression


@dataclass(frozen=True)
class ReturnStatement:
    keyword: Token
    expression: Optional[Expression] = None


@dataclass(frozen=True)
class ExpressionStatement:
    expression: Expression


Statement = Union[
    LetStatement, AssignmentStatement, FunctionStatement, ReturnStatement, ExpressionStatement
]

Program = List[Statement]


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def node_label(node) -> str:
    """Short one-line description of a node"""
    if isinstance(node, (LetStatement, AssignmentStatement)):
        return f"{type(node).__name__}({node.identifier.lexeme})"
    if isinstance(node, FunctionStatement):
        params = ", ".join(
            p.name + ("..." if p.is_variadic else "") for p in node.parameters
        )
        return f"FunctionStatement({node.identifier.lexeme}({params}))"
    if isinstance(node, (BinaryExpression, UnaryExpression)):
        return f"{type(node).__name__}({node.operator.lexeme})"
    if isinstance(node, (CallExpression, IdentifierExpression)):
        return f"{type(node).__name__}({node.identifier.lexeme})"
    if isinstance(node, LiteralExpression):
        return f"LiteralExpression({node.token.lexeme})"
    if isinstance(node, ArrayExpression):
        return f"ArrayExpression([{', '.join(t.lexeme for t in node.elements)}])"
    return type(node).__name__


def node_children(node) -> list:
    """Direct child nodes in source order"""
    if isinstance(node, (LetStatement, AssignmentStatement, ExpressionStatement)):
        return [node.expression]
    if isinstance(node, ReturnStatement):
        return [node.expression] if node.expression is not None else []
    if isinstance(node, FunctionStatement):
        return [node.block]
    if isinstance(node, BlockExpression):
        return list(node.statements)
    if isinstance(node, IfExpression):
        children = [node.condition, node.if_block]
        if node.else_branch is not None:
            children.append(node.else_branch)
        return children
    if isinstance(node, BinaryExpression):
        return [node.left, node.right]
    if isinstance(node, UnaryExpression):
        return [node.right]
    if isinstance(node, GroupExpression):
        return [node.child]
    if isinstance(node, CallExpression):
        return list(node.arguments)
    return []


def pretty_print_ast(node, indent: int = 0) -> str:
    """Pretty print an AST node for debugging"""
    result = "  " * indent + node_label(node) + "\n"
    for child in node_children(node):
        result += pretty_print_ast(child, indent + 1)
    return result


def find_nodes_by_type(node, node_type: type) -> list:
    """Find all nodes of a specific type below (and including) node"""
    result = []

    def search(current):
        if isinstance(current, node_type):
            result.append(current)
        for child in node_children(current):
            search(child)

    search(node)
    return result
