from __future__ import annotations

import json
from typing import Any, Optional

import yaml

from frutta.frutta_datatypes import (
    Accessor, Assign, BinaryOp, Block, Boolean, Call, ExprStatement, Fn,
    Identifier, If, Node, Number, Return, String,
)
from frutta.frutta_tokens import TokenType


# --------------------------
# AST <-> plain data
# --------------------------

def to_data(node: Any) -> Any:
    """Convert an AST node (or list of nodes) into plain dicts/lists/scalars.

    Every node becomes a dict with a 'tag' key; positions are kept under 'pos'
    when known.
    """
    if isinstance(node, list):
        return [to_data(n) for n in node]
    if not isinstance(node, Node):
        raise TypeError(f"Cannot serialize {type(node).__name__}")

    match node:
        case Number(value=value):
            out = {'tag': 'number', 'value': value}
        case Boolean(value=value):
            out = {'tag': 'boolean', 'value': value}
        case String(value=value):
            out = {'tag': 'string', 'value': value}
        case Identifier(name=name):
            out = {'tag': 'identifier', 'name': name}
        case Accessor(segments=segments):
            out = {'tag': 'accessor', 'segments': to_data(segments)}
        case Call(callee=callee, args=args):
            out = {'tag': 'call', 'callee': to_data(callee), 'args': to_data(args)}
        case BinaryOp(op=op, lhs=lhs, rhs=rhs):
            out = {'tag': 'binary-op', 'op': op.value, 'lhs': to_data(lhs), 'rhs': to_data(rhs)}
        case ExprStatement(expr=expr):
            out = {'tag': 'expr', 'expr': to_data(expr)}
        case Return(expr=expr):
            out = {'tag': 'return', 'expr': to_data(expr)}
        case Block(statements=statements):
            out = {'tag': 'block', 'statements': to_data(statements)}
        case Fn(name=name, params=params, body=body):
            out = {'tag': 'fn', 'name': name, 'params': list(params), 'body': to_data(body)}
        case Assign(name=name, value=value):
            out = {'tag': 'assign', 'name': name, 'value': to_data(value)}
        case If(condition=condition, body=body, else_body=else_body):
            out = {'tag': 'if', 'condition': to_data(condition),
                   'body': to_data(body), 'else_body': to_data(else_body)}
        case _:
            raise TypeError(f"Cannot serialize {type(node).__name__}")
    if node.pos is not None:
        out['pos'] = node.pos
    return out


def from_data(data: Any) -> Any:
    """Inverse of to_data."""
    if isinstance(data, list):
        return [from_data(d) for d in data]
    if not isinstance(data, dict) or 'tag' not in data:
        raise ValueError(f"Not a serialized Frutta node: {data!r}")

    pos = data.get('pos')
    match data['tag']:
        case 'number':
            return Number(data['value'], pos=pos)
        case 'boolean':
            return Boolean(bool(data['value']), pos=pos)
        case 'string':
            return String(data['value'], pos=pos)
        case 'identifier':
            return Identifier(data['name'], pos=pos)
        case 'accessor':
            return Accessor(from_data(data['segments']), pos=pos)
        case 'call':
            return Call(from_data(data['callee']), from_data(data['args']), pos=pos)
        case 'binary-op':
            return BinaryOp(TokenType(data['op']), from_data(data['lhs']), from_data(data['rhs']), pos=pos)
        case 'expr':
            return ExprStatement(from_data(data['expr']), pos=pos)
        case 'return':
            return Return(from_data(data['expr']), pos=pos)
        case 'block':
            return Block(from_data(data['statements']), pos=pos)
        case 'fn':
            return Fn(data['name'], list(data['params']), from_data(data['body']), pos=pos)
        case 'assign':
            return Assign(data['name'], from_data(data['value']), pos=pos)
        case 'if':
            return If(from_data(data['condition']), from_data(data['body']),
                      from_data(data.get('else_body') or []), pos=pos)
    raise ValueError(f"Unknown node tag: {data['tag']!r}")


# --------------------------
# Public API
# --------------------------

def detect_format(data_hint: str) -> str:
    """'json' when the text looks like JSON, else 'yaml' (YAML is a superset)."""
    s = data_hint.lstrip()
    if s.startswith('{') or s.startswith('['):
        return 'json'
    return 'yaml'


def serialize(node: Any, *, fmt: str = 'json', pretty: bool = True) -> str:
    """Convert an AST into text.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = to_data(node)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def deserialize(text: str, *, fmt: Optional[str] = None) -> Any:
    """Rebuild an AST from JSON or YAML text. If fmt is None, the format is sniffed."""
    f = (fmt or detect_format(text)).lower()
    if f == 'json':
        built = json.loads(text)
    elif f == 'yaml':
        built = yaml.safe_load(text)
    else:
        raise ValueError(f"Unsupported serialization format: {fmt!r}")
    return from_data(built)


__all__ = [
    "to_data",
    "from_data",
    "serialize",
    "deserialize",
    "detect_format",
]
