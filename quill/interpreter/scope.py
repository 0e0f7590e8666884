"""
Lexical scopes for the Quill evaluator.

A scope owns a name -> value dict and keeps a plain reference to its
parent. Scopes are created for the program, each call, each for loop and
each catch clause; blocks reuse the enclosing scope.

Author: xwest
"""

from typing import Any, Dict, Iterator, Optional


class Scope:
    """One level of the scope chain."""

    def __init__(self, parent: Optional['Scope'] = None):
        self.values: Dict[str, Any] = {}
        self.parent = parent

    def define(self, name: str, value: Any):
        """Bind `name` in this scope, shadowing outer bindings."""
        self.values[name] = value

    def resolve(self, name: str) -> Optional['Scope']:
        """Return the nearest scope that binds `name`, or None."""
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.values:
                return scope
            scope = scope.parent
        return None

    def assign(self, name: str, value: Any):
        """Update the nearest binding of `name`, or define it here."""
        owner = self.resolve(name)
        if owner is None:
            owner = self
        owner.values[name] = value

    def chain(self) -> Iterator['Scope']:
        scope: Optional[Scope] = self
        while scope is not None:
            yield scope
            scope = scope.parent

    def __contains__(self, name: str) -> bool:
        return self.resolve(name) is not None

    def __repr__(self) -> str:
        depth = sum(1 for _ in self.chain()) - 1
        return f"Scope(depth={depth}, names={sorted(self.values)})"
