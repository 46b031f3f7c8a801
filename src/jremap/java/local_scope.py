"""Java local scope tracking.

Separated from the binder to keep `binder.py` focused on reference resolution.
"""

from __future__ import annotations

from jremap.core.models import VariableBinding


class LocalScope:
    """Tracks parameters and local variables visible at a point in a body.

    Scopes nest: a block, lambda or method body gets a child scope whose
    declarations shadow, but never modify, the enclosing ones.
    """

    def __init__(self, parent: LocalScope | None = None) -> None:
        """Initialize an empty local scope.

        Args:
            parent: The enclosing scope, if any.
        """
        self._parent = parent
        self._variables: dict[str, VariableBinding] = {}

    def add_parameter(self, binding: VariableBinding) -> None:
        """Add a method or lambda parameter to scope."""
        self._variables[binding.name] = binding

    def add_variable(self, binding: VariableBinding) -> None:
        """Add a local variable declaration to scope."""
        self._variables[binding.name] = binding

    def lookup(self, name: str) -> VariableBinding | None:
        """Look up a variable by name, innermost scope first.

        Args:
            name: The variable name to look up.

        Returns:
            The binding if found, None otherwise.
        """
        scope: LocalScope | None = self
        while scope is not None:
            binding = scope._variables.get(name)
            if binding is not None:
                return binding
            scope = scope._parent
        return None

    def get_type(self, name: str) -> str | None:
        """Look up a variable's erased type by name."""
        binding = self.lookup(name)
        return binding.type_name if binding is not None else None

    def child(self) -> LocalScope:
        """Create a nested scope (blocks, lambdas, local classes)."""
        return LocalScope(self)
