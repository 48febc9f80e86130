"""
Match results for rewritetools.

A successful match produces a ``Bindings`` object mapping variable names to
the sub-expressions they matched.  A failed match (and a rewriter that has
nothing to do) produces the ``NoMatch`` singleton.

Both support the same read-only lookups, so code can index a result before
checking which one it got:

    result = match(["+", slot("x"), segment("rest")], ["+", 1, 2, 3])
    result["x"]        # => 1
    result["rest"]     # => (2, 3)
    result.get("y")    # => None
"""

from typing import Any, Dict, Iterable, Mapping, Tuple, Union


class Bindings:
    """
    Read-only, dict-like view of the variables bound by a match.

    Slot variables map to a single expression, segment variables map to a
    tuple of expressions (possibly empty).  A match that binds nothing, such
    as a ground pattern, still returns a Bindings, and it is still truthy.

    The matcher never mutates a Bindings it has handed out; extending a
    match builds a new one.
    """

    __slots__ = ('_dict',)

    def __init__(self, pairs: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]] = ()):
        self._dict = dict(pairs)

    def __bool__(self) -> bool:
        return True

    def __getitem__(self, key: str):
        """The value bound to ``key``; KeyError if the name is unbound."""
        return self._dict[key]

    def get(self, key: str, default=None):
        return self._dict.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._dict

    def keys(self):
        return self._dict.keys()

    def values(self):
        return self._dict.values()

    def items(self):
        return self._dict.items()

    def __iter__(self):
        return iter(self._dict)

    def __len__(self) -> int:
        return len(self._dict)

    def __repr__(self) -> str:
        return f"Bindings({self._dict})"

    def __eq__(self, other):
        if isinstance(other, Bindings):
            return self._dict == other._dict
        return False

    def to_dict(self) -> Dict[str, Any]:
        """A fresh plain dict; changing it does not touch the Bindings."""
        return self._dict.copy()


class _NoMatch:
    """
    The one "nothing matched" / "nothing to rewrite" value.

    NoMatch is falsy, but so are some valid expressions (``0``, ``""``), so
    code that receives a rewriter result must test ``result is NoMatch``.
    It behaves as an empty Bindings for lookups and survives pickling as
    the same object.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoMatch"

    def __reduce__(self):
        return (_NoMatch, ())

    def __getitem__(self, key: str):
        raise KeyError(f"NoMatch has no binding for '{key}'")

    def get(self, key: str, default=None):
        return default

    def __contains__(self, key: str) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self):
        return iter(())


NoMatch = _NoMatch()
