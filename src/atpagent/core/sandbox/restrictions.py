"""Static and runtime restrictions applied to generated snippets.

The interpreter is locked down in two layers: a compile-time pass over the
AST, and a trimmed builtins table whose ``__import__`` only hands out
public-attribute copies of a few pure modules. No exposed callable may turn
a string into an attribute lookup, since the static pass cannot see those.
"""

from __future__ import annotations

import ast
import importlib
import types
from typing import Any

from .errors import ExecutionFault

SANDBOX_FILENAME = "<sandbox>"
RESULT_NAME = "__result__"

# Module name -> exported names; None falls back to the module's __all__.
# Not exported: operator (attrgetter, methodcaller), functools.singledispatch
# (evaluates string annotations) and string.Formatter.
ALLOWED_IMPORTS: dict[str, frozenset[str] | None] = {
    "collections": None,
    "datetime": None,
    "functools": frozenset({"cache", "cmp_to_key", "lru_cache", "partial", "reduce"}),
    "itertools": None,
    "json": None,
    "math": None,
    "random": None,
    "re": None,
    "statistics": None,
    "string": frozenset(
        {
            "ascii_letters",
            "ascii_lowercase",
            "ascii_uppercase",
            "capwords",
            "digits",
            "hexdigits",
            "octdigits",
            "printable",
            "punctuation",
            "whitespace",
        }
    ),
}

# Frame, generator, coroutine, traceback and code objects lead back to host
# globals through these attributes.
_INTROSPECTION_PREFIXES = ("f_", "gi_", "cr_", "ag_", "tb_", "co_")

# str.format and str.format_map resolve "{0.attr}" fields by name.
_FORMAT_ATTRIBUTES = frozenset({"format", "format_map"})


def is_forbidden_attribute(name: str) -> bool:
    return name.startswith("_") or name.startswith(_INTROSPECTION_PREFIXES) or name in _FORMAT_ATTRIBUTES


def _safe_getattr(obj: Any, name: str, *default: Any) -> Any:
    if is_forbidden_attribute(name):
        raise AttributeError(f"access to attribute '{name}' is not allowed")
    return getattr(obj, name, *default)


def _safe_hasattr(obj: Any, name: str) -> bool:
    if is_forbidden_attribute(name):
        return False
    return hasattr(obj, name)


def _public_namespace(module: types.ModuleType, exported: frozenset[str] | None) -> types.SimpleNamespace:
    names = exported if exported is not None else getattr(module, "__all__", None)
    public = {
        key: value
        for key, value in vars(module).items()
        if not key.startswith("_")
        and not isinstance(value, types.ModuleType)
        and (names is None or key in names)
    }
    return types.SimpleNamespace(**public)


def _restricted_import(name, globals=None, locals=None, fromlist=(), level=0):
    if level:
        raise ImportError("Relative imports are not allowed in the sandbox")
    top_level = name.split(".")[0]
    if top_level not in ALLOWED_IMPORTS:
        raise ImportError(f"Import of '{name}' is not allowed in the sandbox")
    return _public_namespace(importlib.import_module(top_level), ALLOWED_IMPORTS[top_level])


SAFE_BUILTINS: dict[str, Any] = {
    "abs": abs,
    "all": all,
    "any": any,
    "bin": bin,
    "bool": bool,
    "callable": callable,
    "chr": chr,
    "dict": dict,
    "divmod": divmod,
    "enumerate": enumerate,
    "filter": filter,
    "float": float,
    "format": format,
    "frozenset": frozenset,
    "getattr": _safe_getattr,
    "hasattr": _safe_hasattr,
    "hash": hash,
    "hex": hex,
    "int": int,
    "isinstance": isinstance,
    "iter": iter,
    "len": len,
    "list": list,
    "map": map,
    "max": max,
    "min": min,
    "next": next,
    "oct": oct,
    "ord": ord,
    "pow": pow,
    "range": range,
    "repr": repr,
    "reversed": reversed,
    "round": round,
    "set": set,
    "slice": slice,
    "sorted": sorted,
    "str": str,
    "sum": sum,
    "tuple": tuple,
    "zip": zip,
    "ArithmeticError": ArithmeticError,
    "AttributeError": AttributeError,
    "Exception": Exception,
    "ImportError": ImportError,
    "IndexError": IndexError,
    "KeyError": KeyError,
    "LookupError": LookupError,
    "RuntimeError": RuntimeError,
    "StopIteration": StopIteration,
    "TypeError": TypeError,
    "ValueError": ValueError,
    "ZeroDivisionError": ZeroDivisionError,
}


def build_builtins() -> dict[str, Any]:
    builtins = dict(SAFE_BUILTINS)
    builtins["__import__"] = _restricted_import
    return builtins


class _SnippetValidator(ast.NodeVisitor):
    def visit_Attribute(self, node: ast.Attribute) -> None:
        if is_forbidden_attribute(node.attr):
            self._reject(node, f"access to attribute '{node.attr}' is not allowed")
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            self._reject(node, f"name '{node.id}' is not allowed")

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._reject(node, "class definitions are not allowed")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        for alias in node.names:
            if alias.name == "*" or alias.name.startswith("_"):
                self._reject(node, f"import of '{alias.name}' is not allowed")

    def _reject(self, node: ast.AST, message: str) -> None:
        raise ExecutionFault(f"{message} (line {getattr(node, 'lineno', '?')})", kind="forbidden")


def compile_snippet(code: str) -> types.CodeType:
    """Validate ``code`` and compile it so the last expression lands in ``RESULT_NAME``.

    The code object allows top-level ``await``; evaluating it yields a
    coroutine when the snippet awaits anything.
    """
    try:
        tree = ast.parse(code, filename=SANDBOX_FILENAME, mode="exec")
    except SyntaxError as exc:
        raise ExecutionFault(f"SyntaxError: {exc.msg} (line {exc.lineno})", kind="syntax", cause=exc) from exc

    _SnippetValidator().visit(tree)

    if tree.body and isinstance(tree.body[-1], ast.Expr):
        last = tree.body[-1]
        tree.body[-1] = ast.copy_location(
            ast.Assign(targets=[ast.Name(id=RESULT_NAME, ctx=ast.Store())], value=last.value),
            last,
        )
    ast.fix_missing_locations(tree)

    try:
        return compile(tree, SANDBOX_FILENAME, "exec", flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT)
    except SyntaxError as exc:
        raise ExecutionFault(f"SyntaxError: {exc.msg} (line {exc.lineno})", kind="syntax", cause=exc) from exc
