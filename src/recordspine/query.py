"""Boolean-tree WHERE builder with safe parameter binding.

A :class:`Query` is the root of a tree of :class:`Queryable` nodes. Each node
holds an ordered list of clauses: rendered comparisons, join tokens and
nested :class:`Subquery` nodes. Values never end up in the SQL text; every
comparison binds its value under a unique ``:name`` placeholder.

Architecture::

    Query (root)                          shape: cols, order, limit, ...
    ├── "col1 = :col1_1"
    ├── " AND "
    └── Subquery                          rendered as "( ... )"
        ├── "col2 = :col2_2"
        ├── " OR "
        └── "col3 != :col3_3"

Usage::

    query = Query()
    (query.get("*")
        .where({"col1": "val1"})
        .and_()                     # opens a Subquery
        .where("col2", "val2")
        .or_("col3", "!=", "val3")
        .limit(10))                 # forwarded to the root Query

    where, params = query.compile()
    # where  == "col1 = :col1_1 AND (col2 = :col2_2 OR col3 != :col3_3)"
    # params == {"col1_1": "val1", "col2_2": "val2", "col3_3": "val3"}

Nodes are mutable and meant to be built, compiled and discarded by one
caller; they are not safe to share across threads.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from recordspine.errors import ConstructionError, QueryError
from recordspine.params import param_id


class Join(str, Enum):
    """Operators used to join comparisons at one level of the tree."""

    AND = " AND "
    OR = " OR "


class FetchMode(str, Enum):
    """Row shape requested from the driver."""

    DICT = "dict"
    TUPLE = "tuple"
    BOTH = "both"


class Reference:
    """A column in another table, used as a comparison value for joins.

    ``where("orders.user_id", Reference("users", "id"))`` renders
    ``orders.user_id = users.id`` instead of binding a parameter.
    """

    def __init__(self, table: str, column: str, parent: Any = None) -> None:
        self.table = table
        self.column = column
        self.parent = parent

    @property
    def ref_name(self) -> str:
        return f"{self.table}.{self.column}"

    def __repr__(self) -> str:
        return f"Reference({self.table!r}, {self.column!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Reference):
            return NotImplemented
        return (self.table, self.column) == (other.table, other.column)

    def __hash__(self) -> int:
        return hash((self.table, self.column))


_NULL_OPERATORS = {"=": "IS NULL", "IS": "IS NULL", "!=": "IS NOT NULL", "<>": "IS NOT NULL", "IS NOT": "IS NOT NULL"}
_LIST_OPERATORS = {"IN", "NOT IN"}


class Queryable:
    """A node of the WHERE tree.

    Args:
        parent: The node that created this one (``None`` for the root).
        root: The top-level :class:`Query`.
        join: Join operator used between the comparisons of a mapping
            passed to :meth:`where`.
        op: Default comparison operator.
        namer: Placeholder name generator; defaults to the process-wide
            :func:`~recordspine.params.param_id`.
    """

    def __init__(
        self,
        *,
        parent: Queryable | None = None,
        root: Query | None = None,
        join: Join | str = Join.AND,
        op: str = "=",
        namer: Callable[[str], str] | None = None,
    ) -> None:
        try:
            join = Join(join)
        except ValueError:
            try:
                join = Join[str(join).strip().upper()]
            except KeyError:
                raise ConstructionError(f"Invalid join operator: {join!r}") from None
        if not isinstance(op, str) or not op.strip():
            raise ConstructionError(f"Invalid comparison operator: {op!r}")

        self._parent = parent
        self._root = root
        self.join: Join = join
        self.op: str = op
        self._namer = namer or param_id
        self._clauses: list[str | Queryable] = []
        self._params: dict[str, Any] = {}

    # -- Node configuration -----------------------------------------------

    def reset(self) -> Queryable:
        """Reset the WHERE tree and node configuration to a blank slate."""
        self.join = Join.AND
        self.op = "="
        self._clauses = []
        self._params = {}
        return self

    def with_and(self) -> Queryable:
        """Use AND between the comparisons of a mapping."""
        self.join = Join.AND
        return self

    def with_or(self) -> Queryable:
        """Use OR between the comparisons of a mapping."""
        self.join = Join.OR
        return self

    def with_op(self, op: str) -> Queryable:
        """Use a custom default comparison operator."""
        self.op = op
        return self

    # -- Building ---------------------------------------------------------

    def where(self, *args: Any) -> Queryable:
        """Add comparisons to this node.

        - ``where()``: open a :class:`Subquery`, append it, and return it.
        - ``where({"a": 1, "b": 2})``: one comparison per pair using the
          default operator, joined by the current :attr:`join`.
        - ``where("a", 1)``: ``a <op> :a_n``.
        - ``where("a", ">", 1)``: ``a > :a_n``.

        Returns the new sub-tree when called without arguments, else ``self``.
        """
        if not args:
            subquery = self.subquery()
            self._clauses.append(subquery)
            return subquery

        if len(args) == 1:
            (pairs,) = args
            if not isinstance(pairs, Mapping):
                raise QueryError(
                    f"where() with one argument needs a mapping, got {type(pairs).__name__}"
                )
            for index, (column, value) in enumerate(pairs.items()):
                if index:
                    self._clauses.append(self.join.value)
                self._add_comparison(column, self.op, value)
        elif len(args) == 2:
            column, value = args
            self._add_comparison(column, self.op, value)
        elif len(args) == 3:
            column, op, value = args
            self._add_comparison(column, op, value)
        else:
            raise QueryError(f"where() takes at most 3 arguments ({len(args)} given)")
        return self

    def and_(self, *args: Any) -> Queryable:
        """Append ``AND`` then delegate to :meth:`where` with the same arguments."""
        return self._joined(Join.AND, args)

    def or_(self, *args: Any) -> Queryable:
        """Append ``OR`` then delegate to :meth:`where` with the same arguments."""
        return self._joined(Join.OR, args)

    def _joined(self, join: Join, args: tuple[Any, ...]) -> Queryable:
        # an empty mapping adds no comparison, so no join token either
        if len(args) == 1 and isinstance(args[0], Mapping) and not args[0]:
            return self
        self._clauses.append(join.value)
        return self.where(*args)

    def _add_comparison(self, column: str, op: str, value: Any) -> None:
        if not isinstance(column, str) or not column:
            raise QueryError(f"Column name must be a non-empty string, got {column!r}")

        normalized = op.strip().upper()
        if isinstance(value, Reference):
            self._clauses.append(f"{column} {op} {value.ref_name}")
        elif value is None and normalized in _NULL_OPERATORS:
            self._clauses.append(f"{column} {_NULL_OPERATORS[normalized]}")
        elif normalized in _LIST_OPERATORS and isinstance(value, (list, tuple, set, frozenset)):
            names = []
            for item in value:
                name = self._namer(column)
                self._params[name] = item
                names.append(f":{name}")
            self._clauses.append(f"{column} {op} ({', '.join(names)})")
        else:
            name = self._namer(column)
            self._params[name] = value
            self._clauses.append(f"{column} {op} :{name}")

    # -- Compiling --------------------------------------------------------

    def compile(self) -> tuple[str, dict[str, Any]]:
        """Render the tree into ``(where_string, parameters)``.

        Sub-trees are compiled recursively and wrapped in parentheses; their
        parameters are merged into one flat mapping. Compiling does not
        change the tree, so repeated calls return identical output.
        """
        parts: list[str] = []
        params = dict(self._params)
        for clause in self._clauses:
            if isinstance(clause, Queryable):
                sub_where, sub_params = clause.compile()
                parts.append(f"({sub_where})")
                params.update(sub_params)
            else:
                parts.append(clause)
        return "".join(parts), params

    get_where = compile

    @property
    def is_empty(self) -> bool:
        return not self._clauses

    # -- Navigation -------------------------------------------------------

    def subquery(self, **opts: Any) -> Subquery:
        """Build a :class:`Subquery` without attaching it.

        Prefer ``where()``, ``and_()`` or ``or_()`` with no arguments, which
        attach the sub-tree for you.
        """
        opts.setdefault("namer", self._namer)
        return Subquery(parent=self, root=self._root, **opts)

    def back(self) -> Queryable | None:
        """The direct parent of this node."""
        return self._parent

    def root(self) -> Query | None:
        """The top-most :class:`Query`."""
        return self._root


@dataclass
class QueryShape:
    """Statement shape, orthogonal to the WHERE tree."""

    cols: str | list[str] | None = None
    column_data: dict[str, Any] | None = None
    order: str | None = None
    limit: int | None = None
    offset: int | None = None
    single: bool = False
    raw_row: bool = False
    raw_results: bool = False
    fetch: FetchMode | None = None
    tables: list[str] = field(default_factory=list)


class Query(Queryable):
    """The top-level query: a WHERE tree plus a :class:`QueryShape`.

    Example (assuming ``users`` is an :class:`~recordspine.sql.model.SQLModel`)::

        query = Query().get(["name", "job"]).where("age", ">", 19).and_("age", "<", 50)
        query.order("name").limit(10).offset(0)
        rows = users.select(query)
    """

    def __init__(self, **opts: Any) -> None:
        opts.pop("root", None)
        super().__init__(**opts)
        self._root = self
        self.shape = QueryShape()

    def reset(self) -> Query:
        """Reset the WHERE tree and the shape descriptor."""
        super().reset()
        self.shape = QueryShape()
        return self

    def get(self, cols: str | list[str]) -> Query:
        """Columns to return from a SELECT."""
        self.shape.cols = cols
        return self

    select = get

    def set(self, column_data: Mapping[str, Any]) -> Query:
        """Column values for an INSERT or UPDATE."""
        self.shape.column_data = dict(column_data)
        return self

    insert = set
    update = set

    def order(self, order: str) -> Query:
        """SQL sort order, e.g. ``"project ASC, id DESC"``."""
        self.shape.order = order
        return self

    sort = order

    def limit(self, limit: int) -> Query:
        self.shape.limit = limit
        return self

    def offset(self, offset: int) -> Query:
        self.shape.offset = offset
        return self

    def single(self, single: bool = True) -> Query:
        """Like ``LIMIT 1``, and makes ``select()`` return one record."""
        self.shape.single = single
        return self

    def raw(self) -> Query:
        """Return plain rows instead of records."""
        self.shape.raw_row = True
        self.shape.raw_results = True
        return self

    def as_tuple(self) -> Query:
        self.shape.fetch = FetchMode.TUPLE
        return self

    def as_both(self) -> Query:
        self.shape.fetch = FetchMode.BOTH
        return self

    def as_dict(self) -> Query:
        """Rows as column → value dicts (the default)."""
        self.shape.fetch = FetchMode.DICT
        return self

    def join_tables(self, *tables: str) -> Query:
        """Extra tables for an implicit join (``FROM a, b, c``)."""
        self.shape.tables.extend(tables)
        return self


class Subquery(Queryable):
    """A nested, parenthesized portion of a WHERE expression.

    Built through ``where()`` / ``and_()`` / ``or_()`` with no arguments.
    Any method it does not define is looked up on the root :class:`Query`, so
    shape setters can be chained straight after a nested sub-tree.
    """

    def __init__(self, **opts: Any) -> None:
        if opts.get("root") is None:
            raise ConstructionError("Subquery requires a root Query")
        super().__init__(**opts)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._root, name)


__all__ = [
    "Join",
    "FetchMode",
    "Reference",
    "Queryable",
    "QueryShape",
    "Query",
    "Subquery",
]
