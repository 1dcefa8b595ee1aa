"""Row-level tenant isolation for club-owned tables.

Every data-access call against a tenant-scoped model goes through
`TenantScopedStore`, which is bound to one club id at construction:

- reads (find/count/aggregate/group_by): club_id merged into the filter
- create / create_many: club_id stamped into every payload
- update / delete (single, bulk, upsert): club_id merged into the filter,
  and club_id in update payloads is pinned to the bound club

Caller-supplied club_id values are always overridden, so a handle bound to
club A cannot express a read or write against club B. A row owned by another
club is simply "not found"; no distinguishable authorization error is raised.

Models outside TENANT_SCOPED_MODELS pass through unmodified.
"""

from enum import Enum
from typing import Any, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from clubhub_api.db.models import Base, LedgerAccount, Member

TENANT_COLUMN = "club_id"

TENANT_SCOPED_MODELS: frozenset[type[Base]] = frozenset({Member, LedgerAccount})


class Operation(str, Enum):
    """Data-access operations understood by the scoper."""

    FIND_MANY = "find_many"
    FIND_FIRST = "find_first"
    FIND_UNIQUE = "find_unique"
    COUNT = "count"
    AGGREGATE = "aggregate"
    GROUP_BY = "group_by"
    CREATE = "create"
    CREATE_MANY = "create_many"
    UPDATE = "update"
    UPDATE_MANY = "update_many"
    DELETE = "delete"
    DELETE_MANY = "delete_many"
    UPSERT = "upsert"


READ_OPERATIONS = frozenset({
    Operation.FIND_MANY,
    Operation.FIND_FIRST,
    Operation.FIND_UNIQUE,
    Operation.COUNT,
    Operation.AGGREGATE,
    Operation.GROUP_BY,
})

FILTERED_WRITE_OPERATIONS = frozenset({
    Operation.UPDATE,
    Operation.UPDATE_MANY,
    Operation.DELETE,
    Operation.DELETE_MANY,
    Operation.UPSERT,
})


def is_tenant_scoped(model: type[Base]) -> bool:
    return model in TENANT_SCOPED_MODELS


def scope_query_args(
    model: type[Base],
    operation: Operation,
    args: dict[str, Any],
    club_id: str,
) -> dict[str, Any]:
    """Return a copy of `args` constrained to `club_id`.

    Pure function: performs no I/O and never mutates `args`.

    Args:
        model: ORM model the operation targets
        operation: Operation being performed
        args: Operation arguments ("where", "data", "create", "update")
        club_id: Club the caller is bound to

    Returns:
        New argument dict with the tenant filter/stamp applied
    """
    if not is_tenant_scoped(model):
        return args

    scoped = dict(args)

    if operation in READ_OPERATIONS or operation in FILTERED_WRITE_OPERATIONS:
        scoped["where"] = {**(args.get("where") or {}), TENANT_COLUMN: club_id}

    if operation == Operation.CREATE:
        scoped["data"] = {**(args.get("data") or {}), TENANT_COLUMN: club_id}

    if operation == Operation.CREATE_MANY:
        data = args.get("data")
        if isinstance(data, (list, tuple)):
            scoped["data"] = [{**row, TENANT_COLUMN: club_id} for row in data]
        else:
            scoped["data"] = {**(data or {}), TENANT_COLUMN: club_id}

    if operation in (Operation.UPDATE, Operation.UPDATE_MANY) and args.get("data") is not None:
        # Rows can never be moved into another club
        scoped["data"] = {**args["data"], TENANT_COLUMN: club_id}

    if operation == Operation.UPSERT:
        scoped["create"] = {**(args.get("create") or {}), TENANT_COLUMN: club_id}
        scoped["update"] = {**(args.get("update") or {}), TENANT_COLUMN: club_id}

    return scoped


def _apply_order(query: Query, model: type[Base], order_by: Optional[Sequence[str]]) -> Query:
    for field in order_by or ():
        if field.startswith("-"):
            query = query.order_by(getattr(model, field[1:]).desc())
        else:
            query = query.order_by(getattr(model, field).asc())
    return query


class TenantScopedStore:
    """Data-access handle bound to a single club.

    Wraps a SQLAlchemy Session; every call is rewritten by
    `scope_query_args` before it reaches the database.
    """

    def __init__(self, session: Session, club_id: str):
        if not club_id:
            raise ValueError("TenantScopedStore requires a club_id")
        self.session = session
        self.club_id = club_id

    def _scope(self, model: type[Base], operation: Operation, **args: Any) -> dict[str, Any]:
        return scope_query_args(model, operation, args, self.club_id)

    # -- reads -------------------------------------------------------------

    def find_many(
        self,
        model: type[Base],
        where: Optional[dict[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Any]:
        args = self._scope(model, Operation.FIND_MANY, where=where)
        query = self.session.query(model).filter_by(**(args["where"] or {}))
        query = _apply_order(query, model, order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def find_first(
        self,
        model: type[Base],
        where: Optional[dict[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> Optional[Any]:
        args = self._scope(model, Operation.FIND_FIRST, where=where)
        query = self.session.query(model).filter_by(**(args["where"] or {}))
        return _apply_order(query, model, order_by).first()

    def find_unique(self, model: type[Base], id: str) -> Optional[Any]:
        args = self._scope(model, Operation.FIND_UNIQUE, where={"id": id})
        return self.session.query(model).filter_by(**args["where"]).one_or_none()

    def count(self, model: type[Base], where: Optional[dict[str, Any]] = None) -> int:
        args = self._scope(model, Operation.COUNT, where=where)
        return self.session.query(model).filter_by(**(args["where"] or {})).count()

    def aggregate(
        self,
        model: type[Base],
        column: str,
        fn: str = "sum",
        where: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Run sum/min/max/avg over one column."""
        if fn not in ("sum", "min", "max", "avg"):
            raise ValueError(f"Unsupported aggregate function: {fn}")
        args = self._scope(model, Operation.AGGREGATE, where=where)
        agg = getattr(func, fn)(getattr(model, column))
        return self.session.query(agg).filter_by(**(args["where"] or {})).scalar()

    def group_by(
        self,
        model: type[Base],
        column: str,
        where: Optional[dict[str, Any]] = None,
    ) -> dict[Any, int]:
        """Count rows per distinct value of `column`."""
        args = self._scope(model, Operation.GROUP_BY, where=where)
        col = getattr(model, column)
        rows = (
            self.session.query(col, func.count())
            .select_from(model)
            .filter_by(**(args["where"] or {}))
            .group_by(col)
            .all()
        )
        return {value: count for value, count in rows}

    # -- writes ------------------------------------------------------------

    def create(self, model: type[Base], data: dict[str, Any]) -> Any:
        args = self._scope(model, Operation.CREATE, data=data)
        obj = model(**args["data"])
        self.session.add(obj)
        self.session.flush()
        return obj

    def create_many(self, model: type[Base], data: Sequence[dict[str, Any]]) -> int:
        args = self._scope(model, Operation.CREATE_MANY, data=list(data))
        rows = args["data"] if isinstance(args["data"], list) else [args["data"]]
        self.session.add_all([model(**row) for row in rows])
        self.session.flush()
        return len(rows)

    def update(
        self,
        model: type[Base],
        where: dict[str, Any],
        data: dict[str, Any],
    ) -> Optional[Any]:
        """Update the first matching row; None when nothing matches."""
        args = self._scope(model, Operation.UPDATE, where=where, data=data)
        obj = self.session.query(model).filter_by(**args["where"]).first()
        if obj is None:
            return None
        for key, value in args["data"].items():
            setattr(obj, key, value)
        self.session.flush()
        return obj

    def update_many(
        self,
        model: type[Base],
        where: Optional[dict[str, Any]],
        data: dict[str, Any],
    ) -> int:
        args = self._scope(model, Operation.UPDATE_MANY, where=where, data=data)
        return (
            self.session.query(model)
            .filter_by(**(args["where"] or {}))
            .update(args["data"], synchronize_session="fetch")
        )

    def delete(self, model: type[Base], where: dict[str, Any]) -> Optional[Any]:
        """Delete the first matching row; None when nothing matches."""
        args = self._scope(model, Operation.DELETE, where=where)
        obj = self.session.query(model).filter_by(**args["where"]).first()
        if obj is None:
            return None
        self.session.delete(obj)
        self.session.flush()
        return obj

    def delete_many(self, model: type[Base], where: Optional[dict[str, Any]] = None) -> int:
        args = self._scope(model, Operation.DELETE_MANY, where=where)
        return (
            self.session.query(model)
            .filter_by(**(args["where"] or {}))
            .delete(synchronize_session="fetch")
        )

    def upsert(
        self,
        model: type[Base],
        where: dict[str, Any],
        create: dict[str, Any],
        update: dict[str, Any],
    ) -> Any:
        args = self._scope(model, Operation.UPSERT, where=where, create=create, update=update)
        obj = self.session.query(model).filter_by(**args["where"]).first()
        if obj is None:
            obj = model(**args["create"])
            self.session.add(obj)
        else:
            for key, value in args["update"].items():
                setattr(obj, key, value)
        self.session.flush()
        return obj
