"""
Filtering, sorting, pagination, field selection and population for list
endpoints.

Query strings look like ``?tuition[gte]=1000&select=title,tuition&sort=-tuition&page=2``.
Only fields declared for a collection may be filtered, selected or sorted on,
and filter values are coerced to the field's declared type before they reach
the store.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, Request
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from database import get_db, serialize

RESERVED_PARAMS = ("select", "sort", "limit", "page")
OPERATORS = ("gt", "gte", "lt", "lte", "in")
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT = [("created_at", DESCENDING)]

_PARAM_RE = re.compile(r"^(?P<field>[A-Za-z_][\w.]*)(?:\[(?P<op>\w+)\])?$")


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


Coercer = Callable[[str], Any]

# Coercers for the value types used by the collections
STRING: Coercer = str
INTEGER: Coercer = int
NUMBER: Coercer = float
BOOLEAN: Coercer = parse_bool
OBJECT_ID: Coercer = ObjectId
DATETIME: Coercer = datetime.fromisoformat


class FilterBuilder:
    """Maps query-string parameters onto store query documents for a fixed
    set of typed fields."""

    def __init__(self, fields: Mapping[str, Coercer]):
        self.fields = dict(fields)
        self.fields.setdefault("id", OBJECT_ID)
        self.fields.setdefault("created_at", DATETIME)

    @staticmethod
    def _store_field(field: str) -> str:
        return "_id" if field == "id" else field

    def _coerce(self, field: str, raw: str) -> Any:
        try:
            return self.fields[field](raw)
        except (ValueError, TypeError, InvalidId):
            raise HTTPException(status_code=400, detail=f"Invalid value for {field}: {raw}")

    def _check_field(self, field: str) -> None:
        if field not in self.fields:
            raise HTTPException(status_code=400, detail=f"Unknown field {field}")

    def build(self, params: Mapping[str, str]) -> dict:
        query: Dict[str, Any] = {}
        for key, raw in params.items():
            if key in RESERVED_PARAMS:
                continue
            match = _PARAM_RE.match(key)
            if not match:
                raise HTTPException(status_code=400, detail=f"Invalid query parameter {key}")
            field, op = match.group("field"), match.group("op")
            self._check_field(field)
            store_field = self._store_field(field)

            if op is None:
                query[store_field] = self._coerce(field, raw)
                continue
            if op not in OPERATORS:
                raise HTTPException(status_code=400, detail=f"Unsupported operator {op}")

            if op == "in":
                value = [self._coerce(field, item) for item in raw.split(",") if item]
            else:
                value = self._coerce(field, raw)
            condition = query.get(store_field)
            if not isinstance(condition, dict):
                condition = {}
            condition["$" + op] = value
            query[store_field] = condition
        return query

    def projection(self, select: Optional[str]) -> Optional[dict]:
        if not select:
            return None
        projection = {}
        for field in (f.strip() for f in select.split(",")):
            if not field:
                continue
            self._check_field(field)
            projection[self._store_field(field)] = 1
        return projection or None

    def sort(self, sort: Optional[str]) -> List[Tuple[str, int]]:
        if not sort:
            return list(DEFAULT_SORT)
        order = []
        for field in (f.strip() for f in sort.split(",")):
            if not field:
                continue
            direction = ASCENDING
            if field.startswith("-"):
                field, direction = field[1:], DESCENDING
            self._check_field(field)
            order.append((self._store_field(field), direction))
        return order or list(DEFAULT_SORT)


@dataclass(frozen=True)
class Populate:
    """Join another collection into each document.

    With ``foreign_field`` unset, ``field`` holds an id in ``collection`` and
    is replaced by that document. With ``foreign_field`` set, ``field`` is
    filled with every document of ``collection`` whose ``foreign_field``
    references the current one.
    """
    field: str
    collection: str
    select: Tuple[str, ...] = ()
    foreign_field: Optional[str] = None

    def _projection(self) -> Optional[dict]:
        if not self.select:
            return None
        projection = {name: 1 for name in self.select}
        if self.foreign_field:
            projection[self.foreign_field] = 1
        return projection


def populate(db: Database, docs: List[dict], join: Populate) -> List[dict]:
    if not docs:
        return docs
    target = db[join.collection]

    if join.foreign_field:
        ids = [doc["_id"] for doc in docs if "_id" in doc]
        grouped: Dict[Any, list] = {doc_id: [] for doc_id in ids}
        for related in target.find({join.foreign_field: {"$in": ids}}, join._projection()):
            grouped.setdefault(related.get(join.foreign_field), []).append(related)
        for doc in docs:
            doc[join.field] = grouped.get(doc.get("_id"), [])
        return docs

    ids = list({doc[join.field] for doc in docs if isinstance(doc.get(join.field), ObjectId)})
    related = {item["_id"]: item for item in target.find({"_id": {"$in": ids}}, join._projection())}
    for doc in docs:
        ref = doc.get(join.field)
        if ref in related:
            doc[join.field] = related[ref]
    return docs


def parse_positive_int(value: Optional[str], default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def run_query(db: Database, collection: str, params: Mapping[str, str], builder: FilterBuilder,
              join: Optional[Populate] = None) -> dict:
    """Execute a list query and return the paginated envelope."""
    query = builder.build(params)
    projection = builder.projection(params.get("select"))
    sort = builder.sort(params.get("sort"))

    page = parse_positive_int(params.get("page"), DEFAULT_PAGE)
    limit = parse_positive_int(params.get("limit"), DEFAULT_LIMIT)
    start_index = (page - 1) * limit
    end_index = page * limit
    total = db[collection].count_documents(query)

    cursor = db[collection].find(query, projection).sort(sort).skip(start_index).limit(limit)
    results = list(cursor)

    if join is not None and (projection is None or join.foreign_field or join.field in projection):
        populate(db, results, join)

    pagination = {}
    if end_index < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start_index > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}

    return {
        "success": True,
        "count": len(results),
        "pagination": pagination,
        "data": serialize(results),
    }


def advanced_results(collection: str, builder: FilterBuilder, join: Optional[Populate] = None):
    """Dependency factory: resolves to the envelope for the request's query string."""

    def dependency(request: Request, db: Database = Depends(get_db)) -> dict:
        params = {key: value for key, value in request.query_params.items()}
        return run_query(db, collection, params, builder, join)

    return dependency
