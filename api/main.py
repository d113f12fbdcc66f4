from datetime import date, datetime, time
from typing import Optional

import jsonschema
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from jsonschema import FormatChecker
from pydantic import BaseModel, Field, field_validator
from pymongo.errors import DuplicateKeyError, PyMongoError, WriteError

from staffdb.connect_db import ConnectionHandle
from staffdb.schema import EMAIL_PATTERN, EMPLOYEES, MAXIMUM_AGE, MINIMUM_AGE, collections


def db_conn(request: Request):
    # the handle belongs to the startup sequence; it is closed there, not per request
    yield request.app.state.handle.database


# ======== Schemas ========
class EmployeeIn(BaseModel):
    employee_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    position: str = Field(min_length=1, max_length=255)
    age: int = Field(ge=MINIMUM_AGE, le=MAXIMUM_AGE)
    date_hired: date

    @field_validator("name", "position")
    @classmethod
    def strip_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class EmployeeOut(BaseModel):
    employee_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    position: Optional[str] = None
    age: Optional[int] = None
    date_hired: Optional[date] = None


class Introduction(BaseModel):
    employee_id: str
    introduction: str


# ======== Utility helpers ========
def employee_introduction(doc: dict) -> str:
    name = doc.get("name")
    if name:
        return f"Hello, my name is {name} and I am an {doc.get('position')}"
    return "I don't have a name"


def _ensure_date(val):
    """Normalize a value to a datetime.date or None.

    Accepts datetime, date, or ISO date string.
    """
    if val is None:
        return None
    # datetime from pymongo will be a datetime.datetime
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    if isinstance(val, str):
        try:
            return date.fromisoformat(val)
        except ValueError:
            return None
    return None


def _normalize_employee_for_model(doc: dict) -> dict:
    d = dict(doc)
    d.pop("_id", None)
    d["date_hired"] = _ensure_date(d.get("date_hired"))
    return d


_JSON_SCHEMA_CACHE: dict = {}

_BSON_TO_JSON_TYPES = {
    "string": "string",
    "int": "integer",
    "long": "integer",
    "double": "number",
    "bool": "boolean",
    "date": "string",
    "null": "null",
}


def bson_to_jsonschema(bson_schema: dict) -> dict:
    """Translate a MongoDB $jsonSchema validator into plain JSON Schema.

    BSON dates become strings in `date` format, so documents are checked in
    their JSON form before dates are converted for storage.
    """
    props = {}
    for key, prop in bson_schema.get("properties", {}).items():
        bson_type = prop.get("bsonType")
        types = bson_type if isinstance(bson_type, list) else [bson_type]
        json_types = []
        prop_schema: dict = {}
        for t in types:
            json_types.append(_BSON_TO_JSON_TYPES.get(t, "string"))
            if t == "date":
                prop_schema["format"] = "date"
        prop_schema["type"] = json_types[0] if len(json_types) == 1 else json_types
        for keyword in ("pattern", "minimum", "maximum", "minLength", "maxLength"):
            if keyword in prop:
                prop_schema[keyword] = prop[keyword]
        props[key] = prop_schema

    json_schema = {"type": "object", "properties": props}
    if "required" in bson_schema:
        json_schema["required"] = bson_schema["required"]
    return json_schema


def validate_against_collection_schema(collection: str, doc: dict) -> bool:
    bson_sch = collections.get(collection)
    if not bson_sch:
        return True

    if collection not in _JSON_SCHEMA_CACHE:
        _JSON_SCHEMA_CACHE[collection] = bson_to_jsonschema(bson_sch)
    json_sch = _JSON_SCHEMA_CACHE[collection]

    try:
        jsonschema.validate(instance=doc, schema=json_sch, format_checker=FormatChecker())
    except jsonschema.ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Schema validation error: {e.message}")
    return True


def _to_storage(doc: dict) -> dict:
    stored = dict(doc)
    # BSON has no date-only type
    stored["date_hired"] = datetime.combine(date.fromisoformat(doc["date_hired"]), time.min)
    return stored


def create_app(handle: ConnectionHandle) -> FastAPI:
    """Build the API around an already connected handle."""
    app = FastAPI(title="Employee Directory API (Mongo)", version="1.0.0")
    app.state.handle = handle

    @app.get("/", response_class=PlainTextResponse, tags=["Root"])
    def root():
        return "Hello, world!"

    @app.get("/health", response_model=dict, tags=["Root"])
    def health(request: Request):
        current = request.app.state.handle
        try:
            current.ping()
        except PyMongoError as e:
            raise HTTPException(status_code=503, detail=f"Database unavailable: {e}")
        return {"status": "ok", "database": current.database.name}

    # ======== Employees ========
    @app.post("/employees", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED, tags=["Employees"])
    def create_employee(payload: EmployeeIn, db=Depends(db_conn)):
        doc = payload.model_dump(mode="json")
        validate_against_collection_schema(EMPLOYEES, doc)
        if db[EMPLOYEES].find_one({"employee_id": payload.employee_id}, {"_id": 1}):
            raise HTTPException(status_code=409, detail="Employee already exists")
        try:
            res = db[EMPLOYEES].insert_one(_to_storage(doc))
        except DuplicateKeyError:
            # unique index on employee_id; covers inserts racing past the check above
            raise HTTPException(status_code=409, detail="Employee already exists")
        except WriteError as e:
            raise HTTPException(status_code=400, detail=f"Document failed validation: {e}")
        if not res.acknowledged:
            raise HTTPException(status_code=500, detail="Failed to create employee")
        return EmployeeOut(**_normalize_employee_for_model(doc))

    @app.get("/employees", response_model=list[EmployeeOut], tags=["Employees"])
    def list_employees(db=Depends(db_conn)):
        cursor = db[EMPLOYEES].find({}, {"_id": 0}).sort("employee_id", 1)
        return [EmployeeOut(**_normalize_employee_for_model(r)) for r in cursor]

    @app.get("/employees/{employee_id}", response_model=EmployeeOut, tags=["Employees"])
    def get_employee(employee_id: str, db=Depends(db_conn)):
        doc = db[EMPLOYEES].find_one({"employee_id": employee_id}, {"_id": 0})
        if not doc:
            raise HTTPException(status_code=404, detail="Employee not found")
        return EmployeeOut(**_normalize_employee_for_model(doc))

    @app.get("/employees/{employee_id}/introduction", response_model=Introduction, tags=["Employees"])
    def introduce_employee(employee_id: str, db=Depends(db_conn)):
        doc = db[EMPLOYEES].find_one({"employee_id": employee_id}, {"_id": 0})
        if not doc:
            raise HTTPException(status_code=404, detail="Employee not found")
        return Introduction(employee_id=employee_id, introduction=employee_introduction(doc))

    @app.delete("/employees/{employee_id}", response_model=dict, tags=["Employees"])
    def delete_employee(employee_id: str, db=Depends(db_conn)):
        result = db[EMPLOYEES].delete_one({"employee_id": employee_id})
        if result.deleted_count == 0:
            raise HTTPException(status_code=404, detail="Employee not found")
        return {"deleted": result.deleted_count}

    return app
