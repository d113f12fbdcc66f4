# schema.py

EMPLOYEES = "employees"

EMAIL_PATTERN = r"\S+@\S+\.\S+"
MINIMUM_AGE = 19
MAXIMUM_AGE = 120

employees_schema = {
    "bsonType": "object",
    "required": ["employee_id", "name", "position", "age", "date_hired"],
    "properties": {
        "employee_id": {"bsonType": "string"},
        "name": {"bsonType": "string", "description": "Employee Name is required"},
        "email": {
            "bsonType": ["string", "null"],
            "pattern": EMAIL_PATTERN,
            "description": "Please use a valid email address",
        },
        "position": {"bsonType": "string", "description": "Position is required"},
        "age": {
            "bsonType": "int",
            "minimum": MINIMUM_AGE,
            "maximum": MAXIMUM_AGE,
            "description": "Employees age must be above 18",
        },
        "date_hired": {"bsonType": "date"},
    },
}

collections = {
    EMPLOYEES: employees_schema,
}

unique_keys = {
    EMPLOYEES: ["employee_id"],
}
