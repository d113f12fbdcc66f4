"""scripts/add_sample_employee.py

Posts a sample employee to a running API and prints what the server has
stored. A 409 (already exists) is reported and the listing still runs.

Usage (PowerShell):
    $env:API_BASE_URL = 'http://localhost:3000'
    python ./scripts/add_sample_employee.py --employee-id E001
"""
from __future__ import annotations
import os
import argparse
from typing import Optional

import requests
from dotenv import load_dotenv


SAMPLE_EMPLOYEE = {
    "employee_id": "E001",
    "name": "Jane Doe",
    "email": "jane.doe@example.com",
    "position": "Engineer",
    "age": 30,
    "date_hired": "2024-01-15",
}


def add_employee(api_base: str, payload: dict, timeout: int = 10) -> Optional[dict]:
    url = f"{api_base.rstrip('/')}/employees"
    try:
        r = requests.post(url, json=payload, timeout=timeout)
    except requests.RequestException as e:
        print(f"Request to {url} failed: {e}")
        return None
    if r.status_code == 409:
        print(f"Employee {payload.get('employee_id')} already exists.")
        return None
    if r.status_code != 201:
        print(f"Received {r.status_code} from {url}: {r.text}")
        return None
    return r.json()


def fetch_employees(api_base: str, timeout: int = 10) -> list:
    url = f"{api_base.rstrip('/')}/employees"
    try:
        r = requests.get(url, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as e:
        print(f"Request to {url} failed: {e}")
        return []
    return r.json()


def main(argv: Optional[list] = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Add a sample employee and list all employees")
    parser.add_argument("--api-base", default=os.getenv("API_BASE_URL", "http://127.0.0.1:3000"))
    parser.add_argument("--employee-id", default=SAMPLE_EMPLOYEE["employee_id"])
    args = parser.parse_args(argv)

    payload = dict(SAMPLE_EMPLOYEE, employee_id=args.employee_id)
    created = add_employee(args.api_base, payload)
    if created:
        print("Created:")
        print(created)

    employees = fetch_employees(args.api_base)
    print(f"{len(employees)} employee(s) on the server:")
    for employee in employees:
        print(employee)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
