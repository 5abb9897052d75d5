"""
Data Loader Script - Seeds the API with sample students.

Posts a list of students to the bulk create endpoint and prints the
resulting per-course statistics.

Usage:
    python load_data.py                                   # Built-in sample, default URL
    python load_data.py http://localhost:8000             # Custom API URL
    python load_data.py http://localhost:8000 data.json   # Students from a JSON file
"""

import json
import sys
import os

import httpx

SAMPLE_STUDENTS = [
    {"name": "Anna Sharma", "marks": 82, "course": "CS", "city": "Mumbai", "subjects": ["Python", "DBMS"]},
    {"name": "Rahul Verma", "marks": 45, "course": "Math", "city": "Delhi", "subjects": ["Algebra"]},
    {"name": "ANNE Dsouza", "marks": 67, "course": "Math", "city": "Pune", "subjects": ["Calculus", "Statistics"]},
    {"name": "Priya Nair", "marks": 91, "course": "CS", "city": "Chennai", "subjects": ["Java"], "enrolled": True},
    {"name": "Karan Mehta", "marks": 38, "course": "Physics", "city": "Mumbai", "subjects": []},
    {"name": "Sneha Iyer", "marks": 74, "course": "Physics", "city": "Bengaluru", "subjects": ["Optics"]},
]


def main():
    api_url = sys.argv[1] if len(sys.argv) > 1 else os.getenv("API_URL", "http://localhost:8000")
    base_url = f"{api_url}/api/v1/students"

    if len(sys.argv) > 2:
        data_file = sys.argv[2]
        if not os.path.exists(data_file):
            print(f"Error: Could not find {data_file}")
            sys.exit(1)
        print(f"Loading data from: {data_file}")
        with open(data_file, 'r') as f:
            students = json.load(f)
    else:
        students = SAMPLE_STUDENTS

    print(f"Sending {len(students)} students to: {base_url}/create/bulk")
    print()

    with httpx.Client(timeout=30.0) as client:
        resp = client.post(f"{base_url}/create/bulk", json=students)
        if resp.status_code != 201:
            print(f"HTTP Error {resp.status_code}: {resp.text}")
            sys.exit(1)
        result = resp.json()

        stats = client.get(f"{base_url}/stats").json()

    print("=" * 60)
    print(f"  Inserted: {result.get('count', '?')} students")
    print("=" * 60)
    for group in stats.get("data", []):
        print("  {course:<12} students={total_students:<3} avg={average_marks:.2f} "
              "max={max_marks} min={min_marks}".format(**group))
    print()
    print("Data loading complete! Browse the API at {}/docs".format(api_url))


if __name__ == "__main__":
    main()
