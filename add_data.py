"""
Script to add sample data to the EvalTrack server via REST API.
Make sure the server is running before executing this script.

Usage:
    python add_data.py
"""

import json
import os
import sys

import requests


def _console_supports_utf8() -> bool:
    enc = getattr(sys.stdout, "encoding", None)
    return enc is not None and "utf" in enc.lower()


_OK_CHAR = "✓" if _console_supports_utf8() else "[OK]"
_FAIL_CHAR = "✗" if _console_supports_utf8() else "[FAIL]"
_WARN_CHAR = "⚠" if _console_supports_utf8() else "[WARN]"


def _detect_base_url() -> str:
    """Determine a reachable BASE_URL.

    Priority: environment variable `EVALTRACK_BASE_URL`, then common local ports.
    If nothing responds, fall back to http://127.0.0.1:3005.
    """
    env = os.environ.get("EVALTRACK_BASE_URL")
    if env:
        return env

    candidates = [
        "http://127.0.0.1:3005",
        "http://localhost:3005",
        "http://127.0.0.1:8000",
    ]

    for c in candidates:
        try:
            resp = requests.get(f"{c}/health", timeout=0.5)
            if resp.status_code == 200:
                return c
        except requests.exceptions.RequestException:
            continue

    return candidates[0]


BASE_URL = _detect_base_url()


def check_server():
    """Check if the server is running."""
    try:
        response = requests.get(f"{BASE_URL}/health", timeout=2)
        if response.status_code == 200:
            print(f"{_OK_CHAR} Server is running at {BASE_URL}")
            return True
    except requests.exceptions.RequestException:
        pass
    print(f"{_FAIL_CHAR} Server is not running!")
    print("\nPlease start the server first:")
    print("  evaltrack --port 3005")
    return False


def create_student(name, cpf, email):
    """Create a new student."""
    try:
        response = requests.post(f"{BASE_URL}/api/students", json={"name": name, "cpf": cpf, "email": email})
        if response.status_code == 201:
            print(f"{_OK_CHAR} Created student: {name} ({cpf})")
            return response.json()
        if response.status_code == 409:
            print(f"{_WARN_CHAR} Student {cpf} already exists")
            return requests.get(f"{BASE_URL}/api/students/{cpf}").json()
        print(f"{_FAIL_CHAR} Failed to create student: {response.text}")
        return None
    except requests.exceptions.RequestException as e:
        print(f"{_FAIL_CHAR} Error creating student: {e}")
        return None


def create_class(topic, semester, year):
    """Create a new class."""
    try:
        response = requests.post(f"{BASE_URL}/api/classes",
                                 json={"topic": topic, "semester": semester, "year": year})
        if response.status_code == 201:
            print(f"{_OK_CHAR} Created class: {topic} {year}/{semester}")
            return response.json()
        if response.status_code == 409:
            print(f"{_WARN_CHAR} Class {topic}-{year}-{semester} already exists")
            return requests.get(f"{BASE_URL}/api/classes/{topic}-{year}-{semester}").json()
        print(f"{_FAIL_CHAR} Failed to create class: {response.text}")
        return None
    except requests.exceptions.RequestException as e:
        print(f"{_FAIL_CHAR} Error creating class: {e}")
        return None


def enroll_student(class_id, cpf):
    """Enroll a student in a class."""
    try:
        response = requests.post(f"{BASE_URL}/api/classes/{class_id}/enrollments", json={"student_cpf": cpf})
        if response.status_code == 201:
            print(f"{_OK_CHAR} Enrolled student {cpf}")
            return response.json()
        if response.status_code == 409:
            print(f"{_WARN_CHAR} Student {cpf} already enrolled")
            return None
        print(f"{_FAIL_CHAR} Failed to enroll student: {response.text}")
        return None
    except requests.exceptions.RequestException as e:
        print(f"{_FAIL_CHAR} Error enrolling student: {e}")
        return None


def grade(class_id, cpf, goal, value, own=False):
    """Record a teacher grade, or a self-evaluation when own is set."""
    path = "self-evaluation" if own else "evaluation"
    try:
        response = requests.put(f"{BASE_URL}/api/classes/{class_id}/enrollments/{cpf}/{path}",
                                json={"goal": goal, "grade": value})
        if response.status_code != 200:
            print(f"{_FAIL_CHAR} Failed to record {path} for {cpf}: {response.text}")
    except requests.exceptions.RequestException as e:
        print(f"{_FAIL_CHAR} Error recording {path}: {e}")


def show_discrepancies(class_id, topic):
    """Print the discrepancy report for a class."""
    try:
        response = requests.get(f"{BASE_URL}/api/classes/{class_id}/discrepancies")
        if response.status_code != 200:
            print(f"{_FAIL_CHAR} Failed to get discrepancies: {response.text}")
            return []
        rows = response.json()
        print(f"\n{'='*60}")
        print(f"Discrepancies: {topic}")
        print(f"{'='*60}")
        for row in rows:
            flag = " <--" if row['highlight'] else ""
            print(f"  {row['cpf']:11} | {row['name']:20} | {row['percentage']:3}% "
                  f"({row['discrepant']}/{row['considered']}){flag}")
        return rows
    except requests.exceptions.RequestException as e:
        print(f"{_FAIL_CHAR} Error getting discrepancies: {e}")
        return []


def get_statistics():
    """Get system statistics."""
    try:
        response = requests.get(f"{BASE_URL}/api/statistics")
        if response.status_code == 200:
            stats = response.json()
            print(f"\n{'='*60}")
            print("System Statistics")
            print(f"{'='*60}")
            print(json.dumps(stats['statistics'], indent=2))
            return stats
        print(f"{_FAIL_CHAR} Failed to get statistics: {response.text}")
        return None
    except requests.exceptions.RequestException as e:
        print(f"{_FAIL_CHAR} Error getting statistics: {e}")
        return None


def main():
    """Main execution."""
    print("="*60)
    print("EvalTrack - Data Addition Script")
    print("="*60)
    print()

    if not check_server():
        sys.exit(1)

    print("\nCreating students...")
    students = [
        create_student("Ana Souza", "123.456.789-00", "ana.souza@example.com"),
        create_student("Bruno Lima", "987.654.321-00", "bruno.lima@example.com"),
        create_student("Carla Dias", "111.222.333-44", "carla.dias@example.com"),
        create_student("Diego Alves", "555.666.777-88", "diego.alves@example.com"),
    ]
    students = [s for s in students if s]

    print("\nCreating classes...")
    software = create_class("Software Engineering", 1, 2024)
    design = create_class("Software Design", 2, 2024)
    if not software or not design:
        sys.exit(1)

    print("\nEnrolling students...")
    for student in students:
        enroll_student(software['id'], student['cpf'])
    for student in students[:2]:
        enroll_student(design['id'], student['cpf'])

    print("\nRecording evaluations...")
    # (goal, teacher grade, self grade) per student
    sample = {
        "12345678900": [("Requirements", "MA", "MA"), ("Design", "MPA", "MA"), ("Tests", "MANA", "MPA")],
        "98765432100": [("Requirements", "MPA", "MPA"), ("Tests", "MA", "MPA")],
        "11122233344": [("Project Management", "MANA", "MA"), ("Refactoring", "MPA", "MPA")],
    }
    for cpf, rows in sample.items():
        for goal, teacher_grade, self_grade in rows:
            grade(software['id'], cpf, goal, teacher_grade)
            grade(software['id'], cpf, goal, self_grade, own=True)
    print(f"{_OK_CHAR} Evaluations recorded")

    show_discrepancies(software['id'], software['topic'])
    get_statistics()

    print("\n" + "="*60)
    print(f"{_OK_CHAR} Sample data added successfully!")
    print("="*60)
    print("\nYou can now:")
    print(f"  - View API docs: {BASE_URL}/docs")
    print(f"  - List students: curl {BASE_URL}/api/students")
    print(f"  - List classes: curl {BASE_URL}/api/classes")
    print()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print(f"\n\n{_FAIL_CHAR} Interrupted by user")
        sys.exit(1)
