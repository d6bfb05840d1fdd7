"""
Bulk Student Import
===================
Parses a comma-separated roster file into student records.

Expected columns (header row required, case-insensitive):
    name, grade, age, primary_contact_name, primary_contact_email,
    primary_contact_phone

Optional columns cover the primary contact relationship, a secondary
contact, an emergency contact, the home address, subjects and medical
info lists. Multi-value cells (subjects, allergies, medications,
conditions) are split on ';' or ','.

A file missing any required column is rejected outright. Rows with the
wrong number of cells or missing required values are reported and
skipped; every other row is imported.
"""
import csv
import io
import logging
from datetime import datetime

from schooldash.records import new_id, new_student

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = [
    'name', 'grade', 'age',
    'primary_contact_name', 'primary_contact_email', 'primary_contact_phone',
]

TEMPLATE_COLUMNS = REQUIRED_COLUMNS + [
    'primary_contact_relationship',
    'secondary_contact_name', 'secondary_contact_email', 'secondary_contact_phone',
    'secondary_contact_relationship',
    'emergency_contact_name', 'emergency_contact_phone', 'emergency_contact_relationship',
    'street', 'city', 'state', 'zip_code',
    'subjects', 'allergies', 'medications', 'conditions',
]

TEMPLATE_ROWS = [
    ['John Doe', 'Grade 4', '9', 'Jane Doe', 'jane.doe@email.com', '+1-555-0123', 'Mother',
     'John Doe Sr.', 'john.doe@email.com', '+1-555-0124', 'Father',
     'Jane Doe', '+1-555-0123', 'Mother',
     '123 Main St', 'Springfield', 'IL', '62701',
     'Mathematics;English;Science', '', '', ''],
    ['Jane Smith', 'Grade 4', '10', 'Mary Smith', 'mary.smith@email.com', '+1-555-0125', 'Mother',
     '', '', '', '',
     'Mary Smith', '+1-555-0125', 'Mother',
     '456 Oak Ave', 'Springfield', 'IL', '62702',
     'Mathematics;English;Science', 'Peanuts', '', ''],
]


def _row_to_form(row: dict) -> dict:
    """Map one CSV row (header -> cell) onto the student form payload."""
    form = {
        "name": row.get("name", ""),
        "grade": row.get("grade", ""),
        "age": row.get("age", ""),
        "parent_contacts": {
            "primary": {
                "name": row.get("primary_contact_name", ""),
                "email": row.get("primary_contact_email", ""),
                "phone": row.get("primary_contact_phone", ""),
                "relationship": row.get("primary_contact_relationship") or "Parent",
            },
        },
        "emergency_contact": {
            "name": row.get("emergency_contact_name", ""),
            "phone": row.get("emergency_contact_phone", ""),
            "relationship": row.get("emergency_contact_relationship", ""),
        },
        "medical_info": {
            "allergies": row.get("allergies", ""),
            "medications": row.get("medications", ""),
            "conditions": row.get("conditions", ""),
        },
    }
    if row.get("subjects"):
        form["subjects"] = row["subjects"]
    if row.get("secondary_contact_name"):
        form["parent_contacts"]["secondary"] = {
            "name": row["secondary_contact_name"],
            "email": row.get("secondary_contact_email", ""),
            "phone": row.get("secondary_contact_phone", ""),
            "relationship": row.get("secondary_contact_relationship") or "Parent",
        }
    if row.get("street"):
        form["address"] = {
            "street": row["street"],
            "city": row.get("city", ""),
            "state": row.get("state", ""),
            "zip_code": row.get("zip_code", ""),
        }
    return form


def parse_student_csv(text: str, now=None, catalog=None) -> dict:
    """
    Parse roster CSV text into student records.

    Returns:
        {"students": [...], "errors": [...]}. When the header is unusable the
        student list is empty and errors holds a single message.
    """
    now = now or datetime.now()
    text = (text or "").lstrip('\ufeff')
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return {"students": [], "errors": ['File must contain at least a header row and one data row']}

    rows = list(csv.reader(lines))
    headers = [h.strip().lower() for h in rows[0]]
    missing = [col for col in REQUIRED_COLUMNS if col not in headers]
    if missing:
        logger.warning("Rejected student import, missing columns: %s", ", ".join(missing))
        return {"students": [], "errors": [f"Missing required columns: {', '.join(missing)}"]}

    stamp = int(now.timestamp() * 1000)
    students = []
    errors = []
    for i, values in enumerate(rows[1:], start=1):
        row_number = i + 1
        values = [v.strip() for v in values]
        if len(values) != len(headers):
            errors.append(f"Row {row_number}: Column count mismatch")
            continue

        row = dict(zip(headers, values))
        if not row["name"] or not row["grade"] or not row["age"]:
            errors.append(f"Row {row_number}: Missing required fields (name, grade, age)")
            continue
        try:
            age = int(row["age"])
        except ValueError:
            errors.append(f"Row {row_number}: Invalid age")
            continue
        if age <= 0:
            errors.append(f"Row {row_number}: Invalid age")
            continue

        form = _row_to_form(row)
        form["id"] = f"imported-{stamp}-{i}-{new_id()}"
        students.append(new_student(form, now=now, catalog=catalog))

    logger.info("Parsed student import: %d students, %d row errors", len(students), len(errors))
    return {"students": students, "errors": errors}


def import_template() -> str:
    """CSV text matching the import format, with two sample rows."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(TEMPLATE_COLUMNS)
    writer.writerows(TEMPLATE_ROWS)
    return buffer.getvalue()
