# app/core/constants.py

# ==========================================================
# DEFAULT ACADEMIC STRUCTURE (seeded when SEED_ACADEMIC_STRUCTURE=true)
# ==========================================================
FACULTIES_DATA = [
    {"name": "Faculty of Science", "code": "SCI", "description": "Natural and Applied Sciences"},
    {"name": "Faculty of Engineering", "code": "ENG", "description": "Engineering and Technology"},
    {"name": "Faculty of Arts", "code": "ARTS", "description": "Humanities and Arts"},
    {"name": "Faculty of Social Sciences", "code": "SOCSCI", "description": "Social Sciences"},
    {"name": "Faculty of Management Sciences", "code": "MGMT", "description": "Business and Management"},
]

# Departments keyed by their parent faculty code
DEPARTMENTS_DATA = {
    "SCI": [
        {"name": "Computer Science", "code": "CS", "description": "Computer Science and Information Technology"},
        {"name": "Mathematics", "code": "MATH", "description": "Pure and Applied Mathematics"},
        {"name": "Physics", "code": "PHY", "description": "Physics and Astronomy"},
        {"name": "Chemistry", "code": "CHEM", "description": "Chemistry and Biochemistry"},
        {"name": "Biology", "code": "BIO", "description": "Biological Sciences"},
    ],
    "ENG": [
        {"name": "Electrical Engineering", "code": "EE", "description": "Electrical and Electronics Engineering"},
        {"name": "Mechanical Engineering", "code": "ME", "description": "Mechanical Engineering"},
        {"name": "Civil Engineering", "code": "CE", "description": "Civil and Environmental Engineering"},
        {"name": "Chemical Engineering", "code": "CHE", "description": "Chemical Engineering"},
    ],
    "ARTS": [
        {"name": "English", "code": "ENG-LANG", "description": "English Language and Literature"},
        {"name": "History", "code": "HIST", "description": "History and Archaeology"},
        {"name": "Philosophy", "code": "PHIL", "description": "Philosophy and Ethics"},
    ],
    "SOCSCI": [
        {"name": "Economics", "code": "ECON", "description": "Economics and Development Studies"},
        {"name": "Political Science", "code": "POLI", "description": "Political Science and Public Administration"},
        {"name": "Sociology", "code": "SOC", "description": "Sociology and Anthropology"},
    ],
    "MGMT": [
        {"name": "Business Administration", "code": "BUS", "description": "Business Administration and Management"},
        {"name": "Accounting", "code": "ACCT", "description": "Accounting and Finance"},
    ],
}

# ==========================================================
# SYSTEM AUDIT EVENT TYPES
# ==========================================================
EVENT_ROLE_CHANGED = "ROLE_CHANGED"
EVENT_FACULTY_CREATED = "FACULTY_CREATED"
EVENT_DEPARTMENT_CREATED = "DEPARTMENT_CREATED"
EVENT_DEPARTMENT_UPDATED = "DEPARTMENT_UPDATED"
EVENT_DEPARTMENT_DEACTIVATED = "DEPARTMENT_DEACTIVATED"
EVENT_POST_DELETED = "POST_DELETED"
