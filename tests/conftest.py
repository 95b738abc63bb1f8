import pytest

from jee_tracker.db import init_db
from jee_tracker.seed import seed_if_empty
from jee_tracker.users import create_user

# Topic ids in insertion order:
#   1 Kinematics, 2 Laws of Motion      (Mechanics, class 11)
#   3 Coulomb's Law, 4 Gauss's Law      (Electrostatics, class 12)
#   5 Mole Concept (11), 6 Electrochemistry (12)   (Physical Chemistry, mixed)
SMALL_SYLLABUS = [
    {"name": "Physics", "color": "#3b82f6", "units": [
        {"name": "Mechanics", "order": 1, "topics": [
            {"name": "Kinematics", "order": 1, "class_11": True, "class_12": False},
            {"name": "Laws of Motion", "order": 2, "is_important": True, "weightage": "High",
             "class_11": True, "class_12": False},
        ]},
        {"name": "Electrostatics", "order": 2, "topics": [
            {"name": "Coulomb's Law", "order": 1, "class_11": False, "class_12": True},
            {"name": "Gauss's Law", "order": 2, "class_11": False, "class_12": True},
        ]},
    ]},
    {"name": "Chemistry", "color": "#10b981", "units": [
        {"name": "Physical Chemistry", "order": 1, "topics": [
            {"name": "Mole Concept", "order": 1, "class_11": True, "class_12": False},
            {"name": "Electrochemistry", "order": 2, "class_11": False, "class_12": True},
        ]},
    ]},
]


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tracker.db")
    return db_path


@pytest.fixture
def db(tmp_db):
    """An initialised database with the small two-subject syllabus."""
    init_db(tmp_db)
    seed_if_empty(tmp_db, SMALL_SYLLABUS)
    return tmp_db


@pytest.fixture
def student(db):
    return create_user(db, "asha@example.com")


@pytest.fixture
def other_student(db):
    return create_user(db, "ravi@example.com")


@pytest.fixture
def small_syllabus():
    return SMALL_SYLLABUS
