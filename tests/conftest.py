import random
import sys
from pathlib import Path

import matplotlib
import pytest

# Charts are only saved to disk in tests.
matplotlib.use("Agg")

# Add the project root to sys.path so we can import form_groups
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())

from form_groups import NonSurveyStudent, SurveyStudent  # noqa: E402


def make_surveyed(name, background=3, confidence=3, section=1, **flags):
    """Create a surveyed student with neutral answers unless overridden."""
    return SurveyStudent(
        uniqname=name,
        email=f"{name}@umich.edu",
        section=section,
        full_name=name.title(),
        preferred_name=name.title(),
        background=background,
        confidence=confidence,
        **flags,
    )


def make_unsurveyed(name, section=1):
    """Create a student who did not take the survey."""
    return NonSurveyStudent(
        uniqname=name,
        email=f"{name}@umich.edu",
        section=section,
        full_name=name.title(),
    )


@pytest.fixture
def rng():
    """A seeded random source so results are repeatable."""
    return random.Random(1234)


@pytest.fixture
def mixed_section():
    """33 students in one section: a mix of answers, retakers and non-surveyed students."""
    students = []
    for i in range(20):
        students.append(make_surveyed(
            f"s{i:02d}",
            background=1 + i % 5,
            confidence=1 + (i * 3) % 5,
            pref_fast_pace=(i % 4 == 0),
            pref_less_comfortable=(i % 6 == 1),
        ))
    for i in range(4):
        students.append(make_surveyed(f"r{i:02d}", pref_retake=True))
    for i in range(9):
        students.append(make_unsurveyed(f"n{i:02d}"))
    return students
