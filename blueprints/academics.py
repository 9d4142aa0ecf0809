"""Subject, grade, assignment, semester, teacher and timetable routes."""

from __future__ import annotations

from blueprints.crud import resource_blueprint
from services import assignments, grades, semesters, subjects, teachers, timetable

subjects_bp = resource_blueprint("subjects", subjects,
                                 create_rule="/api/subject", base_rule="/api/subjects")
grades_bp = resource_blueprint("grades", grades,
                               create_rule="/api/grade", base_rule="/api/grades")
assignments_bp = resource_blueprint("assignments", assignments,
                                    create_rule="/api/assignment", base_rule="/api/assignments")
semesters_bp = resource_blueprint("semesters", semesters,
                                  create_rule="/api/semester", base_rule="/api/semesters")
teachers_bp = resource_blueprint("teachers", teachers,
                                 create_rule="/api/teacher", base_rule="/api/teachers")
# timetable uses the same path for creation and listing
timetable_bp = resource_blueprint("timetable", timetable,
                                  create_rule="/api/timetable", base_rule="/api/timetable")

BLUEPRINTS = (subjects_bp, grades_bp, assignments_bp, semesters_bp, teachers_bp, timetable_bp)
